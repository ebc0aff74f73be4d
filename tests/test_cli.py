"""Tests for the denv command line."""

from pathlib import Path
from pathlib import PurePosixPath
from tempfile import TemporaryDirectory

import pytest
from denv import ActiveScope
from denv import ScopeSnapshot
from denv.cli import EX_CONFIG
from denv.cli import EX_SOFTWARE
from denv.cli import Options
from denv.cli import app
from denv.state import STATE_VAR_NAME
from denv.state import decode_state
from denv.state import encode_state
from typer.testing import CliRunner


def parse_script(script: str) -> dict[str, str | None]:
    """Map each exported or unset name of a script to its raw rendering."""
    statements: dict[str, str | None] = {}
    for line in script.splitlines():
        if line.startswith("export "):
            name, _, value = line[len("export ") :].partition("=")
            statements[name] = value
        elif line.startswith("unset "):
            statements[line[len("unset ") :]] = None
    return statements


class TestCli:
    """Test denv commands."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def workspace(self):
        """Create a denv home and a project directory."""
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            (root / "home" / "softwares" / "terraform" / "1.2.3").mkdir(parents=True)
            (root / "proj").mkdir()
            (root / "other").mkdir()
            yield root

    def invoke(self, runner, workspace, args, cwd, **env):
        environ = {
            "PWD": str(cwd),
            "DENV_HOME": str(workspace / "home"),
            STATE_VAR_NAME: None,
            "FOO": None,
        }
        environ.update(env)
        return runner.invoke(app, ["-q", *args], env=environ)

    def test_hook_bash(self, runner):
        """Test the bash hook is printed."""
        result = runner.invoke(app, ["hook", "bash"])
        assert result.exit_code == 0
        assert 'eval "$(denv export bash)"' in result.stdout

    def test_hook_carries_options(self, runner):
        """Test global options are passed on to the hook callback."""
        result = runner.invoke(app, ["-vv", "--no-color", "-f", "env file.yml", "hook", "zsh"])
        assert result.exit_code == 0
        assert "denv --config 'env file.yml' -vv --no-color export zsh" in result.stdout

    def test_hook_unknown_shell(self, runner):
        """Test unsupported shells are refused."""
        result = runner.invoke(app, ["hook", "fish"])
        assert result.exit_code != 0

    def test_export_loads_and_unloads(self, runner, workspace):
        """Test entering and leaving a project."""
        proj = workspace / "proj"
        (proj / "denv.yml").write_text("version: v1\nset:\n  - name: FOO\n    value: bar\n")

        result = self.invoke(runner, workspace, ["export", "bash"], proj)
        assert result.exit_code == 0
        statements = parse_script(result.stdout)
        assert statements["FOO"] == '"bar"'
        assert STATE_VAR_NAME in statements
        assert result.stdout.startswith('export FOO="bar"\n')

        state = result.stdout.splitlines()[-1]
        raw_state = state[len(f"export {STATE_VAR_NAME}=") :]
        # undo the double-quote escaping the shell would remove
        raw_state = raw_state[1:-1].replace('\\"', '"').replace("\\\\", "\\").replace("\\$", "$")
        assert decode_state(raw_state).root.name == "proj"

        result = self.invoke(runner, workspace, ["export", "bash"], workspace / "other", **{STATE_VAR_NAME: raw_state})
        assert result.exit_code == 0
        assert result.stdout == f"unset FOO\nunset {STATE_VAR_NAME}\n"

    def test_export_leaving_for_undecodable_config(self, runner, workspace):
        """Test the unload is printed even when the new directory's config cannot be read."""
        (workspace / "other" / "denv.yml").write_bytes(b"\xff\xfeversion: v1\n")
        state = encode_state(ActiveScope(PurePosixPath(workspace / "proj"), ScopeSnapshot((("FOO", None),))))

        result = self.invoke(
            runner, workspace, ["export", "bash"], workspace / "other", FOO="bar", **{STATE_VAR_NAME: state}
        )
        assert result.exit_code == EX_CONFIG
        assert result.stdout == f"unset FOO\nunset {STATE_VAR_NAME}\n"

    def test_export_unloads_empty_snapshot(self, runner, workspace):
        """Test leaving a scope that set nothing still clears the state."""
        state = encode_state(ActiveScope(PurePosixPath(workspace / "proj"), ScopeSnapshot(())))

        result = self.invoke(runner, workspace, ["export", "bash"], workspace / "other", **{STATE_VAR_NAME: state})
        assert result.exit_code == 0
        assert result.stdout == f"unset {STATE_VAR_NAME}\n"

    def test_export_loads_empty_config(self, runner, workspace):
        """Test a config without variables still records the active scope."""
        proj = workspace / "proj"
        (proj / "denv.yml").write_text("version: v1\n")

        result = self.invoke(runner, workspace, ["export", "bash"], proj)
        assert result.exit_code == 0
        assert list(parse_script(result.stdout)) == [STATE_VAR_NAME]

        # once recorded, staying in the root prints nothing
        state = encode_state(ActiveScope(PurePosixPath(proj), ScopeSnapshot(())))
        result = self.invoke(runner, workspace, ["export", "bash"], proj, **{STATE_VAR_NAME: state})
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_unload_empty_snapshot(self, runner, workspace):
        """Test unload clears the state of a scope that set nothing."""
        state = encode_state(ActiveScope(PurePosixPath(workspace / "proj"), ScopeSnapshot(())))

        result = self.invoke(runner, workspace, ["unload"], workspace / "proj", **{STATE_VAR_NAME: state})
        assert result.exit_code == 0
        assert result.stdout == f"unset {STATE_VAR_NAME}\n"

    def test_export_noop(self, runner, workspace):
        """Test directories without config print nothing."""
        result = self.invoke(runner, workspace, ["export", "zsh"], workspace / "other")
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_export_with_software(self, runner, workspace):
        """Test installed softwares are prepended to PATH."""
        proj = workspace / "proj"
        (proj / "denv.yaml").write_text("version: v1\nsoftwares:\n  terraform: 1.2.3\n")

        result = self.invoke(runner, workspace, ["export", "bash"], proj, PATH="/usr/bin")
        assert result.exit_code == 0
        expected = workspace / "home" / "softwares" / "terraform" / "1.2.3"
        assert parse_script(result.stdout)["PATH"] == f'"{expected}:/usr/bin"'

    def test_export_invalid_config(self, runner, workspace):
        """Test validation failures print no script and exit with EX_CONFIG."""
        proj = workspace / "proj"
        (proj / "denv.yml").write_text("version: v1\nset: {}\n")

        result = self.invoke(runner, workspace, ["export", "bash"], proj)
        assert result.exit_code == EX_CONFIG
        assert "export" not in result.stdout

    def test_export_missing_software(self, runner, workspace):
        """Test resolution failures print no script and exit with EX_SOFTWARE."""
        proj = workspace / "proj"
        (proj / "denv.yml").write_text(
            "version: v1\nset:\n  - name: FOO\n    value: bar\nsoftwares:\n  chart-testing: 3.7.0\n"
        )

        result = self.invoke(runner, workspace, ["export", "bash"], proj)
        assert result.exit_code == EX_SOFTWARE
        assert "export" not in result.stdout

    def test_export_error_message(self, runner, workspace):
        """Test the validation error is reported on stderr."""
        proj = workspace / "proj"
        (proj / "denv.yml").write_text("version: v1\nsoftwares:\n  kubectl: 1.0.0\n")

        environ = {"PWD": str(proj), "DENV_HOME": str(workspace / "home"), STATE_VAR_NAME: None}
        result = runner.invoke(app, ["--no-color", "export", "bash"], env=environ)
        assert result.exit_code == EX_CONFIG
        assert "Unrecognized software 'kubectl'" in result.output

    def test_export_custom_config_name(self, runner, workspace):
        """Test -f replaces the recognized file names."""
        proj = workspace / "proj"
        (proj / "denv.yml").write_text("version: v1\nset:\n  - name: FOO\n    value: default\n")
        (proj / "env.yml").write_text("version: v1\nset:\n  - name: FOO\n    value: custom\n")

        result = self.invoke(runner, workspace, ["-f", "env.yml", "export", "bash"], proj)
        assert parse_script(result.stdout)["FOO"] == '"custom"'

    def test_reload(self, runner, workspace):
        """Test reload loads the current directory."""
        proj = workspace / "proj"
        (proj / "denv.yml").write_text("version: v1\nset:\n  - name: FOO\n    value: bar\n")

        result = self.invoke(runner, workspace, ["reload"], proj, FOO="before")
        assert result.exit_code == 0
        assert parse_script(result.stdout)["FOO"] == '"bar"'

    def test_reload_without_config(self, runner, workspace):
        """Test reload fails in a directory without config."""
        result = self.invoke(runner, workspace, ["reload"], workspace / "other")
        assert result.exit_code == EX_CONFIG
        assert result.stdout == ""

    def test_unload_idle(self, runner, workspace):
        """Test unload without an active scope prints nothing."""
        result = self.invoke(runner, workspace, ["unload"], workspace / "other")
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_corrupt_state_ignored(self, runner, workspace):
        """Test an unreadable state variable is treated as idle."""
        result = self.invoke(runner, workspace, ["unload"], workspace / "other", **{STATE_VAR_NAME: "garbage"})
        assert result.exit_code == 0
        assert result.stdout == ""


class TestOptions:
    """Test Options dataclass."""

    def test_command_line_default(self):
        """Test no options give a bare invocation."""
        assert Options().command_line() == "denv"

    def test_command_line_quiet_wins(self):
        """Test quiet drops verbosity flags."""
        assert Options(verbose=2, quiet=True).command_line() == "denv --quiet"

    def test_paths_home_override(self):
        """Test --home wins over DENV_HOME."""
        options = Options(home=Path("/custom"))
        assert options.paths({"DENV_HOME": "/env"}).home == Path("/custom")
