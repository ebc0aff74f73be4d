"""Command line entry point invoked by the shell hook."""

import logging
import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer

from .config import find_config_file
from .config import load_directory_config
from .engine import ScopeEngine
from .exceptions import ConfigValidationError
from .log import setup_logging
from .models import DenvPaths
from .models import HookResult
from .models import Shell
from .render import hook_snippet
from .render import render_script
from .resolver import InstalledSoftwareResolver
from .state import read_state
from .state import state_mutation

logger = logging.getLogger(__name__)

# sysexits.h codes, as the shell hook only tells success from failure
EX_SOFTWARE = 70
EX_CONFIG = 78

app = typer.Typer(
    name="denv",
    help="Load and unload directory-scoped environments as you cd around.",
    no_args_is_help=True,
    add_completion=False,
)


@dataclass(frozen=True)
class Options:
    """Global options shared by every command."""

    config_filename: str | None = None
    home: Path | None = None
    verbose: int = 0
    quiet: bool = False
    no_color: bool = False

    def paths(self, environ: Mapping[str, str]) -> DenvPaths:
        if self.home is not None:
            return DenvPaths(home=self.home.expanduser())
        return DenvPaths.default(environ)

    def command_line(self) -> str:
        """denv invocation carrying these options, for the hook to call back."""
        args = ["denv"]
        if self.config_filename:
            args += ["--config", self.config_filename]
        if self.home is not None:
            args += ["--home", str(self.home)]
        if self.quiet:
            args.append("--quiet")
        elif self.verbose:
            args.append("-" + "v" * self.verbose)
        if self.no_color:
            args.append("--no-color")
        return " ".join(shlex.quote(arg) for arg in args)


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(
        None, "--config", "-f", help="Config file name to look for instead of denv.yml/denv.yaml"
    ),
    home: Path | None = typer.Option(None, "--home", help="denv home directory (default: $DENV_HOME or ~/.denv)"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Print more logs per occurrence"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Don't print any logs"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable logs color"),
):
    """Directory-scoped environments for bash and zsh."""
    setup_logging(verbose=verbose, quiet=quiet, with_color=not no_color)
    ctx.obj = Options(config_filename=config, home=home, verbose=verbose, quiet=quiet, no_color=no_color)


@app.command()
def hook(ctx: typer.Context, shell: Shell = typer.Argument(..., help="Target shell")):
    """Print the hook to eval from your shell rc file."""
    options: Options = ctx.obj
    typer.echo(hook_snippet(shell, command=options.command_line()), nl=False)


@app.command("export")
def export_(ctx: typer.Context, shell: Shell = typer.Argument(..., help="Target shell")):
    """Handle a directory change and print the script to eval."""
    options: Options = ctx.obj
    environ = os.environ
    directory = _current_directory(environ)
    config_present = find_config_file(directory, options.config_filename) is not None
    engine = _build_engine(options, environ)
    logger.debug(f"{shell.value} hook event in {directory} (config present: {config_present})")
    _emit(engine.handle(directory, config_present, environ))


@app.command()
def reload(ctx: typer.Context):
    """Load the config of the current directory, even if already loaded."""
    options: Options = ctx.obj
    environ = os.environ
    engine = _build_engine(options, environ)
    _emit(engine.reload(_current_directory(environ), environ))


@app.command()
def unload(ctx: typer.Context):
    """Unload the active scope."""
    options: Options = ctx.obj
    engine = _build_engine(options, os.environ)
    _emit(engine.unload())


# ===== Private Helpers =====


def _build_engine(options: Options, environ: Mapping[str, str]) -> ScopeEngine:
    def loader(directory: Path):
        return load_directory_config(directory, options.config_filename)

    return ScopeEngine(
        resolver=InstalledSoftwareResolver(options.paths(environ)),
        loader=loader,
        state=read_state(environ),
    )


def _current_directory(environ: Mapping[str, str]) -> Path:
    # Prefer the shell's logical directory so symlinked paths match what the user typed
    pwd = environ.get("PWD")
    if pwd and os.path.isabs(pwd) and os.path.isdir(pwd):
        return Path(pwd)
    return Path.cwd()


def _emit(result: HookResult) -> None:
    """Print the script of `result` on stdout and report problems on stderr."""
    for warning in result.warnings:
        logger.warning(warning)

    if result.changed or result.state_changed:
        script = render_script([*result.mutations, state_mutation(result.state)])
        typer.echo(script, nl=False)

    if result.error is not None:
        for line in result.error.describe().splitlines():
            logger.error(line)
        code = EX_CONFIG if isinstance(result.error, ConfigValidationError) else EX_SOFTWARE
        raise typer.Exit(code=code)


def run() -> None:
    """Console script entry point."""
    app()
