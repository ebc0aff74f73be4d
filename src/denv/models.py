"""Data models for denv."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from pathlib import Path
from pathlib import PurePosixPath

from .exceptions import DenvError

VarValue = bool | int | float | str


class Shell(Enum):
    """Shells the emitted scripts and hooks target."""

    BASH = "bash"
    ZSH = "zsh"


class Software(Enum):
    """Recognized software identifiers for the `softwares` section.

    Extend this enumeration to support another tool; the validator and the
    resolver both key off its values.
    """

    CHART_TESTING = "chart-testing"
    TERRAFORM = "terraform"

    @classmethod
    def from_key(cls, key: str) -> "Software | None":
        for software in cls:
            if software.value == key:
                return software
        return None


@dataclass(frozen=True)
class Variable:
    """One `set` entry of a config file."""

    name: str
    value: VarValue

    def rendered_value(self) -> str:
        """Value as the string exported to the shell."""
        if isinstance(self.value, bool):
            return "true" if self.value else "false"
        return str(self.value)


@dataclass(frozen=True)
class ScopeConfig:
    """Validated representation of one config file.

    Attributes:
        variables: Variables to set, in declaration order (names unique)
        softwares: Software versions to put on PATH, in declaration order
        schema_version: Value of the `version` key (informational)
    """

    variables: tuple[Variable, ...] = ()
    softwares: tuple[tuple[Software, str], ...] = ()
    schema_version: str = ""

    @property
    def variable_names(self) -> list[str]:
        return [variable.name for variable in self.variables]


# ===== Environment mutations =====


@dataclass(frozen=True)
class SetVar:
    name: str
    value: str


@dataclass(frozen=True)
class UnsetVar:
    name: str


@dataclass(frozen=True)
class RestoreVar:
    """Put a variable back to its pre-load value, unsetting it when `previous` is None."""

    name: str
    previous: str | None


EnvMutation = SetVar | UnsetVar | RestoreVar


@dataclass(frozen=True)
class ScopeSnapshot:
    """Pre-load values of every variable a scope sets.

    Entries keep capture order so restore output is stable.
    """

    entries: tuple[tuple[str, str | None], ...] = ()

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.entries]

    def overlay(self, environ: Mapping[str, str]) -> dict[str, str]:
        """Return `environ` as it will look once this snapshot is restored."""
        restored = dict(environ)
        for name, previous in self.entries:
            if previous is None:
                restored.pop(name, None)
            else:
                restored[name] = previous
        return restored


@dataclass(frozen=True)
class ActiveScope:
    """The single scope currently applied to the shell."""

    root: PurePosixPath
    snapshot: ScopeSnapshot

    def contains(self, directory: PurePosixPath) -> bool:
        """Whether `directory` is the scope root or one of its descendants.

        Compares whole path segments, so `/foo/bar` is not inside `/foo/ba`.
        """
        root_parts = self.root.parts
        dir_parts = directory.parts
        inside = dir_parts[: len(root_parts)] == root_parts
        assert inside == directory.is_relative_to(self.root), "path containment disagreement"
        return inside


@dataclass
class HookResult:
    """Outcome of one engine invocation.

    Attributes:
        mutations: Mutations to apply, in order (empty for a no-op)
        state: Active scope after the event (None when idle)
        previous: Active scope before the event
        error: Why a load was aborted, if it was
        warnings: Non-fatal problems, e.g. names that could not be restored
    """

    mutations: list[EnvMutation] = field(default_factory=list)
    state: ActiveScope | None = None
    previous: ActiveScope | None = None
    error: DenvError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        return bool(self.mutations)

    @property
    def state_changed(self) -> bool:
        """Whether the active scope differs from the one before the event."""
        return self.state != self.previous


@dataclass(frozen=True)
class DenvPaths:
    """Filesystem locations used by denv.

    Attributes:
        home: denv home directory (holds installed softwares)
    """

    home: Path

    @property
    def softwares(self) -> Path:
        return self.home / "softwares"

    def software_dir(self, software: Software, version: str) -> Path:
        return self.softwares / software.value / version

    @classmethod
    def default(cls, environ: Mapping[str, str] | None = None) -> "DenvPaths":
        """Build paths from `DENV_HOME`, falling back to `~/.denv`."""
        environ = environ if environ is not None else os.environ
        home = environ.get("DENV_HOME")
        if home:
            return cls(home=Path(home).expanduser())
        return cls(home=Path.home() / ".denv")
