"""Scope state machine: decides when to load and unload directory scopes."""

import logging
import posixpath
from collections.abc import Callable
from collections.abc import Mapping
from pathlib import Path
from pathlib import PurePath
from pathlib import PurePosixPath

from .config import is_shell_identifier
from .config import load_directory_config
from .exceptions import ConfigValidationError
from .exceptions import VersionResolutionError
from .models import ActiveScope
from .models import EnvMutation
from .models import HookResult
from .models import ScopeConfig
from .models import SetVar
from .resolver import VersionResolver
from .snapshot import capture
from .snapshot import restore

logger = logging.getLogger(__name__)

PATH_VAR_NAME = "PATH"

ConfigLoader = Callable[[Path], ScopeConfig]


class ScopeEngine:
    """Applies and retracts directory scopes as the shell changes directory.

    The engine holds a single active scope, never a stack: entering a nested
    directory with its own config replaces the enclosing scope. It never
    touches the process environment; every decision comes back as a list of
    mutations for the shell to apply, and `state` only changes once a whole
    event has been computed.

    Args:
        resolver: Resolves `softwares` entries into PATH directories
        loader: Loads the ScopeConfig anchored at a directory
        state: Active scope carried over from a previous invocation
    """

    def __init__(
        self,
        resolver: VersionResolver,
        loader: ConfigLoader = load_directory_config,
        state: ActiveScope | None = None,
    ):
        self.resolver = resolver
        self.loader = loader
        self.state = state

    # ===== Events =====

    def handle(
        self,
        directory: str | PurePath,
        config_present: bool,
        environ: Mapping[str, str],
    ) -> HookResult:
        """Process one directory-change event.

        Unloads the active scope when `directory` left it, then loads the
        config found in `directory` unless that directory is already the
        active root. Repeating an event is a no-op.

        Args:
            directory: Absolute current working directory
            config_present: Whether a config file sits directly in `directory`
            environ: Environment of the invoking shell (read only)

        Returns:
            HookResult with the mutations to apply and the resulting state
        """
        directory = _normalize(directory)
        state = self.state
        result = HookResult(state=state, previous=state)

        if state is not None and not state.contains(directory):
            logger.info(f"Leaving scope {state.root}")
            result.mutations.extend(self._unload_mutations(state, result.warnings))
            environ = state.snapshot.overlay(environ)
            state = None

        if config_present and (state is None or state.root != directory):
            state = self._load_into(result, directory, state, environ)

        self.state = state
        result.state = state
        return result

    def reload(self, directory: str | PurePath, environ: Mapping[str, str]) -> HookResult:
        """Load the config in `directory` even if it is already the active root.

        Config edits are never picked up on their own; this is the explicit
        way to apply them. The previous scope is replaced on success and kept
        on failure.
        """
        directory = _normalize(directory)
        result = HookResult(state=self.state, previous=self.state)
        self.state = self._load_into(result, directory, self.state, environ)
        result.state = self.state
        return result

    def unload(self) -> HookResult:
        """Retract the active scope, if any."""
        result = HookResult(previous=self.state)
        if self.state is not None:
            logger.info(f"Unloading scope {self.state.root}")
            result.mutations.extend(self._unload_mutations(self.state, result.warnings))
        self.state = None
        return result

    # ===== Private Helpers =====

    def _load_into(
        self,
        result: HookResult,
        directory: PurePosixPath,
        current: ActiveScope | None,
        environ: Mapping[str, str],
    ) -> ActiveScope | None:
        """Load `directory` into `result`, replacing `current` on success.

        Returns:
            The state after the attempt (`current` unchanged on failure)
        """
        # Snapshot against the environment as it will be once `current` is retracted
        base_environ = current.snapshot.overlay(environ) if current is not None else environ
        try:
            mutations, loaded = self._load(directory, base_environ)
        except ConfigValidationError as e:
            logger.debug(f"Configuration rejected: {e.issues}")
            result.error = e
            return current
        except VersionResolutionError as e:
            result.error = e
            return current

        if current is not None:
            logger.info(f"Replacing scope {current.root}")
            result.mutations.extend(self._unload_mutations(current, result.warnings))
        result.mutations.extend(mutations)
        logger.info(f"Loaded scope {directory}")
        return loaded

    def _load(
        self,
        directory: PurePosixPath,
        environ: Mapping[str, str],
    ) -> tuple[list[EnvMutation], ActiveScope]:
        """Compute the mutations of a scope without applying anything.

        Raises:
            ConfigValidationError: If the config is invalid
            VersionResolutionError: If any software version cannot be resolved
        """
        config = self.loader(Path(directory))
        prefix = self._resolve_path_prefix(directory, config)

        mutations: list[EnvMutation] = [
            SetVar(variable.name, variable.rendered_value()) for variable in config.variables
        ]
        if prefix:
            ambient_path = environ.get(PATH_VAR_NAME)
            fragments = prefix + ([ambient_path] if ambient_path else [])
            mutations.append(SetVar(PATH_VAR_NAME, ":".join(fragments)))

        snapshot = capture([mutation.name for mutation in mutations], environ)
        return mutations, ActiveScope(root=directory, snapshot=snapshot)

    def _resolve_path_prefix(self, directory: PurePosixPath, config: ScopeConfig) -> list[str]:
        """Resolve every software of `config`, all or nothing.

        Returns:
            Distinct directories in config order

        Raises:
            VersionResolutionError: Listing every software that failed
        """
        fragments: list[str] = []
        failures: list[str] = []
        for software, version in config.softwares:
            try:
                fragment = str(self.resolver.resolve(software, version))
            except VersionResolutionError as e:
                logger.debug(f"Unable to resolve {software.value} {version}: {e}")
                failures.append(str(e))
                continue
            if fragment not in fragments:
                fragments.append(fragment)

        if failures:
            raise VersionResolutionError(f"Unable to load {directory}: " + "; ".join(failures))
        return fragments

    def _unload_mutations(self, scope: ActiveScope, warnings: list[str]) -> list[EnvMutation]:
        """Restore mutations for `scope`, skipping names that cannot be restored.

        Skipped names are reported as one aggregated warning.
        """
        mutations: list[EnvMutation] = []
        skipped: list[str] = []
        for mutation in restore(scope.snapshot):
            if is_shell_identifier(mutation.name):
                mutations.append(mutation)
            else:
                skipped.append(mutation.name)
        if skipped:
            names = ", ".join(repr(name) for name in skipped)
            warnings.append(f"Unable to restore {len(skipped)} variable(s) of {scope.root}: {names}")
        return mutations


def _normalize(directory: str | PurePath) -> PurePosixPath:
    path = str(directory)
    if not posixpath.isabs(path):
        raise ValueError(f"Directory must be absolute: {path}")
    return PurePosixPath(posixpath.normpath(path))
