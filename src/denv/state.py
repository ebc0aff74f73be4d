"""Persistence of the active scope in the shell environment.

Every denv invocation is a fresh process, so the active scope travels in the
`DENV_SCOPE` variable that load scripts export and unload scripts unset.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import PurePosixPath

from .exceptions import StateError
from .models import ActiveScope
from .models import EnvMutation
from .models import ScopeSnapshot
from .models import SetVar
from .models import UnsetVar

logger = logging.getLogger(__name__)

STATE_VAR_NAME = "DENV_SCOPE"

STATE_FORMAT_VERSION = 1


def encode_state(scope: ActiveScope) -> str:
    """Serialize an active scope to a single-line JSON string."""
    payload = {
        "v": STATE_FORMAT_VERSION,
        "root": str(scope.root),
        "snapshot": [[name, previous] for name, previous in scope.snapshot.entries],
    }
    return json.dumps(payload, separators=(",", ":"))


def decode_state(raw: str) -> ActiveScope:
    """Parse a value produced by encode_state.

    Raises:
        StateError: If the value is not a valid encoded scope
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StateError(f"Invalid {STATE_VAR_NAME} value: {e}") from e

    if not isinstance(payload, dict) or payload.get("v") != STATE_FORMAT_VERSION:
        raise StateError(f"Unsupported {STATE_VAR_NAME} format")

    root = payload.get("root")
    entries = payload.get("snapshot")
    if not isinstance(root, str) or not root.startswith("/") or not isinstance(entries, list):
        raise StateError(f"Malformed {STATE_VAR_NAME} value")

    snapshot: list[tuple[str, str | None]] = []
    for entry in entries:
        if (
            not isinstance(entry, list)
            or len(entry) != 2
            or not isinstance(entry[0], str)
            or not (entry[1] is None or isinstance(entry[1], str))
        ):
            raise StateError(f"Malformed snapshot entry in {STATE_VAR_NAME}: {entry!r}")
        snapshot.append((entry[0], entry[1]))

    return ActiveScope(root=PurePosixPath(root), snapshot=ScopeSnapshot(entries=tuple(snapshot)))


def read_state(environ: Mapping[str, str]) -> ActiveScope | None:
    """Read the active scope from the environment.

    An unreadable value is logged and treated as no active scope.
    """
    raw = environ.get(STATE_VAR_NAME)
    if not raw:
        return None
    try:
        return decode_state(raw)
    except StateError as e:
        logger.warning(f"Ignoring active scope state: {e}")
        return None


def state_mutation(scope: ActiveScope | None) -> EnvMutation:
    """Mutation that records `scope` (or its absence) in the shell environment."""
    if scope is None:
        return UnsetVar(STATE_VAR_NAME)
    return SetVar(STATE_VAR_NAME, encode_state(scope))
