"""Recording and restoring pre-load variable values."""

from collections.abc import Iterable
from collections.abc import Mapping

from .models import EnvMutation
from .models import RestoreVar
from .models import ScopeSnapshot


def capture(names: Iterable[str], environ: Mapping[str, str]) -> ScopeSnapshot:
    """Record the current value of each name.

    Args:
        names: Variable names a scope is about to set (duplicates are ignored)
        environ: Environment as seen by the invoking shell; never modified

    Returns:
        Snapshot with one entry per distinct name, in first-seen order
    """
    entries: list[tuple[str, str | None]] = []
    seen: set[str] = set()
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        entries.append((name, environ.get(name)))
    return ScopeSnapshot(entries=tuple(entries))


def restore(snapshot: ScopeSnapshot) -> list[EnvMutation]:
    """Mutations that put every recorded name back to its captured value.

    Args:
        snapshot: Snapshot taken at load time

    Returns:
        One RestoreVar per entry, in capture order
    """
    return [RestoreVar(name, previous) for name, previous in snapshot.entries]
