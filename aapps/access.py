"""Row-level tenancy: which usernames' rows a caller may see.

Users sharing a non-empty ``share_group`` label in the roster see each
other's rows; everyone else only sees their own. Every owner-filtered
query builds its predicate from the full visibility set via
``owner_filter`` so each username is bound as its own parameter.
"""
from __future__ import annotations

from typing import Iterable, Sequence

from aapps.models import RosterEntry

Roster = Sequence[RosterEntry]


def visibility_set(username: str, roster: Roster) -> tuple[str, ...]:
    """Return the usernames whose rows ``username`` may read and write.

    Never empty. A caller missing from the roster is treated as a solo
    tenant.
    """
    if not username:
        return ("",)

    group = ""
    for entry in roster:
        if entry.username == username:
            group = entry.share_group
            break

    if not group:
        return (username,)

    shared = _dedupe(entry.username for entry in roster if entry.share_group == group)
    return shared or (username,)


def _dedupe(names: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(names))


def placeholders(count: int) -> str:
    if count <= 0:
        return "?"
    return ",".join("?" * count)


def owner_filter(column: str, usernames: Sequence[str]) -> tuple[str, list[str]]:
    """``column IN (?, ...)`` plus its parameters.

    ``column`` is interpolated and must be a constant from code.
    """
    names = list(usernames) or [""]
    return f"{column} IN ({placeholders(len(names))})", names
