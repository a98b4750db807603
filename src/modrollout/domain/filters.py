"""Include/exclude name filters for the managed module set."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from fnmatch import fnmatchcase


def _matches(name: str, patterns: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(fnmatchcase(lowered, p.lower()) for p in patterns)


def select_names(
    names: Iterable[str],
    include: Sequence[str],
    exclude: Sequence[str] = (),
) -> list[str]:
    """Return names matching any *include* glob and no *exclude* glob.

    Matching is case-insensitive, as module names are in the account.
    Input order is preserved.
    """
    return [n for n in names if _matches(n, include) and not _matches(n, exclude)]
