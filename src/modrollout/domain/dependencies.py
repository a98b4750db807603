"""Gallery dependency-string parsing.

The gallery encodes a module's dependencies as a pipe-separated list of
``name:versionSpec:targetFramework`` entries, e.g.::

    Az.Accounts:[2.12.1, ):|Az.Resources:[6.0.0, ):

Pure functions, no infrastructure dependencies.
"""

from __future__ import annotations

from modrollout.domain.errors import MalformedDependencyEntry
from modrollout.domain.packages import DependencyRef

_ENTRY_SEP = "|"
_TOKEN_SEP = ":"


def parse_dependencies(raw: str | None) -> list[DependencyRef]:
    """Decode *raw* into :class:`DependencyRef` records.

    Returns an empty list for ``None`` or blank input. Raises
    :class:`MalformedDependencyEntry` when an entry does not split into
    exactly three tokens.
    """
    if raw is None or not raw.strip():
        return []

    refs: list[DependencyRef] = []
    for entry in raw.split(_ENTRY_SEP):
        if not entry.strip():
            continue
        tokens = entry.split(_TOKEN_SEP)
        if len(tokens) != 3:
            raise MalformedDependencyEntry(entry, raw)
        name, version_spec, framework = (t.strip() for t in tokens)
        if not name:
            raise MalformedDependencyEntry(entry, raw)
        refs.append(DependencyRef(name=name, version_spec=version_spec, target_framework=framework))
    return refs
