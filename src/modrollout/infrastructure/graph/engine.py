"""DependencyGraph — NetworkX record of the managed set's resolved dependencies.

Built incrementally while layering, one node per managed module and one
edge ``module -> dependency`` per in-set dependency. Rebuilt per run, no
cross-run cache. Used for stall diagnostics (cycle detection) and for
reporting edge counts.

Module names are case-insensitive: nodes are keyed on ``name.casefold()``
and carry the managed spelling, which is what every query returns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import networkx as nx

if TYPE_CHECKING:
    from collections.abc import Iterable

_Graph: TypeAlias = nx.DiGraph


def _key(name: str) -> str:
    return name.casefold()


class DependencyGraph:
    """Directed module -> dependency graph over the managed set."""

    def __init__(self, managed: Iterable[str]) -> None:
        self._graph: _Graph = nx.DiGraph()
        for name in managed:
            if _key(name) not in self._graph:
                self._graph.add_node(_key(name), name=name)

    @property
    def graph(self) -> _Graph:
        return self._graph

    def _name(self, key: str) -> str:
        return self._graph.nodes[key]["name"]

    def is_managed(self, name: str) -> bool:
        return _key(name) in self._graph

    def managed_name(self, name: str) -> str | None:
        """The managed spelling of *name*, or None when it is outside the set."""
        key = _key(name)
        return self._name(key) if key in self._graph else None

    def record(self, name: str, dependencies: Iterable[str]) -> list[str]:
        """Record *name*'s dependencies; return the in-set ones, in order.

        Dependencies outside the managed set are not added to the graph.
        Returned names use the managed spelling.
        """
        source = _key(name)
        in_set: list[str] = []
        for dep in dependencies:
            target = _key(dep)
            if target in self._graph and target != source and not self._graph.has_edge(
                source, target
            ):
                self._graph.add_edge(source, target)
                in_set.append(self._name(target))
        return in_set

    def dependencies_of(self, name: str) -> list[str]:
        """In-set dependencies of *name* currently in the graph."""
        key = _key(name)
        if key not in self._graph:
            return []
        return [self._name(dep) for dep in self._graph.successors(key)]

    def discard(self, name: str) -> None:
        """Drop a module that left the run (e.g. not found in the gallery)."""
        key = _key(name)
        if key in self._graph:
            self._graph.remove_node(key)

    def cycles_among(self, names: Iterable[str]) -> list[list[str]]:
        """Elementary dependency cycles restricted to *names*, shortest first."""
        sub = self._graph.subgraph(_key(n) for n in names)
        cycles = [[self._name(k) for k in c] for c in nx.simple_cycles(sub)]
        cycles.sort(key=lambda c: (len(c), c))
        return cycles

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()
