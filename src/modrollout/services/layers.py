"""LayerBuilder — order the managed modules into dependency layers.

Layer 0 is the foundation module by construction. Each following pass walks
the modules not yet placed, in input order, and places every module whose
in-set dependencies all sit in earlier layers; the rest are deferred to the
next pass. Dependencies outside the managed set count as satisfied.

Gallery lookups happen lazily, the first time a pass reaches a module, so
a run only pays for the modules it gets to. A pass that places nothing and
drops nothing means the remaining modules can never be placed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from modrollout.domain.dependencies import parse_dependencies
from modrollout.domain.errors import PackageNotFound, UnsatisfiableDependencies
from modrollout.domain.packages import Layer, PackageDescriptor
from modrollout.infrastructure.graph.engine import DependencyGraph
from modrollout.services.telemetry import trace_span

if TYPE_CHECKING:
    from collections.abc import Sequence

    from modrollout.services.catalog import CatalogClient

log = structlog.get_logger(__name__)


@dataclass
class LayerPlan:
    """Output of :meth:`LayerBuilder.build`."""

    layers: list[Layer]
    packages: dict[str, PackageDescriptor]
    excluded: list[str] = field(default_factory=list)
    graph: DependencyGraph | None = None

    @property
    def names(self) -> list[str]:
        return [name for layer in self.layers for name in layer]

    def to_dict(self) -> dict[str, Any]:
        layers: list[dict[str, Any]] = []
        for layer in self.layers:
            modules = []
            for name in layer:
                pkg = self.packages.get(name)
                modules.append(
                    {
                        "name": name,
                        "installed_version": pkg.installed_version if pkg else None,
                        "latest_version": pkg.latest_version if pkg else None,
                        "up_to_date": pkg.up_to_date if pkg else None,
                    }
                )
            layers.append({"index": layer.index, "modules": modules})
        return {
            "layer_count": len(self.layers),
            "module_count": sum(len(layer) for layer in self.layers),
            "dependency_edges": self.graph.edge_count if self.graph else 0,
            "layers": layers,
            "excluded": list(self.excluded),
        }


class LayerBuilder:
    """Builds the ordered layer sequence for a managed module set."""

    def __init__(self, catalog: CatalogClient) -> None:
        self._catalog = catalog

    def build(self, installed: Sequence[PackageDescriptor], foundation: str) -> LayerPlan:
        """Layer *installed* with *foundation* first.

        Raises :class:`UnsatisfiableDependencies` when a pass makes no
        progress, and lets :class:`MalformedDependencyEntry` propagate.
        """
        seen: set[str] = set()
        by_name: dict[str, PackageDescriptor] = {}
        for pkg in installed:
            if pkg.name.casefold() not in seen:
                seen.add(pkg.name.casefold())
                by_name[pkg.name] = pkg

        graph = DependencyGraph([*by_name, foundation])
        # Layer 0 carries the account's spelling of the foundation when installed.
        foundation = graph.managed_name(foundation) or foundation
        packages: dict[str, PackageDescriptor] = {}
        excluded: list[str] = []

        if foundation in by_name:
            try:
                packages[foundation] = self._catalog.describe(by_name[foundation])
            except PackageNotFound:
                log.warning("package.not_found", package=foundation, foundation=True)
                packages[foundation] = by_name[foundation]
        else:
            log.info("foundation.not_managed", package=foundation)

        layers = [Layer(index=0, names=(foundation,))]
        placed = {foundation}
        remaining = [name for name in by_name if name != foundation]

        with trace_span("layering") as span:
            while remaining:
                current: list[str] = []
                deferred: list[str] = []
                dropped = 0
                for name in remaining:
                    if name not in packages:
                        try:
                            packages[name] = self._resolve(by_name[name], graph)
                        except PackageNotFound as exc:
                            log.warning("package.not_found", package=name, version=exc.version)
                            excluded.append(name)
                            graph.discard(name)
                            dropped += 1
                            continue
                    if all(dep in placed for dep in graph.dependencies_of(name)):
                        current.append(name)
                    else:
                        deferred.append(name)

                if current:
                    layer = Layer(index=len(layers), names=tuple(current))
                    layers.append(layer)
                    placed.update(current)
                    log.info("layer.finalized", layer=layer.index, modules=list(current))
                elif not dropped:
                    stuck = {
                        name: [d for d in graph.dependencies_of(name) if d not in placed]
                        for name in deferred
                    }
                    cycles = graph.cycles_among(deferred)
                    log.error("layering.stalled", stuck=stuck, cycles=cycles)
                    raise UnsatisfiableDependencies(stuck, cycles=cycles)
                remaining = deferred

            if span:
                span.annotate("layers", len(layers))
                span.annotate("excluded", len(excluded))

        return LayerPlan(layers=layers, packages=packages, excluded=excluded, graph=graph)

    def _resolve(self, package: PackageDescriptor, graph: DependencyGraph) -> PackageDescriptor:
        described = self._catalog.describe(package)
        refs = parse_dependencies(described.raw_dependencies)
        in_set = graph.record(package.name, (ref.name for ref in refs))
        log.debug(
            "package.dependencies",
            package=package.name,
            latest=described.latest_version,
            dependencies={ref.name: ref.display_spec for ref in refs},
            in_set=in_set,
        )
        return described
