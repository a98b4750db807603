"""CatalogClient — resolve a module name to its gallery version and dependencies.

Two chained registry calls: a name search (latest, or a forced version
when the operator overrides it) and a fetch of the matching entry's detail
URL. Results are memoised for the lifetime of the client, which is one run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from modrollout.domain.errors import PackageNotFound
from modrollout.infrastructure.gallery import version_filter

if TYPE_CHECKING:
    from collections.abc import Mapping

    from modrollout.domain.packages import PackageDescriptor
    from modrollout.infrastructure.gallery import PackageDetail
    from modrollout.services.context import Registry

log = structlog.get_logger(__name__)


class CatalogClient:
    """Gallery lookups for one run; module names match case-insensitively."""

    def __init__(self, registry: Registry, overrides: Mapping[str, str] | None = None) -> None:
        self._registry = registry
        self._overrides = {k.casefold(): v for k, v in (overrides or {}).items()}
        self._cache: dict[str, PackageDetail] = {}

    def forced_version(self, name: str) -> str | None:
        return self._overrides.get(name.casefold())

    def resolve(self, name: str) -> PackageDetail:
        """Return the gallery detail for *name*.

        Raises :class:`PackageNotFound` when no search hit can be matched to
        the exact module name.
        """
        cached = self._cache.get(name.casefold())
        if cached is not None:
            return cached

        forced = self.forced_version(name)
        hits = self._registry.search_by_name(name, version_filter(forced))
        if len(hits) != 1:
            hits = [h for h in hits if h.title.casefold() == name.casefold()]
        if not hits:
            raise PackageNotFound(name, version=forced)
        if len(hits) > 1:
            log.debug("catalog.ambiguous", package=name, hits=len(hits))

        detail = self._registry.fetch_detail(hits[0].detail_url)
        log.debug(
            "catalog.resolved",
            package=name,
            version=detail.version,
            forced=forced is not None,
        )
        self._cache[name.casefold()] = detail
        return detail

    def describe(self, package: PackageDescriptor) -> PackageDescriptor:
        """Return *package* carrying its gallery version and dependency string."""
        detail = self.resolve(package.name)
        return package.with_catalog(detail.version, detail.dependencies)
