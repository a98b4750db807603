"""GalleryClient — PowerShell Gallery (NuGet v2 OData) access over httpx.

Three calls back the catalog:

- ``Search()`` filtered by module name and ``IsLatestVersion`` (or an exact
  ``Version eq '...'`` when the operator forces a version).
- A GET against the entry's detail URL for the authoritative version and
  dependency string.
- A redirect walk from the version-templated package URL to the ``.nupkg``
  blob the Automation service downloads.

Responses are requested as JSON and decoded into :class:`SearchHit` and
:class:`PackageDetail` here; anything else raises
:class:`RegistryResponseError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from modrollout.domain.errors import RedirectResolutionFailure, RegistryResponseError

if TYPE_CHECKING:
    from modrollout.config.models import GalleryConfig

logger = logging.getLogger(__name__)

LATEST_FILTER = "IsLatestVersion"
_PAGE_SIZE = 40


def version_filter(version: str | None) -> str:
    """OData ``$filter`` selecting *version*, or the latest when None."""
    if version is None:
        return LATEST_FILTER
    return f"Version eq '{version}'"


@dataclass(frozen=True)
class SearchHit:
    """One ``Search()`` result row."""

    title: str
    detail_url: str


@dataclass(frozen=True)
class PackageDetail:
    """Authoritative metadata for one module version."""

    name: str
    version: str
    dependencies: str | None


def _entries(payload: Any) -> list[dict[str, Any]]:
    """Unwrap OData verbose JSON: ``{"d": {"results": [...]}}`` or ``{"d": [...]}``."""
    if not isinstance(payload, dict) or "d" not in payload:
        raise RegistryResponseError("Gallery response is missing the 'd' envelope")
    body = payload["d"]
    if isinstance(body, dict) and "results" in body:
        body = body["results"]
    if isinstance(body, dict):
        body = [body]
    if not isinstance(body, list) or not all(isinstance(e, dict) for e in body):
        raise RegistryResponseError("Gallery response entries are not objects")
    return body


def _hit(entry: dict[str, Any]) -> SearchHit:
    title = entry.get("Id") or entry.get("Title")
    meta = entry.get("__metadata")
    uri = meta.get("uri") if isinstance(meta, dict) else None
    if not isinstance(title, str) or not isinstance(uri, str):
        raise RegistryResponseError(
            "Gallery search entry lacks a title or detail URL",
            detail={"entry": entry},
        )
    return SearchHit(title=title, detail_url=uri)


def _detail(entry: dict[str, Any]) -> PackageDetail:
    name = entry.get("Id") or entry.get("Title") or ""
    version = entry.get("Version")
    deps = entry.get("Dependencies")
    if not isinstance(version, str) or not version:
        raise RegistryResponseError(
            "Gallery detail entry has no Version",
            detail={"entry": entry},
        )
    if deps is not None and not isinstance(deps, str):
        raise RegistryResponseError(
            "Gallery detail entry has a non-string Dependencies field",
            detail={"entry": entry},
        )
    return PackageDetail(name=str(name), version=version, dependencies=deps or None)


class GalleryClient:
    """Thin synchronous client for the gallery feed."""

    def __init__(self, config: GalleryConfig, *, client: httpx.Client | None = None) -> None:
        self._config = config
        self._owns_client = client is None
        self._http = client or httpx.Client(
            timeout=config.timeout_seconds,
            follow_redirects=False,
        )

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = self._http.get(
                url, params=params, headers={"Accept": "application/json"}
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise RegistryResponseError(
                f"Gallery request failed with HTTP {exc.response.status_code}: {url}",
                detail={"url": url, "status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise RegistryResponseError(
                f"Gallery request failed: {exc}", detail={"url": url}
            ) from exc
        except ValueError as exc:
            raise RegistryResponseError(
                f"Gallery returned a non-JSON body for {url}", detail={"url": url}
            ) from exc

    def search_by_name(self, name: str, filter_expr: str = LATEST_FILTER) -> list[SearchHit]:
        """Search the feed for *name* under an OData *filter_expr*."""
        params = {
            "$filter": filter_expr,
            "searchTerm": f"'{name}'",
            "targetFramework": "''",
            "includePrerelease": "false",
            "$skip": "0",
            "$top": str(_PAGE_SIZE),
        }
        payload = self._get_json(f"{self._config.base_url.rstrip('/')}/Search()", params)
        hits = [_hit(e) for e in _entries(payload)]
        logger.debug("Gallery search %r (%s): %d hit(s)", name, filter_expr, len(hits))
        return hits

    def fetch_detail(self, detail_url: str) -> PackageDetail:
        """Fetch the entry behind a search hit."""
        entries = _entries(self._get_json(detail_url))
        if len(entries) != 1:
            raise RegistryResponseError(
                f"Expected one gallery entry at {detail_url}, got {len(entries)}",
                detail={"url": detail_url},
            )
        return _detail(entries[0])

    def resolve_content_location(self, name: str, version: str) -> str:
        """Follow redirects from the package URL until a ``.nupkg`` target appears.

        At most ``max_redirects`` hops are taken.
        """
        start = self._config.package_url.format(name=name, version=version)
        suffix = self._config.package_suffix.lower()
        current = start
        for hop in range(1, self._config.max_redirects + 1):
            try:
                response = self._http.get(current, follow_redirects=False)
            except httpx.HTTPError as exc:
                raise RedirectResolutionFailure(start, hops=hop, reason=str(exc)) from exc
            location = response.headers.get("location")
            if not response.is_redirect or not location:
                raise RedirectResolutionFailure(
                    start,
                    hops=hop,
                    reason=f"HTTP {response.status_code} without a redirect",
                )
            current = str(response.url.join(location))
            if suffix in current.lower():
                logger.debug("Resolved %s %s to %s in %d hop(s)", name, version, current, hop)
                return current
        raise RedirectResolutionFailure(
            start,
            hops=self._config.max_redirects,
            reason="redirect limit exceeded",
        )
