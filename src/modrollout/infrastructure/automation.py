"""AutomationAccount — Azure Automation module management over ARM REST.

Covers the three account-side capabilities of a rollout: listing installed
modules, submitting an import-from-URL, and reading a module's
provisioning state. Authentication is a bearer token supplied by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from modrollout.domain.errors import AccountRequestError
from modrollout.domain.filters import select_names
from modrollout.domain.packages import InstallJob, JobState, PackageDescriptor

if TYPE_CHECKING:
    from collections.abc import Sequence

    from modrollout.config.models import AccountConfig

logger = logging.getLogger(__name__)

_REQUIRED = ("subscription_id", "resource_group", "account_name")


@dataclass(frozen=True)
class ModuleStatus:
    """Provisioning state of one module as reported by the account."""

    name: str
    state: JobState
    raw_state: str
    error: str | None = None


def _error_message(props: dict[str, Any]) -> str | None:
    err = props.get("error")
    if isinstance(err, dict):
        msg = err.get("message")
        return str(msg) if msg else None
    return None


class AutomationAccount:
    """Client for one Automation account's ``modules`` collection."""

    def __init__(
        self,
        config: AccountConfig,
        token: str | None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._owns_client = client is None
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = client or httpx.Client(timeout=config.timeout_seconds)
        self._headers = headers
        self._base = (
            f"{config.arm_endpoint.rstrip('/')}/subscriptions/{config.subscription_id}"
            f"/resourceGroups/{config.resource_group}"
            f"/providers/Microsoft.Automation/automationAccounts/{config.account_name}"
        )

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _module_url(self, name: str) -> str:
        return f"{self._base}/modules/{quote(name, safe='')}"

    def _ensure_configured(self) -> None:
        missing = [f for f in _REQUIRED if not getattr(self._config, f)]
        if missing:
            raise AccountRequestError(
                f"Automation account is not configured: missing {', '.join(missing)}",
                detail={"missing": missing},
            )

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        self._ensure_configured()
        params = kwargs.pop("params", None)
        if params is None and "api-version=" not in url:
            params = {"api-version": self._config.api_version}
        try:
            response = self._http.request(
                method, url, params=params, headers=self._headers, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise AccountRequestError(
                f"{method} {url} failed with HTTP {exc.response.status_code}",
                detail={"url": url, "status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise AccountRequestError(f"{method} {url} failed: {exc}", detail={"url": url}) from exc
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise AccountRequestError(
                f"{method} {url} returned a non-JSON body", detail={"url": url}
            ) from exc

    def list_installed(
        self,
        include: Sequence[str],
        exclude: Sequence[str] = (),
    ) -> list[PackageDescriptor]:
        """All modules in the account whose names pass the include/exclude globs."""
        found: dict[str, PackageDescriptor] = {}
        url: str | None = f"{self._base}/modules"
        while url:
            page = self._request("GET", url)
            if not isinstance(page, dict) or not isinstance(page.get("value", []), list):
                raise AccountRequestError("Module listing has an unexpected shape")
            for item in page.get("value", []):
                name = item.get("name") if isinstance(item, dict) else None
                if not isinstance(name, str):
                    raise AccountRequestError(
                        "Module listing entry has no name", detail={"entry": item}
                    )
                props = item.get("properties") or {}
                found[name] = PackageDescriptor(name=name, installed_version=props.get("version"))
            url = page.get("nextLink")

        selected = select_names(found, include, exclude)
        logger.debug(
            "Account lists %d module(s), %d selected by filters", len(found), len(selected)
        )
        return [found[n] for n in selected]

    def submit_install(self, name: str, content_url: str) -> InstallJob:
        """Start an asynchronous import of *name* from *content_url*."""
        body = {"properties": {"contentLink": {"uri": content_url}}}
        self._request("PUT", self._module_url(name), json=body)
        return InstallJob(package_name=name, content_url=content_url)

    def poll_status(self, job: InstallJob) -> ModuleStatus:
        """Read the current provisioning state of *job*'s module."""
        payload = self._request("GET", self._module_url(job.package_name))
        props = payload.get("properties") if isinstance(payload, dict) else None
        if not isinstance(props, dict):
            raise AccountRequestError(
                f"Module {job.package_name} status has no properties",
                detail={"name": job.package_name},
            )
        raw = str(props.get("provisioningState") or "")
        return ModuleStatus(
            name=job.package_name,
            state=JobState.parse(raw),
            raw_state=raw,
            error=_error_message(props),
        )
