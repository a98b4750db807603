"""Rollout error taxonomy.

Every failure the engine can raise derives from :class:`RolloutError`. The
service layer converts them into :class:`~modrollout.services.result.ServiceError`
payloads using ``code`` and ``detail``. Only :class:`PackageNotFound` is
non-fatal; callers log it and drop the package from the run.
"""

from __future__ import annotations

from typing import Any


class RolloutError(Exception):
    """Base class for all rollout failures."""

    code = "ROLLOUT_FAILED"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail or {}


class PackageNotFound(RolloutError):
    """The registry has no entry matching the requested module."""

    code = "NOT_FOUND"

    def __init__(self, name: str, *, version: str | None = None) -> None:
        wanted = f"{name} {version}" if version else name
        super().__init__(
            f"Module {wanted} not found in the gallery",
            detail={"name": name, "version": version},
        )
        self.name = name
        self.version = version


class MalformedDependencyEntry(RolloutError):
    """A dependency entry did not have exactly three ``:``-separated tokens."""

    code = "MALFORMED_DEPENDENCY"

    def __init__(self, entry: str, raw: str) -> None:
        super().__init__(
            f"Malformed dependency entry {entry!r} (expected name:version:framework)",
            detail={"entry": entry, "raw": raw},
        )
        self.entry = entry


class UnsatisfiableDependencies(RolloutError):
    """Layering stalled: the remaining modules can never be placed."""

    code = "UNSATISFIABLE_DEPENDENCIES"

    def __init__(
        self,
        stuck: dict[str, list[str]],
        *,
        cycles: list[list[str]] | None = None,
    ) -> None:
        listing = "; ".join(f"{name} -> {', '.join(deps)}" for name, deps in stuck.items())
        super().__init__(
            f"Cannot order {len(stuck)} module(s): {listing}",
            detail={"stuck": stuck, "cycles": cycles or []},
        )
        self.stuck = stuck
        self.cycles = cycles or []


class ImportFailed(RolloutError):
    """An import job finished in the ``Failed`` state."""

    code = "IMPORT_FAILED"

    def __init__(self, name: str, *, state: str = "Failed", reason: str | None = None) -> None:
        msg = f"Import of module {name} finished with state {state}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg, detail={"name": name, "state": state, "reason": reason})
        self.name = name
        self.state = state


class RedirectResolutionFailure(RolloutError):
    """The package download URL never redirected to a ``.nupkg`` location."""

    code = "REDIRECT_RESOLUTION_FAILED"

    def __init__(self, url: str, *, hops: int, reason: str) -> None:
        super().__init__(
            f"Could not resolve package content for {url} after {hops} hop(s): {reason}",
            detail={"url": url, "hops": hops},
        )
        self.url = url
        self.hops = hops


class RegistryResponseError(RolloutError):
    """The gallery returned a response that does not have the expected shape."""

    code = "REGISTRY_ERROR"


class AccountRequestError(RolloutError):
    """A call against the Automation account failed."""

    code = "ACCOUNT_ERROR"
