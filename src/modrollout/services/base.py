"""BaseService — foundation for the rollout services.

Every service receives a :class:`RunContext` at construction time. The run
context provides the gallery and account collaborators, the rollout
settings, and the sleep function used while waiting on the account.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from modrollout.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from modrollout.domain.errors import RolloutError
    from modrollout.services.context import RunContext


class BaseService:
    """Base for service-layer classes.

    Usage::

        class UpdateService(BaseService):
            def plan(self) -> ServiceResult:
                installed = self._run.account.list_installed(...)
                ...
    """

    def __init__(self, run: RunContext) -> None:
        self._run = run

    @staticmethod
    def _failure(
        op: str,
        exc: RolloutError,
        *,
        data: dict | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        """Convert a fatal rollout error into a failed ServiceResult."""
        return ServiceResult(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError(code=exc.code, message=exc.message, detail=exc.detail),
        )
