"""ServiceResult and ServiceError — the universal service contract.

INVARIANT: All public service-layer methods return ServiceResult.
Fatal rollout errors are converted here; the CLI decides exit codes from
``ok`` alone.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (``"plan"`` or ``"update"``).
        data: Operation-specific payload. Failed rollouts still carry the
            progress made before the abort.
        warnings: Non-fatal issues (modules missing from the gallery, ...).
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (telemetry span tree with ``--verbose``).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None
