"""UpdateService — plan and apply a module rollout.

Pipeline: LIST → RESOLVE/LAYER → ROLLOUT → REPORT

``plan()`` stops after layering; ``apply()`` runs the whole pipeline. Fatal
rollout errors end the run and come back as a failed ServiceResult that
still carries the progress made before the abort.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from modrollout.domain.errors import RolloutError
from modrollout.services.base import BaseService
from modrollout.services.catalog import CatalogClient
from modrollout.services.layers import LayerBuilder, LayerPlan
from modrollout.services.poller import JobPoller
from modrollout.services.result import ServiceResult
from modrollout.services.rollout import RolloutDriver
from modrollout.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from modrollout.domain.packages import PackageDescriptor

log = structlog.get_logger(__name__)


class UpdateService(BaseService):
    """Brings the managed modules of an account up to their gallery versions."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def plan(self) -> ServiceResult:
        """Layer the managed modules without submitting anything."""
        op = "plan"
        try:
            installed = self._list_installed()
            layer_plan = self._build_layers(installed)
        except RolloutError as exc:
            log.error("plan.failed", code=exc.code, error=exc.message)
            return self._failure(op, exc)

        data = layer_plan.to_dict()
        data["installed_count"] = len(installed)
        return ServiceResult(
            ok=True,
            op=op,
            data=data,
            warnings=_excluded_warnings(layer_plan),
        )

    @traced
    def apply(self, *, dry_run: bool = False) -> ServiceResult:
        """LIST → RESOLVE/LAYER → ROLLOUT → REPORT."""
        op = "update"
        rollout = self._run.rollout

        try:
            installed = self._list_installed()
            layer_plan = self._build_layers(installed)
        except RolloutError as exc:
            log.error("rollout.aborted", stage="plan", code=exc.code, error=exc.message, updated=0)
            return self._failure(op, exc, data={"updated_count": 0})

        warnings = _excluded_warnings(layer_plan)
        poller = JobPoller(
            self._run.account,
            sleep=self._run.sleep,
            interval=rollout.poll_interval_seconds,
            created_policy=rollout.created_policy,
        )
        driver = RolloutDriver(
            self._run.registry,
            self._run.account,
            poller,
            sleep=self._run.sleep,
            settle_seconds=rollout.submit_settle_seconds,
            dry_run=dry_run,
        )

        try:
            with trace_span("rollout") as span:
                report = driver.run(
                    layer_plan.layers, layer_plan.packages, rollout.concurrency_cap
                )
                if span:
                    span.annotate("batches", report.batches)
        except RolloutError as exc:
            progress = driver.report
            log.error(
                "rollout.aborted",
                stage="rollout",
                code=exc.code,
                error=exc.message,
                updated=progress.updated_count,
            )
            return self._failure(
                op,
                exc,
                data=self._payload(layer_plan, progress.to_dict(), dry_run=dry_run),
                warnings=warnings,
            )

        return ServiceResult(
            ok=True,
            op=op,
            data=self._payload(layer_plan, report.to_dict(), dry_run=dry_run),
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _list_installed(self) -> list[PackageDescriptor]:
        rollout = self._run.rollout
        with trace_span("list_installed") as span:
            installed = self._run.account.list_installed(rollout.include, rollout.exclude)
            if span:
                span.annotate("count", len(installed))
        log.info("account.listed", modules=len(installed), include=rollout.include)
        return installed

    def _build_layers(self, installed: list[PackageDescriptor]) -> LayerPlan:
        rollout = self._run.rollout
        catalog = CatalogClient(self._run.registry, rollout.version_overrides)
        with trace_span("build_layers"):
            return LayerBuilder(catalog).build(installed, rollout.foundation)

    @staticmethod
    def _payload(
        layer_plan: LayerPlan, report: dict[str, Any], *, dry_run: bool
    ) -> dict[str, Any]:
        return {
            **report,
            "dry_run": dry_run,
            "layers": [list(layer) for layer in layer_plan.layers],
            "excluded": list(layer_plan.excluded),
        }


def _excluded_warnings(layer_plan: LayerPlan) -> list[str]:
    return [
        f"Module {name} not found in the gallery; left as installed"
        for name in layer_plan.excluded
    ]
