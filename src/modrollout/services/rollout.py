"""RolloutDriver — submit updates layer by layer in capped batches.

For every layer, modules that need an update are submitted one by one.
Once ``concurrency_cap`` submissions are outstanding, or the layer runs
out, the driver waits ``settle_seconds`` for the account to register them
and then blocks on the poller until the whole batch has settled. A layer
is fully drained before the next one starts, so a module is never
submitted before its in-set dependencies have been imported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from modrollout.domain.errors import ImportFailed
from modrollout.domain.packages import JobState
from modrollout.services.telemetry import trace_span

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from modrollout.domain.packages import InstallJob, Layer, PackageDescriptor
    from modrollout.services.context import Account, Registry
    from modrollout.services.poller import JobPoller

log = structlog.get_logger(__name__)

_SETTLED = frozenset({JobState.SUCCEEDED, JobState.CREATED})


@dataclass
class RolloutReport:
    """Progress of one rollout; complete on success, partial after an abort."""

    updated: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    planned: list[dict[str, Any]] = field(default_factory=list)
    batches: int = 0
    layers_completed: int = 0
    peak_in_flight: int = 0

    @property
    def updated_count(self) -> int:
        return len(self.updated)

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated_count": self.updated_count,
            "updated": list(self.updated),
            "skipped": list(self.skipped),
            "planned": list(self.planned),
            "batches": self.batches,
            "layers_completed": self.layers_completed,
        }


class RolloutDriver:
    """Walks a layer sequence and drives imports through the account."""

    def __init__(
        self,
        registry: Registry,
        account: Account,
        poller: JobPoller,
        *,
        sleep: Callable[[float], None],
        settle_seconds: float = 10.0,
        dry_run: bool = False,
    ) -> None:
        self._registry = registry
        self._account = account
        self._poller = poller
        self._sleep = sleep
        self._settle_seconds = settle_seconds
        self._dry_run = dry_run
        self.report = RolloutReport()

    def run(
        self,
        layers: Sequence[Layer],
        packages: Mapping[str, PackageDescriptor],
        concurrency_cap: int,
    ) -> RolloutReport:
        """Update every out-of-date module in *layers*; return the report.

        Fatal errors propagate; :attr:`report` keeps the progress made.
        """
        if concurrency_cap < 1:
            msg = f"concurrency_cap must be a positive integer, got {concurrency_cap}"
            raise ValueError(msg)

        self.report = RolloutReport()
        for layer in layers:
            with trace_span(f"layer-{layer.index}") as span:
                batch: list[tuple[InstallJob, PackageDescriptor]] = []
                for name in layer:
                    pkg = packages.get(name)
                    if not self._needs_update(name, pkg):
                        continue
                    assert pkg is not None and pkg.latest_version is not None
                    if self._dry_run:
                        self.report.planned.append(_change(pkg))
                        log.info("package.planned", package=name, to_version=pkg.latest_version)
                        continue

                    content_url = self._registry.resolve_content_location(
                        name, pkg.latest_version
                    )
                    job = self._account.submit_install(name, content_url)
                    log.info(
                        "job.submitted",
                        package=name,
                        from_version=pkg.installed_version,
                        to_version=pkg.latest_version,
                        layer=layer.index,
                    )
                    batch.append((job, pkg))
                    self.report.peak_in_flight = max(self.report.peak_in_flight, len(batch))
                    if len(batch) >= concurrency_cap:
                        self._drain(batch)
                        batch = []
                if batch:
                    self._drain(batch)
                if span:
                    span.annotate("modules", len(layer))
            self.report.layers_completed += 1

        log.info(
            "rollout.summary",
            updated=self.report.updated_count,
            skipped=len(self.report.skipped),
            planned=len(self.report.planned),
            batches=self.report.batches,
        )
        return self.report

    def _needs_update(self, name: str, pkg: PackageDescriptor | None) -> bool:
        reason: str | None = None
        if pkg is None:
            reason = "not-managed"
        elif not pkg.resolved:
            reason = "unresolved"
        elif pkg.up_to_date:
            reason = "up-to-date"
        if reason is None:
            return True
        version = pkg.installed_version if pkg else None
        self.report.skipped.append({"name": name, "version": version, "reason": reason})
        log.info("package.skipped", package=name, version=version, reason=reason)
        return False

    def _drain(self, batch: list[tuple[InstallJob, PackageDescriptor]]) -> None:
        """Let the account register the batch, then wait for all of it."""
        self._sleep(self._settle_seconds)
        failed: str | None = None
        try:
            self._poller.await_jobs([job for job, _ in batch])
        except ImportFailed as exc:
            failed = exc.name
            raise
        finally:
            self.report.batches += 1
            for job, pkg in batch:
                if job.package_name != failed and job.state in _SETTLED:
                    self.report.updated.append({**_change(pkg), "state": str(job.state)})


def _change(pkg: PackageDescriptor) -> dict[str, Any]:
    return {
        "name": pkg.name,
        "from_version": pkg.installed_version,
        "to_version": pkg.latest_version,
    }
