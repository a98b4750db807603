"""JobPoller — wait for submitted imports to reach a terminal state.

Jobs are awaited one after another. A job that is still importing is
re-polled every ``poll_interval_seconds`` with no overall timeout; module
imports routinely take several minutes and their duration is not
predictable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from modrollout.config.models import CreatedPolicy
from modrollout.domain.errors import ImportFailed
from modrollout.domain.packages import JobState

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from modrollout.domain.packages import InstallJob
    from modrollout.services.context import Account

log = structlog.get_logger(__name__)


class JobPoller:
    """Blocks on import jobs until each settles."""

    def __init__(
        self,
        account: Account,
        *,
        sleep: Callable[[float], None],
        interval: float = 30.0,
        created_policy: CreatedPolicy = CreatedPolicy.ACCEPT,
    ) -> None:
        self._account = account
        self._sleep = sleep
        self._interval = interval
        self._created_policy = created_policy

    def await_jobs(self, jobs: Sequence[InstallJob]) -> None:
        """Wait for every job in order; raise on the first failure."""
        for job in jobs:
            self.await_job(job)

    def await_job(self, job: InstallJob) -> JobState:
        """Poll *job* until terminal, updating it in place.

        Raises :class:`ImportFailed` for ``Failed``, and for ``Created``
        when the policy is ``fail``.
        """
        polls = 0
        while True:
            status = self._account.poll_status(job)
            polls += 1
            job.state = status.state
            job.error = status.error
            if status.state.is_terminal:
                break
            log.debug(
                "job.pending",
                package=job.package_name,
                state=status.raw_state or None,
                polls=polls,
            )
            self._sleep(self._interval)

        log.info("job.terminal", package=job.package_name, state=str(job.state), polls=polls)

        if job.state is JobState.FAILED:
            raise ImportFailed(job.package_name, state=str(job.state), reason=job.error)
        if job.state is JobState.CREATED and self._created_policy is CreatedPolicy.FAIL:
            raise ImportFailed(
                job.package_name,
                state=str(job.state),
                reason=job.error or "import settled in Created without completing",
            )
        return job.state
