"""Tests for JobPoller."""

from __future__ import annotations

import pytest

from modrollout.config.models import CreatedPolicy
from modrollout.domain.errors import ImportFailed
from modrollout.domain.packages import InstallJob, JobState
from modrollout.services.poller import JobPoller
from tests.conftest import FakeAccount


def _job(name: str) -> InstallJob:
    return InstallJob(package_name=name, content_url=f"https://blob.test/{name}.nupkg")


class TestAwaitJob:
    def test_polls_until_terminal(self, sleeps: list[float]) -> None:
        account = FakeAccount(
            {}, outcomes={"Az.Storage": ["Creating", "ContentDownloaded", "Succeeded"]}
        )
        job = _job("Az.Storage")

        state = JobPoller(account, sleep=sleeps.append, interval=30).await_job(job)

        assert state is JobState.SUCCEEDED
        assert job.state is JobState.SUCCEEDED
        assert account.events == [("poll", "Az.Storage")] * 3
        assert sleeps == [30, 30]

    def test_unknown_state_keeps_polling(self, sleeps: list[float]) -> None:
        states = ["", "RunningImportModuleRunbook", "Succeeded"]
        account = FakeAccount({}, outcomes={"Az.Storage": states})
        JobPoller(account, sleep=sleeps.append, interval=5).await_job(_job("Az.Storage"))
        assert sleeps == [5, 5]

    def test_failed_raises(self, sleeps: list[float]) -> None:
        account = FakeAccount({}, outcomes={"Az.Storage": ["Creating", "Failed"]})
        job = _job("Az.Storage")

        with pytest.raises(ImportFailed) as exc_info:
            JobPoller(account, sleep=sleeps.append).await_job(job)

        assert exc_info.value.name == "Az.Storage"
        assert exc_info.value.detail["reason"] == "Module import failed: bad manifest"
        assert job.state is JobState.FAILED
        assert job.error == "Module import failed: bad manifest"

    def test_created_accepted_by_default(self, sleeps: list[float]) -> None:
        account = FakeAccount({}, outcomes={"Az.Storage": ["Created"]})
        state = JobPoller(account, sleep=sleeps.append).await_job(_job("Az.Storage"))
        assert state is JobState.CREATED
        assert sleeps == []

    def test_created_rejected_by_policy(self, sleeps: list[float]) -> None:
        account = FakeAccount({}, outcomes={"Az.Storage": ["Created"]})
        poller = JobPoller(account, sleep=sleeps.append, created_policy=CreatedPolicy.FAIL)
        with pytest.raises(ImportFailed) as exc_info:
            poller.await_job(_job("Az.Storage"))
        assert exc_info.value.state == "Created"


class TestAwaitJobs:
    def test_sequential_in_submission_order(self, sleeps: list[float]) -> None:
        account = FakeAccount({}, outcomes={"A": ["Creating", "Succeeded"]})
        JobPoller(account, sleep=sleeps.append).await_jobs([_job("A"), _job("B")])
        assert account.events == [("poll", "A"), ("poll", "A"), ("poll", "B")]

    def test_stops_at_first_failure(self, sleeps: list[float]) -> None:
        account = FakeAccount({}, outcomes={"A": ["Failed"]})
        jobs = [_job("A"), _job("B")]
        with pytest.raises(ImportFailed):
            JobPoller(account, sleep=sleeps.append).await_jobs(jobs)
        assert ("poll", "B") not in account.events
        assert jobs[1].state is JobState.SUBMITTED
