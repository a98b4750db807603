"""Tests for RunContext and open_run."""

from __future__ import annotations

import structlog
from pydantic import SecretStr

from modrollout.config.models import AccountConfig, RolloutConfig
from modrollout.config.settings import RolloutSettings
from modrollout.infrastructure.automation import AutomationAccount
from modrollout.infrastructure.gallery import GalleryClient
from modrollout.services.context import RunContext, open_run
from tests.conftest import FakeAccount, FakeRegistry


class TestOpenRun:
    def test_uses_supplied_collaborators(self) -> None:
        registry, account = FakeRegistry(), FakeAccount({})
        settings = RolloutSettings(rollout=RolloutConfig(concurrency_cap=3))

        with open_run(settings, registry=registry, account=account) as run:
            assert run.registry is registry
            assert run.account is account
            assert run.rollout.concurrency_cap == 3

    def test_binds_run_id_for_the_run_only(self) -> None:
        settings = RolloutSettings()
        with open_run(settings, registry=FakeRegistry(), account=FakeAccount({})) as run:
            bound = structlog.contextvars.get_contextvars()
            assert bound["run_id"] == run.run_id
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_builds_and_closes_clients(self) -> None:
        settings = RolloutSettings(
            access_token=SecretStr("tok"),
            account=AccountConfig(subscription_id="s", resource_group="g", account_name="a"),
        )
        with open_run(settings) as run:
            assert isinstance(run.registry, GalleryClient)
            assert isinstance(run.account, AutomationAccount)
            registry_http = run.registry._http
            account_http = run.account._http
        assert registry_http.is_closed
        assert account_http.is_closed

    def test_run_ids_are_unique(self) -> None:
        settings = RolloutSettings()
        a = RunContext(settings=settings, registry=FakeRegistry(), account=FakeAccount({}))
        b = RunContext(settings=settings, registry=FakeRegistry(), account=FakeAccount({}))
        assert a.run_id != b.run_id
