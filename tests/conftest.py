"""Shared pytest fixtures and test doubles for modrollout tests."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Callable, Generator, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import pytest
from click.testing import CliRunner

from modrollout.config.models import RolloutConfig
from modrollout.config.settings import RolloutSettings
from modrollout.domain.filters import select_names
from modrollout.domain.packages import InstallJob, JobState, PackageDescriptor
from modrollout.infrastructure.automation import ModuleStatus
from modrollout.infrastructure.gallery import PackageDetail, SearchHit
from modrollout.services import context
from modrollout.services.context import RunContext

_DETAIL_RE = re.compile(r"Packages\(Id='(?P<name>[^']+)',Version='(?P<version>[^']*)'\)")
_FORCED_RE = re.compile(r"Version eq '(?P<version>[^']+)'")


class FakeRegistry:
    """In-memory gallery: ``name -> (latest_version, dependency_string)``."""

    def __init__(self, catalog: dict[str, tuple[str, str | None]] | None = None) -> None:
        self.catalog: dict[str, tuple[str, str | None]] = dict(catalog or {})
        self.searches: list[tuple[str, str]] = []
        self.details: list[str] = []
        self.resolved: list[tuple[str, str]] = []

    def add(self, name: str, version: str, deps: str | None = None) -> None:
        self.catalog[name] = (version, deps)

    def search_by_name(self, name: str, filter_expr: str) -> list[SearchHit]:
        self.searches.append((name, filter_expr))
        if name not in self.catalog:
            return []
        forced = _FORCED_RE.search(filter_expr)
        version = forced.group("version") if forced else self.catalog[name][0]
        url = f"https://gallery.test/api/v2/Packages(Id='{name}',Version='{version}')"
        return [SearchHit(title=name, detail_url=url)]

    def fetch_detail(self, detail_url: str) -> PackageDetail:
        self.details.append(detail_url)
        match = _DETAIL_RE.search(detail_url)
        assert match is not None, detail_url
        name = match.group("name")
        return PackageDetail(
            name=name, version=match.group("version"), dependencies=self.catalog[name][1]
        )

    def resolve_content_location(self, name: str, version: str) -> str:
        self.resolved.append((name, version))
        return f"https://blob.test/packages/{name.lower()}.{version}.nupkg"


class FakeAccount:
    """In-memory Automation account that records every call in order.

    ``outcomes`` maps a module to the provisioning states returned by
    successive polls; the last one repeats. Unlisted modules succeed on
    the first poll.
    """

    def __init__(
        self,
        installed: dict[str, str | None],
        *,
        outcomes: dict[str, Sequence[str]] | None = None,
    ) -> None:
        self.installed = dict(installed)
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.events: list[tuple[str, str]] = []
        self.in_flight: set[str] = set()
        self.peak_in_flight = 0
        self._poll_counts: dict[str, int] = defaultdict(int)

    @property
    def submitted(self) -> list[str]:
        return [name for kind, name in self.events if kind == "submit"]

    def list_installed(
        self, include: Sequence[str], exclude: Sequence[str] = ()
    ) -> list[PackageDescriptor]:
        names = select_names(self.installed, include, exclude)
        return [PackageDescriptor(name=n, installed_version=self.installed[n]) for n in names]

    def submit_install(self, name: str, content_url: str) -> InstallJob:
        self.events.append(("submit", name))
        self.in_flight.add(name)
        self.peak_in_flight = max(self.peak_in_flight, len(self.in_flight))
        return InstallJob(package_name=name, content_url=content_url)

    def poll_status(self, job: InstallJob) -> ModuleStatus:
        name = job.package_name
        self.events.append(("poll", name))
        states = self.outcomes.get(name, ["Succeeded"])
        raw = states[min(self._poll_counts[name], len(states) - 1)]
        self._poll_counts[name] += 1
        state = JobState.parse(raw)
        if state.is_terminal:
            self.in_flight.discard(name)
        error = "Module import failed: bad manifest" if state is JobState.FAILED else None
        return ModuleStatus(name=name, state=state, raw_state=raw, error=error)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def sleeps() -> list[float]:
    """Recorded sleep durations; passed as the run's sleep function."""
    return []


@pytest.fixture
def make_run(sleeps: list[float]) -> Callable[..., RunContext]:
    """Build a RunContext over fakes with [rollout] overrides."""

    def _make(registry: FakeRegistry, account: FakeAccount, **rollout: Any) -> RunContext:
        rollout.setdefault("foundation", "Az.Accounts")
        rollout.setdefault("include", ["*"])
        settings = RolloutSettings(rollout=RolloutConfig(**rollout))
        return RunContext(
            settings=settings,
            registry=registry,
            account=account,
            sleep=sleeps.append,
            run_id="test-run",
        )

    return _make


@pytest.fixture
def az_registry() -> FakeRegistry:
    """A small slice of the Az module family."""
    return FakeRegistry(
        {
            "Az.Accounts": ("2.13.0", None),
            "Az.Storage": ("6.0.0", "Az.Accounts:[2.13.0, ):"),
            "Az.KeyVault": ("5.0.0", "Az.Accounts:[2.13.0, ):"),
            "Az.Websites": ("3.1.0", "Az.Accounts:[2.13.0, ):|Az.Storage:[6.0.0, ):"),
        }
    )


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Clear ``MODROLLOUT_*`` overrides and restore root log handlers afterwards."""
    for var in ("MODROLLOUT_CONFIG", "MODROLLOUT_ACCESS_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def use_account(
    monkeypatch: pytest.MonkeyPatch, az_registry: FakeRegistry
) -> Callable[[FakeAccount], list[RunContext]]:
    """Route CLI runs to *account* and ``az_registry`` with no real waiting.

    Returns the list of runs opened, so tests can inspect the settings a
    command produced.
    """
    original = context.open_run

    def _use(account: FakeAccount) -> list[RunContext]:
        runs: list[RunContext] = []

        @contextmanager
        def _open_run(settings: RolloutSettings, **_: Any) -> Iterator[RunContext]:
            with original(
                settings, registry=az_registry, account=account, sleep=lambda _s: None
            ) as run:
                runs.append(run)
                yield run

        monkeypatch.setattr(context, "open_run", _open_run)
        return runs

    return _use
