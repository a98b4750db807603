"""RunContext — the explicit, scoped state of one rollout run.

Every service receives a :class:`RunContext` at construction time. It owns
the gallery and account collaborators, the sleep function used for polling
waits, and the run id. :func:`open_run` acquires all of it, binds the run id
into the structlog context for the duration of the run, and releases it on
exit.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterator, Sequence
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from modrollout.config.models import RolloutConfig
    from modrollout.config.settings import RolloutSettings
    from modrollout.domain.packages import InstallJob, PackageDescriptor
    from modrollout.infrastructure.automation import ModuleStatus
    from modrollout.infrastructure.gallery import PackageDetail, SearchHit

log = structlog.get_logger(__name__)


class Registry(Protocol):
    """Gallery-side capabilities the engine depends on."""

    def search_by_name(self, name: str, filter_expr: str) -> list[SearchHit]: ...

    def fetch_detail(self, detail_url: str) -> PackageDetail: ...

    def resolve_content_location(self, name: str, version: str) -> str: ...


class Account(Protocol):
    """Account-side capabilities the engine depends on."""

    def list_installed(
        self, include: Sequence[str], exclude: Sequence[str] = ()
    ) -> list[PackageDescriptor]: ...

    def submit_install(self, name: str, content_url: str) -> InstallJob: ...

    def poll_status(self, job: InstallJob) -> ModuleStatus: ...


@dataclass
class RunContext:
    """Collaborators and settings shared by every component of one run."""

    settings: RolloutSettings
    registry: Registry
    account: Account
    sleep: Callable[[float], None] = time.sleep
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def rollout(self) -> RolloutConfig:
        return self.settings.rollout


@contextmanager
def open_run(
    settings: RolloutSettings,
    *,
    registry: Registry | None = None,
    account: Account | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[RunContext]:
    """Acquire the collaborators for a run and release them afterwards.

    Collaborators passed in are used as-is and left open; the ones created
    here are closed on exit.
    """
    with ExitStack() as stack:
        if registry is None:
            from modrollout.infrastructure.gallery import GalleryClient

            gallery = GalleryClient(settings.gallery)
            stack.callback(gallery.close)
            registry = gallery
        if account is None:
            from modrollout.infrastructure.automation import AutomationAccount

            token = settings.access_token.get_secret_value() if settings.access_token else None
            automation = AutomationAccount(settings.account, token)
            stack.callback(automation.close)
            account = automation

        run = RunContext(settings=settings, registry=registry, account=account, sleep=sleep)
        stack.enter_context(structlog.contextvars.bound_contextvars(run_id=run.run_id))
        log.debug("run.open", account=settings.account.account_name or None)
        yield run
        log.debug("run.close")
