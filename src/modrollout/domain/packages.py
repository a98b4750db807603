"""Module, dependency, layer and import-job records.

Plain frozen dataclasses with no infrastructure dependencies. Registry and
account responses are decoded into these at the client boundary.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum


class JobState(StrEnum):
    """Provisioning states reported for a module import."""

    SUBMITTED = "Submitted"
    IMPORTING = "Importing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CREATED = "Created"

    @classmethod
    def parse(cls, raw: str | None) -> JobState:
        """Map a service-reported state onto a member.

        Unknown states (``Creating``, ``ConnectionTypeImported``, ...) are
        treated as still importing.
        """
        if not raw:
            return cls.IMPORTING
        for member in cls:
            if member.value.lower() == raw.lower():
                return member
        return cls.IMPORTING

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.CREATED})


@dataclass(frozen=True)
class DependencyRef:
    """One entry of a module's dependency list.

    ``version_spec`` is kept for diagnostics only; it never gates an install.
    """

    name: str
    version_spec: str
    target_framework: str = ""

    @property
    def display_spec(self) -> str:
        return self.version_spec.replace("[", "").replace("]", "")


@dataclass(frozen=True)
class PackageDescriptor:
    """An installed module and, once resolved, its gallery metadata."""

    name: str
    installed_version: str | None = None
    latest_version: str | None = None
    raw_dependencies: str | None = None

    @property
    def resolved(self) -> bool:
        return self.latest_version is not None

    @property
    def up_to_date(self) -> bool:
        return self.resolved and self.installed_version == self.latest_version

    def with_catalog(self, latest_version: str, raw_dependencies: str | None) -> PackageDescriptor:
        """Return a copy carrying gallery metadata."""
        return replace(self, latest_version=latest_version, raw_dependencies=raw_dependencies)


@dataclass(frozen=True)
class Layer:
    """Modules whose in-set dependencies all live in earlier layers."""

    index: int
    names: tuple[str, ...]

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names


@dataclass
class InstallJob:
    """A submitted module import. Only the job poller mutates ``state``."""

    package_name: str
    content_url: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    state: JobState = JobState.SUBMITTED
    error: str | None = None
