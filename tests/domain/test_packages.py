"""Tests for module records and job states."""

from __future__ import annotations

import pytest

from modrollout.domain.packages import InstallJob, JobState, Layer, PackageDescriptor


class TestJobState:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Succeeded", JobState.SUCCEEDED),
            ("failed", JobState.FAILED),
            ("Created", JobState.CREATED),
            ("Creating", JobState.IMPORTING),
            ("ContentValidated", JobState.IMPORTING),
            ("", JobState.IMPORTING),
            (None, JobState.IMPORTING),
        ],
    )
    def test_parse(self, raw: str | None, expected: JobState) -> None:
        assert JobState.parse(raw) is expected

    def test_terminal_states(self) -> None:
        terminal = {s for s in JobState if s.is_terminal}
        assert terminal == {JobState.SUCCEEDED, JobState.FAILED, JobState.CREATED}


class TestPackageDescriptor:
    def test_unresolved_is_never_up_to_date(self) -> None:
        pkg = PackageDescriptor(name="Az.Storage", installed_version="6.0.0")
        assert not pkg.resolved
        assert not pkg.up_to_date

    def test_with_catalog_returns_new_instance(self) -> None:
        pkg = PackageDescriptor(name="Az.Storage", installed_version="5.0.0")
        described = pkg.with_catalog("6.0.0", "Az.Accounts:[2.0.0, ):")
        assert pkg.latest_version is None
        assert described.latest_version == "6.0.0"
        assert described.raw_dependencies == "Az.Accounts:[2.0.0, ):"
        assert not described.up_to_date

    def test_up_to_date(self) -> None:
        pkg = PackageDescriptor(name="Az.Storage", installed_version="6.0.0")
        assert pkg.with_catalog("6.0.0", None).up_to_date

    def test_frozen(self) -> None:
        pkg = PackageDescriptor(name="Az.Storage")
        with pytest.raises(AttributeError):
            pkg.name = "other"  # type: ignore[misc]


class TestLayer:
    def test_sequence_behaviour(self) -> None:
        layer = Layer(index=1, names=("Az.Storage", "Az.KeyVault"))
        assert list(layer) == ["Az.Storage", "Az.KeyVault"]
        assert len(layer) == 2
        assert "Az.Storage" in layer
        assert "Az.Websites" not in layer


class TestInstallJob:
    def test_starts_submitted(self) -> None:
        job = InstallJob(package_name="Az.Storage", content_url="https://blob.test/a.nupkg")
        assert job.state is JobState.SUBMITTED
        assert job.submitted_at.tzinfo is not None
