"""Tests for CatalogClient gallery resolution."""

from __future__ import annotations

import pytest

from modrollout.domain.errors import PackageNotFound
from modrollout.domain.packages import PackageDescriptor
from modrollout.infrastructure.gallery import SearchHit
from modrollout.services.catalog import CatalogClient
from tests.conftest import FakeRegistry


class TestResolve:
    def test_latest_version(self, az_registry: FakeRegistry) -> None:
        detail = CatalogClient(az_registry).resolve("Az.Storage")
        assert detail.version == "6.0.0"
        assert detail.dependencies == "Az.Accounts:[2.13.0, ):"
        assert az_registry.searches == [("Az.Storage", "IsLatestVersion")]

    def test_forced_version(self, az_registry: FakeRegistry) -> None:
        catalog = CatalogClient(az_registry, {"Az.Accounts": "2.12.1"})
        assert catalog.forced_version("Az.Accounts") == "2.12.1"
        assert catalog.forced_version("Az.Storage") is None
        assert catalog.resolve("Az.Accounts").version == "2.12.1"
        assert az_registry.searches == [("Az.Accounts", "Version eq '2.12.1'")]

    def test_lookups_are_memoised(self, az_registry: FakeRegistry) -> None:
        catalog = CatalogClient(az_registry)
        catalog.resolve("Az.Storage")
        catalog.resolve("Az.Storage")
        assert len(az_registry.searches) == 1
        assert len(az_registry.details) == 1

    def test_override_and_cache_ignore_case(self, az_registry: FakeRegistry) -> None:
        catalog = CatalogClient(az_registry, {"az.accounts": "2.12.1"})
        assert catalog.forced_version("Az.Accounts") == "2.12.1"
        assert catalog.resolve("Az.Accounts").version == "2.12.1"
        catalog.resolve("AZ.ACCOUNTS")
        assert len(az_registry.searches) == 1

    def test_not_found(self, az_registry: FakeRegistry) -> None:
        with pytest.raises(PackageNotFound) as exc_info:
            CatalogClient(az_registry).resolve("Az.Retired")
        assert exc_info.value.name == "Az.Retired"
        assert exc_info.value.code == "NOT_FOUND"

    def test_not_found_with_forced_version(self) -> None:
        class _Empty(FakeRegistry):
            def search_by_name(self, name: str, filter_expr: str) -> list[SearchHit]:
                return []

        with pytest.raises(PackageNotFound) as exc_info:
            CatalogClient(_Empty(), {"Az.Storage": "1.0.0"}).resolve("Az.Storage")
        assert exc_info.value.version == "1.0.0"
        assert "Az.Storage 1.0.0" in exc_info.value.message

    def test_ambiguous_search_matched_by_title(self) -> None:
        class _Fuzzy(FakeRegistry):
            def search_by_name(self, name: str, filter_expr: str) -> list[SearchHit]:
                base = "https://gallery.test/api/v2"
                return [
                    SearchHit(
                        "Az.SqlVirtualMachine",
                        f"{base}/Packages(Id='Az.SqlVirtualMachine',Version='2.0.0')",
                    ),
                    SearchHit("az.sql", f"{base}/Packages(Id='Az.Sql',Version='4.0.0')"),
                ]

        registry = _Fuzzy({"Az.Sql": ("4.0.0", None), "Az.SqlVirtualMachine": ("2.0.0", None)})
        assert CatalogClient(registry).resolve("Az.Sql").name == "Az.Sql"

    def test_ambiguous_search_without_exact_title(self) -> None:
        class _Fuzzy(FakeRegistry):
            def search_by_name(self, name: str, filter_expr: str) -> list[SearchHit]:
                return [
                    SearchHit("Az.SqlA", "https://gallery.test/a"),
                    SearchHit("Az.SqlB", "https://gallery.test/b"),
                ]

        with pytest.raises(PackageNotFound):
            CatalogClient(_Fuzzy()).resolve("Az.Sql")


class TestDescribe:
    def test_carries_catalog_data(self, az_registry: FakeRegistry) -> None:
        pkg = PackageDescriptor(name="Az.Storage", installed_version="5.0.0")
        described = CatalogClient(az_registry).describe(pkg)
        assert described.installed_version == "5.0.0"
        assert described.latest_version == "6.0.0"
        assert described.raw_dependencies == "Az.Accounts:[2.13.0, ):"
        assert described.resolved
        assert not described.up_to_date
