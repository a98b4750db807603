"""Tests for configuration section models."""

import pytest
from pydantic import ValidationError

from modrollout.config.models import (
    CreatedPolicy,
    GalleryConfig,
    RolloutConfig,
    RolloutFileConfig,
)


class TestRolloutConfig:
    def test_defaults(self) -> None:
        cfg = RolloutConfig()
        assert cfg.concurrency_cap == 10
        assert cfg.poll_interval_seconds == 30.0
        assert cfg.submit_settle_seconds == 10.0
        assert cfg.exclude == []
        assert cfg.version_overrides == {}

    @pytest.mark.parametrize("cap", [0, -3])
    def test_cap_must_be_positive(self, cap: int) -> None:
        with pytest.raises(ValidationError):
            RolloutConfig(concurrency_cap=cap)

    def test_overrides_from_json_string(self) -> None:
        cfg = RolloutConfig(version_overrides='{"Az.Accounts": "2.12.1"}')  # type: ignore[arg-type]
        assert cfg.version_overrides == {"Az.Accounts": "2.12.1"}

    def test_empty_overrides_string(self) -> None:
        assert RolloutConfig(version_overrides="").version_overrides == {}  # type: ignore[arg-type]

    @pytest.mark.parametrize("raw", ["{not json", '["Az.Accounts"]'])
    def test_bad_overrides_string(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            RolloutConfig(version_overrides=raw)  # type: ignore[arg-type]

    def test_created_policy_from_string(self) -> None:
        cfg = RolloutConfig(created_policy="fail")  # type: ignore[arg-type]
        assert cfg.created_policy is CreatedPolicy.FAIL

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            RolloutConfig().concurrency_cap = 3  # type: ignore[misc]


class TestGalleryConfig:
    def test_redirect_limit_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            GalleryConfig(max_redirects=0)


class TestRolloutFileConfig:
    def test_sparse_sections(self) -> None:
        cfg = RolloutFileConfig.model_validate({"rollout": {"foundation": "Az.Resources"}})
        assert cfg.rollout.foundation == "Az.Resources"
        assert cfg.account.arm_endpoint == "https://management.azure.com"
