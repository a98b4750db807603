"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, modrollout.toml only contains overrides.
A working setup needs only the [account] coordinates.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class CreatedPolicy(StrEnum):
    """How a job that settles in the ``Created`` state is treated."""

    ACCEPT = "accept"
    FAIL = "fail"


# --- modrollout.toml sections ---


class AccountConfig(BaseModel):
    """[account] section — the Automation account being updated."""

    model_config = {"frozen": True}

    subscription_id: str = ""
    resource_group: str = ""
    account_name: str = ""
    arm_endpoint: str = "https://management.azure.com"
    api_version: str = "2023-11-01"
    timeout_seconds: float = 60.0


class GalleryConfig(BaseModel):
    """[gallery] section — the PowerShell Gallery feed."""

    model_config = {"frozen": True}

    base_url: str = "https://www.powershellgallery.com/api/v2"
    package_url: str = "https://www.powershellgallery.com/api/v2/package/{name}/{version}"
    package_suffix: str = ".nupkg"
    max_redirects: int = Field(default=10, ge=1)
    timeout_seconds: float = 60.0


class RolloutConfig(BaseModel):
    """[rollout] section."""

    model_config = {"frozen": True}

    concurrency_cap: int = Field(default=10, ge=1)
    foundation: str = "Az.Accounts"
    include: list[str] = Field(default_factory=lambda: ["Az.*"])
    exclude: list[str] = Field(default_factory=list)
    version_overrides: dict[str, str] = Field(default_factory=dict)
    poll_interval_seconds: float = Field(default=30.0, ge=0)
    submit_settle_seconds: float = Field(default=10.0, ge=0)
    created_policy: CreatedPolicy = CreatedPolicy.ACCEPT

    @field_validator("version_overrides", mode="before")
    @classmethod
    def _decode_overrides(cls, value: Any) -> Any:
        """Accept a JSON object string as well as a table."""
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                msg = f"version_overrides is not valid JSON: {exc}"
                raise ValueError(msg) from exc
            if not isinstance(value, dict):
                msg = "version_overrides must be a JSON object of name -> version"
                raise ValueError(msg)
        return value


class RolloutFileConfig(BaseModel):
    """Root configuration composing all sections of modrollout.toml."""

    model_config = {"frozen": True}

    account: AccountConfig = Field(default_factory=AccountConfig)
    gallery: GalleryConfig = Field(default_factory=GalleryConfig)
    rollout: RolloutConfig = Field(default_factory=RolloutConfig)
