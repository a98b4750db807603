"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``MODROLLOUT_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``modrollout.toml`` discovered via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the ``find_config`` walk-up discovery from
:mod:`modrollout.config.discovery`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from modrollout.config.discovery import find_config
from modrollout.config.models import AccountConfig, GalleryConfig, RolloutConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``modrollout.toml`` file discovered via walk-up."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class RolloutSettings(BaseSettings):
    """Unified settings for the modrollout CLI.

    Merges CLI flags, environment variables, TOML config sections,
    and code-baked defaults into a single frozen object.

    Attributes:
        config_path: The TOML file the settings were read from, if any.
        access_token: ARM bearer token (``MODROLLOUT_ACCESS_TOKEN``).
    """

    model_config = {
        "frozen": True,
        "env_prefix": "MODROLLOUT_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None
    access_token: SecretStr | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    account: AccountConfig = Field(default_factory=AccountConfig)
    gallery: GalleryConfig = Field(default_factory=GalleryConfig)
    rollout: RolloutConfig = Field(default_factory=RolloutConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        start: Path | None = None,
        **cli_flags: Any,
    ) -> RolloutSettings:
        """Construct settings from CLI invocation.

        Discovers ``modrollout.toml`` via walk-up from *start* (or uses the
        explicit *config_path*) and merges CLI flags as highest-priority
        overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

    def with_rollout(self, **updates: Any) -> RolloutSettings:
        """Return a copy whose [rollout] section has *updates* applied.

        ``None`` values are ignored so unset CLI options keep the configured
        value. The merged section is re-validated.
        """
        changes = {k: v for k, v in updates.items() if v is not None}
        if not changes:
            return self
        rollout = RolloutConfig.model_validate({**self.rollout.model_dump(), **changes})
        return self.model_copy(update={"rollout": rollout})
