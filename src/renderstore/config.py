"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Constructor arguments
  2. Environment variables  (RENDERSTORE__CACHE__EXPIRATION_OFFSET_SECONDS=3600)
  3. renderstore.yaml       (searched in cwd, then the platform config dir)
  4. Hardcoded defaults

The config file is optional; every field has a default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("renderstore")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "pages.db")

# Sent by the renderer so that its own page loads are never intercepted.
INTERNAL_USER_AGENT = "RenderStore"

DEFAULT_EXPIRATION_OFFSET_SECONDS = 60 * 60 * 24


def _find_config_file() -> str | None:
    """Return the path of the first renderstore.yaml found, or None."""
    candidates = [
        Path("renderstore.yaml"),
        Path(platformdirs.user_config_dir("renderstore")) / "renderstore.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class StoreSettings(_Section):
    secret: str | None = None
    base_url: str = "https://render-store.web.app"
    timeout_seconds: float = 10.0


class RenderSettings(_Section):
    timeout_ms: int = 30_000
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "networkidle"
    headless: bool = True
    browser_args: list[str] = ["--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"]
    user_agent: str = INTERNAL_USER_AGENT


class CacheSettings(_Section):
    expiration_offset_seconds: int = DEFAULT_EXPIRATION_OFFSET_SECONDS
    # None = no cap on detached refreshes
    max_background_refreshes: int | None = None


class ApiSettings(_Section):
    host: str = "0.0.0.0"
    port: int = 8080
    db_path: str = _DEFAULT_DB_PATH
    cleanup_grace_days: int = 7


class LoggingSettings(_Section):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: RENDERSTORE__API__PORT=9090
        env_prefix="RENDERSTORE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
        extra="forbid",
    )

    store: StoreSettings = StoreSettings()
    render: RenderSettings = RenderSettings()
    cache: CacheSettings = CacheSettings()
    api: ApiSettings = ApiSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
