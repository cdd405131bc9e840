"""Application configuration via pydantic-settings with YAML defaults."""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_CONFIG_PATH = _PROJECT_ROOT / "config" / "config.yaml"


def _load_yaml_config() -> dict[str, Any]:
    """Load default configuration from config.yaml."""
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml_defaults = _load_yaml_config()


# --- Nested config models ---


class CaptureSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COPYSCAN_CAPTURE__")

    # Device indices standing in for the rear / front facing cameras
    environment_device: int = 0
    user_device: int = 1
    ideal_width: int = 1280
    ideal_height: int = 720
    jpeg_quality: int = 90
    settle_delay_seconds: float = 0.5
    metadata_timeout_seconds: float = 5.0
    metadata_poll_seconds: float = 0.05


class FileImportSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COPYSCAN_FILE_IMPORT__")

    max_bytes: int = 10 * 1024 * 1024


class RosterSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COPYSCAN_ROSTER__")

    page_size: int = 50
    sort_key: str = "rollNumber"
    sort_order: str = "asc"


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COPYSCAN_API__")

    base_url: str = "http://localhost:5000/api"
    timeout_seconds: float = 30.0


# --- Root settings ---


class Settings(BaseSettings):
    """Root application settings.

    Priority (highest wins):
    1. Environment variables (COPYSCAN_ prefix)
    2. .env file
    3. config/config.yaml
    4. Hardcoded defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="COPYSCAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "copyscan"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = "logs/copyscan.log"

    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    file_import: FileImportSettings = Field(default_factory=FileImportSettings)
    roster: RosterSettings = Field(default_factory=RosterSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    @classmethod
    def from_yaml(cls) -> Settings:
        """Create settings, applying YAML config as defaults under env vars."""
        yaml_data = dict(_yaml_defaults)
        init: dict[str, Any] = {}
        if "app" in yaml_data:
            init.update(yaml_data["app"])
        for key in ("capture", "file_import", "roster", "api"):
            if key in yaml_data:
                init[key] = yaml_data[key]
        return cls(**init)


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return application settings singleton."""
    return Settings.from_yaml()
