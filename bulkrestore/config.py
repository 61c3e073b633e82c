"""Configuration using Pydantic Settings for automatic env var support."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .lib.json import JSONDecodeError, loads
from .paths import CONFIG_HOME, DATA_HOME
from .version import RESTORE_VERSION

CONFIG_ENV = "BULKRESTORE_CONFIG"
DEFAULT_CONFIG_LOCATIONS = [CONFIG_HOME / "config.json"]


class RestoreConfig(BaseSettings):
    """Settings for an import run.

    Supports:
    - JSON config files (``BULKRESTORE_CONFIG`` or ~/.config/bulkrestore/config.json)
    - Environment variables (BULKRESTORE_*)
    - Automatic type validation
    """

    work_dir: Path = Field(default=DATA_HOME / "imports")
    mongo_uri: str = Field(default="mongodb://localhost:27017")
    database: str = Field(default="app")
    batch_size: int = Field(default=100, ge=1)
    # Version of the running application; archives must match it exactly.
    app_version: str = Field(default=RESTORE_VERSION)
    # Page hierarchy normalization after importing pages.
    normalize_pages: bool = Field(default=False)
    schema_file: Optional[Path] = Field(default=None)
    meta_file_name: str = Field(default="meta.json")

    model_config = SettingsConfigDict(
        env_prefix="BULKRESTORE_",
        extra="ignore",
    )

    @field_validator("work_dir", "schema_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @classmethod
    def from_json_file(cls, path: Path) -> "RestoreConfig":
        """Load configuration from a JSON file; env vars still apply on top of defaults."""
        try:
            data = loads(path.read_bytes())
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        except JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config file {path}: {exc}") from exc


def load_config(explicit: Optional[Path] = None) -> RestoreConfig:
    """Load configuration from the first available location."""
    if explicit is not None:
        return RestoreConfig.from_json_file(explicit.expanduser())
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return RestoreConfig.from_json_file(Path(env_path).expanduser())
    for path in DEFAULT_CONFIG_LOCATIONS:
        if path.exists():
            return RestoreConfig.from_json_file(path)
    try:
        return RestoreConfig()
    except ValidationError as exc:
        raise ConfigError(f"Invalid environment configuration: {exc}") from exc


__all__ = ["CONFIG_ENV", "RestoreConfig", "load_config"]
