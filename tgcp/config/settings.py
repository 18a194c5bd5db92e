"""
tgcp Settings Manager - Runtime configuration management.

Settings here are process level knobs read from the environment (and a
.env file loaded at import of the package). User preferences that survive
between sessions live in tgcp.config.models and are persisted by the
ConfigStore.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HttpSettings(BaseSettings):
    """HTTP transport settings.

    Environment variables:
        TGCP_HTTP_TIMEOUT: Per-request timeout in seconds. Default: 30
        TGCP_HTTP_MAX_RETRIES: Additional attempts for transient failures. Default: 3
        TGCP_HTTP_BASE_DELAY: First backoff delay in seconds. Default: 0.5
        TGCP_HTTP_MAX_DELAY: Backoff ceiling in seconds. Default: 8
    """

    timeout: float = Field(
        default=30.0, gt=0, description="Per-request timeout in seconds"
    )
    max_retries: int = Field(
        default=3, ge=0, description="Retry attempts for 429/502/503/504"
    )
    base_delay: float = Field(
        default=0.5, ge=0, description="Base delay for exponential backoff"
    )
    max_delay: float = Field(default=8.0, ge=0, description="Backoff ceiling")

    model_config = SettingsConfigDict(env_prefix="TGCP_HTTP_")


class LoggingSettings(BaseSettings):
    """Logging Settings."""

    level: str = Field(default="info")
    max_file_size_mb: int = Field(default=10, gt=0)
    backup_count: int = Field(default=3, ge=0)

    model_config = SettingsConfigDict(env_prefix="TGCP_LOGGING_")


class PathSettings(BaseSettings):
    """Filesystem locations.

    TGCP_CONFIG_DIR overrides the directory holding config.yaml and tgcp.log.
    """

    config_dir: Path = Field(default_factory=lambda: _default_config_dir())

    model_config = SettingsConfigDict(env_prefix="TGCP_")


def _default_config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "tgcp"


# Cache settings to avoid repeated env access
@lru_cache
def get_http_settings() -> HttpSettings:
    """Get HTTP settings with caching."""
    return HttpSettings()


@lru_cache
def get_logging_settings() -> LoggingSettings:
    """Get logging settings with caching."""
    return LoggingSettings()


@lru_cache
def get_path_settings() -> PathSettings:
    """Get path settings with caching."""
    return PathSettings()


# Clear settings cache (for testing)
def clear_settings_cache() -> None:
    """Clear settings cache."""
    get_http_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_path_settings.cache_clear()
