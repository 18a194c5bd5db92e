"""
Configuration for tgcp: environment settings and the persisted user config.
"""

from tgcp.config.models import (
    DetailLevel,
    NotificationSettings,
    SoundMode,
    SshSettings,
    UserConfig,
)
from tgcp.config.settings import (
    HttpSettings,
    LoggingSettings,
    PathSettings,
    clear_settings_cache,
    get_http_settings,
    get_logging_settings,
    get_path_settings,
)
from tgcp.config.store import ConfigStore

__all__ = [
    "ConfigStore",
    "DetailLevel",
    "HttpSettings",
    "LoggingSettings",
    "NotificationSettings",
    "PathSettings",
    "SoundMode",
    "SshSettings",
    "UserConfig",
    "clear_settings_cache",
    "get_http_settings",
    "get_logging_settings",
    "get_path_settings",
]
