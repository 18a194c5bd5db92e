"""
Pydantic models for the persisted user configuration.

The file is written back whenever the user switches project, zone or
theme, defines an alias or changes column visibility.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class DetailLevel(str, Enum):
    """How much a notification toast says."""

    MINIMAL = "minimal"
    DETAILED = "detailed"
    VERBOSE = "verbose"


class SoundMode(str, Enum):
    """When the terminal bell rings on operation completion."""

    OFF = "off"
    ERRORS_ONLY = "errors_only"
    ALL = "all"


class NotificationSettings(BaseModel):
    """Notification tuning."""

    enabled: bool = Field(default=True, description="Track actions as notifications")
    detail_level: DetailLevel = Field(default=DetailLevel.DETAILED)
    toast_duration_secs: float = Field(default=5.0, gt=0)
    max_history: int = Field(default=50, ge=1)
    poll_interval_ms: int = Field(default=2000, ge=100)
    auto_poll: bool = Field(default=True)
    sound: SoundMode = Field(default=SoundMode.OFF)

    @field_validator("detail_level", mode="before")
    @classmethod
    def lenient_detail_level(cls, v):
        # Unknown values fall back to the default rather than failing the whole file
        if isinstance(v, str) and v.lower() not in {d.value for d in DetailLevel}:
            return DetailLevel.DETAILED
        return v.lower() if isinstance(v, str) else v

    @field_validator("sound", mode="before")
    @classmethod
    def lenient_sound(cls, v):
        if isinstance(v, str):
            v = v.lower()
            if v == "errors":
                return SoundMode.ERRORS_ONLY
            if v not in {s.value for s in SoundMode}:
                return SoundMode.OFF
        return v


class SshSettings(BaseModel):
    """Options for SSH shell actions."""

    use_iap: bool = Field(default=False, description="Always tunnel through IAP")
    extra_args: list[str] = Field(default_factory=list)


class UserConfig(BaseModel):
    """Everything tgcp remembers between sessions."""

    project_id: Optional[str] = None
    zone: Optional[str] = None
    last_resource: Optional[str] = None
    theme: Optional[str] = None
    project_themes: dict[str, str] = Field(default_factory=dict)
    aliases: dict[str, str] = Field(default_factory=dict)
    hidden_columns: dict[str, list[str]] = Field(default_factory=dict)
    ssh: SshSettings = Field(default_factory=SshSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)

    def effective_theme(self, project_id: str) -> str:
        """Theme for a project: per-project override, then global, then default."""
        if project_id in self.project_themes:
            return self.project_themes[project_id]
        return self.theme or "default"

    def resolve_alias(self, name: str) -> Optional[str]:
        return self.aliases.get(name)
