"""
Notification records for user-triggered actions.

A Notification follows Pending -> InProgress (optional) -> Success | Error.
Once terminal it is immutable history. PendingOperation carries the
polling bookkeeping for one in-flight remote operation.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from tgcp.config.models import DetailLevel


class OperationKind(str, Enum):
    """What an action does, as far as the notification text is concerned."""

    START = "start"
    STOP = "stop"
    RESET = "reset"
    DELETE = "delete"
    OTHER = "other"

    @classmethod
    def from_method(cls, method: str) -> "OperationKind":
        if method == "start_instance":
            return cls.START
        if method == "stop_instance":
            return cls.STOP
        if method == "reset_instance":
            return cls.RESET
        if method.startswith("delete_"):
            return cls.DELETE
        return cls.OTHER

    @property
    def past_tense(self) -> str:
        return _PAST_TENSE[self]

    @property
    def present_participle(self) -> str:
        return _PRESENT_PARTICIPLE[self]


_PAST_TENSE = {
    OperationKind.START: "Started",
    OperationKind.STOP: "Stopped",
    OperationKind.RESET: "Reset",
    OperationKind.DELETE: "Deleted",
    OperationKind.OTHER: "Completed",
}
_PRESENT_PARTICIPLE = {
    OperationKind.START: "Starting",
    OperationKind.STOP: "Stopping",
    OperationKind.RESET: "Resetting",
    OperationKind.DELETE: "Deleting",
    OperationKind.OTHER: "Processing",
}


class NotificationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (NotificationStatus.SUCCESS, NotificationStatus.ERROR)

    @property
    def icon(self) -> str:
        return _ICONS[self]


_ICONS = {
    NotificationStatus.PENDING: "◯",
    NotificationStatus.IN_PROGRESS: "↻",
    NotificationStatus.SUCCESS: "✓",
    NotificationStatus.ERROR: "✗",
}


def format_duration(seconds: float) -> str:
    """120ms, 42s or 3m5s."""
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"
    whole = int(seconds)
    if whole < 60:
        return f"{whole}s"
    return f"{whole // 60}m{whole % 60}s"


@dataclass
class Notification:
    """Lifecycle record of one action on one resource.

    Timestamps are monotonic clock readings.
    """

    kind: OperationKind
    method: str
    resource_type: str
    resource_id: str
    created_at: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: NotificationStatus = NotificationStatus.PENDING
    error: Optional[str] = None
    operation_url: Optional[str] = None
    completed_at: Optional[float] = None
    updated_at: Optional[float] = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def display_name(self) -> str:
        if self.kind is OperationKind.OTHER:
            return self.method
        return self.kind.value.capitalize()

    def duration(self, now: float) -> float:
        end = self.completed_at if self.completed_at is not None else now
        return max(0.0, end - self.created_at)

    def verb(self) -> str:
        if self.status is NotificationStatus.ERROR:
            return "Failed"
        if self.status is NotificationStatus.SUCCESS:
            return self.kind.past_tense
        return self.kind.present_participle

    def toast_message(self, detail_level: DetailLevel, now: float) -> str:
        """One-line summary for the status bar and history list."""
        head = f"{self.status.icon} {self.verb()} {self.resource_id}"
        if detail_level == DetailLevel.MINIMAL:
            return head
        if detail_level == DetailLevel.DETAILED:
            if self.is_terminal:
                return f"{head} ({format_duration(self.duration(now))})"
            return f"{head}..."
        base = f"{head} [{self.resource_type}]"
        if self.status is NotificationStatus.ERROR:
            return f"{base} - {self.error}"
        if self.is_terminal:
            return f"{base} ({format_duration(self.duration(now))})"
        return f"{base}..."


@dataclass
class PendingOperation:
    """Polling state for one remote operation."""

    notification_id: str
    operation_url: str
    last_poll: float
    poll_count: int = 0

    def is_due(self, now: float, interval: float) -> bool:
        return now - self.last_poll >= interval

    def mark_polled(self, now: float) -> None:
        self.last_poll = now
        self.poll_count += 1
