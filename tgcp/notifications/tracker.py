"""
Notification tracker.

Keeps the most-recent-first history of action notifications and the list
of remote operations that still need polling. Only the application task
mutates it; poll results reach it through OperationPoller.drain().
"""

import sys
import time
from typing import Callable, Optional

from tgcp.config.models import DetailLevel, NotificationSettings, SoundMode
from tgcp.logging import get_logger
from tgcp.notifications.models import (
    Notification,
    NotificationStatus,
    OperationKind,
    PendingOperation,
)

logger = get_logger(__name__)

RECENT_WINDOW_SECS = 300.0


def terminal_bell() -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


class NotificationTracker:
    """History of notifications plus pending-operation bookkeeping.

    Args:
        settings: Notification tuning from the user config
        clock: Monotonic clock, injectable for tests
        beep: Called when the sound policy asks for a bell
    """

    def __init__(
        self,
        settings: Optional[NotificationSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        beep: Callable[[], None] = terminal_bell,
    ) -> None:
        self.notifications: list[Notification] = []
        self.pending: list[PendingOperation] = []
        self.clock = clock
        self.beep = beep
        self._last_toast_time: Optional[float] = None
        self.apply_settings(settings or NotificationSettings())

    def apply_settings(self, settings: NotificationSettings) -> None:
        self.enabled = settings.enabled
        self.max_history = settings.max_history
        self.toast_duration = settings.toast_duration_secs
        self.poll_interval = settings.poll_interval_ms / 1000
        self.detail_level = settings.detail_level
        self.sound = settings.sound
        self.auto_poll = settings.auto_poll

    # --- lifecycle ---

    def create(self, method: str, resource_type: str, resource_id: str) -> str:
        """Record a new Pending notification and return its id."""
        now = self.clock()
        notification = Notification(
            kind=OperationKind.from_method(method),
            method=method,
            resource_type=resource_type,
            resource_id=resource_id,
            created_at=now,
        )
        self.notifications.insert(0, notification)
        self._last_toast_time = now
        self._trim_history()
        logger.debug(f"Notification {notification.id}: {method} {resource_id}")
        return notification.id

    def mark_in_progress(self, notification_id: str, operation_url: Optional[str] = None) -> None:
        """Move to InProgress; register the operation for polling if given."""
        notification = self.get(notification_id)
        if notification is None:
            return
        now = self.clock()
        notification.status = NotificationStatus.IN_PROGRESS
        notification.operation_url = operation_url
        notification.updated_at = now
        if operation_url and self.auto_poll:
            self.pending.append(
                PendingOperation(
                    notification_id=notification_id,
                    operation_url=operation_url,
                    last_poll=now,
                )
            )
        self._last_toast_time = now

    def mark_success(self, notification_id: str) -> None:
        notification = self._finish(notification_id, NotificationStatus.SUCCESS)
        if notification is not None and self.sound == SoundMode.ALL:
            self.beep()

    def mark_error(self, notification_id: str, error: str) -> None:
        notification = self._finish(notification_id, NotificationStatus.ERROR, error)
        if notification is not None and self.sound in (SoundMode.ERRORS_ONLY, SoundMode.ALL):
            self.beep()

    def _finish(
        self,
        notification_id: str,
        status: NotificationStatus,
        error: Optional[str] = None,
    ) -> Optional[Notification]:
        notification = self.get(notification_id)
        if notification is None:
            logger.debug(f"Ignoring update for unknown notification {notification_id}")
            return None
        if notification.is_terminal:
            return None
        now = self.clock()
        notification.status = status
        notification.error = error
        notification.completed_at = now
        notification.updated_at = now
        self._last_toast_time = now
        self.pending = [p for p in self.pending if p.notification_id != notification_id]
        return notification

    # --- queries ---

    def get(self, notification_id: str) -> Optional[Notification]:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    def current_toast(self, now: Optional[float] = None) -> Optional[Notification]:
        """Most recent notification while its toast is still showing."""
        if self._last_toast_time is None or not self.notifications:
            return None
        now = self.clock() if now is None else now
        if now - self._last_toast_time > self.toast_duration:
            return None
        return self.notifications[0]

    def toast_text(self, now: Optional[float] = None) -> Optional[str]:
        now = self.clock() if now is None else now
        toast = self.current_toast(now)
        return toast.toast_message(self.detail_level, now) if toast else None

    def message_for(self, notification: Notification, detail_level: Optional[DetailLevel] = None) -> str:
        return notification.toast_message(detail_level or self.detail_level, self.clock())

    @property
    def in_progress_count(self) -> int:
        return sum(1 for n in self.notifications if not n.is_terminal)

    def recent_count(self, now: Optional[float] = None) -> int:
        now = self.clock() if now is None else now
        return sum(
            1 for n in self.notifications if now - n.created_at < RECENT_WINDOW_SECS
        )

    def is_pending(self, notification_id: str) -> bool:
        return any(p.notification_id == notification_id for p in self.pending)

    def due_operations(self, now: Optional[float] = None) -> list[PendingOperation]:
        """Operations whose poll interval has elapsed, marked as polled."""
        now = self.clock() if now is None else now
        due = []
        for operation in self.pending:
            if operation.is_due(now, self.poll_interval):
                operation.mark_polled(now)
                due.append(operation)
        return due

    def clear(self) -> None:
        self.notifications.clear()
        self.pending.clear()
        self._last_toast_time = None

    def __len__(self) -> int:
        return len(self.notifications)

    def _trim_history(self) -> None:
        while len(self.notifications) > self.max_history:
            # Oldest terminal entry first; otherwise the oldest entry of any kind
            for index in range(len(self.notifications) - 1, -1, -1):
                if self.notifications[index].is_terminal:
                    evicted = self.notifications.pop(index)
                    break
            else:
                evicted = self.notifications.pop()
            self.pending = [p for p in self.pending if p.notification_id != evicted.id]
