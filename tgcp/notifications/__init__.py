"""
Tracking of user-triggered actions and their remote operations.
"""

from tgcp.notifications.models import (
    Notification,
    NotificationStatus,
    OperationKind,
    PendingOperation,
    format_duration,
)
from tgcp.notifications.poller import OperationPoller, PollResult, apply_poll_result
from tgcp.notifications.tracker import NotificationTracker

__all__ = [
    "Notification",
    "NotificationStatus",
    "NotificationTracker",
    "OperationKind",
    "OperationPoller",
    "PendingOperation",
    "PollResult",
    "apply_poll_result",
    "format_duration",
]
