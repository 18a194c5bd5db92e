"""
Tick-driven polling of remote operations.

OperationPoller.tick() starts one task per due operation. Each task only
writes its outcome to a queue; the application drains that queue on its
own task and applies the results to the tracker, so the tracker never
sees concurrent writers.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from tgcp.errors import TgcpError
from tgcp.gcp.client import GcpClient, GcpClientError
from tgcp.gcp.operations import (
    OperationDone,
    OperationFailed,
    OperationRunning,
    OperationStatus,
    OperationUnknown,
)
from tgcp.logging import get_logger
from tgcp.notifications.tracker import NotificationTracker

logger = get_logger(__name__)


@dataclass(frozen=True)
class PollResult:
    """Outcome of one poll.

    ``status`` is None when the poll itself failed (transport error or
    no usable token).
    """

    notification_id: str
    operation_url: str
    status: Optional[OperationStatus]
    error: Optional[str] = None


class OperationPoller:
    """Dispatches operation polls and collects their results."""

    def __init__(self, tracker: NotificationTracker, client: GcpClient) -> None:
        self.tracker = tracker
        self.client = client
        self.results: asyncio.Queue[PollResult] = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()

    def tick(self, now: Optional[float] = None) -> int:
        """Start a poll for every due operation. Never blocks.

        Returns:
            Number of polls started
        """
        due = self.tracker.due_operations(now)
        for operation in due:
            task = asyncio.create_task(
                self._poll(operation.notification_id, operation.operation_url)
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return len(due)

    async def _poll(self, notification_id: str, operation_url: str) -> None:
        try:
            status = await self.client.poll_operation(operation_url)
        except (GcpClientError, TgcpError) as e:
            logger.warning(f"Polling {operation_url} failed: {e}")
            await self.results.put(PollResult(notification_id, operation_url, None, str(e)))
            return
        await self.results.put(PollResult(notification_id, operation_url, status))

    def drain(self) -> list[PollResult]:
        """Queued results, without waiting."""
        drained = []
        while True:
            try:
                drained.append(self.results.get_nowait())
            except asyncio.QueueEmpty:
                return drained

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for every started poll to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def apply_poll_result(tracker: NotificationTracker, result: PollResult) -> bool:
    """Apply one poll outcome to the tracker.

    Returns:
        True when the operation completed successfully and the view
        should be refreshed
    """
    status = result.status
    if isinstance(status, OperationDone):
        tracker.mark_success(result.notification_id)
        return True
    if isinstance(status, OperationFailed):
        tracker.mark_error(result.notification_id, status.message)
        return False
    if isinstance(status, OperationUnknown):
        logger.warning(
            f"Unrecognized status '{status.raw}' for operation {result.operation_url}"
        )
    elif isinstance(status, OperationRunning):
        logger.debug(f"Operation {result.operation_url} still running")
    # Transport failures and unknown states stay InProgress for the next tick
    return False
