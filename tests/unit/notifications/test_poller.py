"""Tests for operation polling and applying poll results."""

import pytest

from tgcp.config import NotificationSettings
from tgcp.errors import AuthenticationError
from tgcp.gcp.client import ConnectionError
from tgcp.gcp.operations import OperationDone, OperationFailed, OperationRunning, OperationUnknown
from tgcp.notifications import (
    NotificationStatus,
    NotificationTracker,
    OperationPoller,
    PollResult,
    apply_poll_result,
)

OP_URL = "https://compute.googleapis.com/compute/v1/projects/p/zones/z/operations/op-{n}"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock) -> NotificationTracker:
    return NotificationTracker(
        NotificationSettings(poll_interval_ms=2000), clock=clock, beep=lambda: None
    )


def in_progress(tracker: NotificationTracker, n: int) -> str:
    nid = tracker.create("stop_instance", "compute", f"vm-{n}")
    tracker.mark_in_progress(nid, OP_URL.format(n=n))
    return nid


class TestOperationPoller:
    @pytest.mark.asyncio
    async def test_polls_only_due_operations(self, tracker, clock, client) -> None:
        client.router = lambda method, url, params: {"status": "RUNNING"}
        poller = OperationPoller(tracker, client)
        in_progress(tracker, 1)

        assert poller.tick(clock.now + 1) == 0
        assert poller.tick(clock.now + 2) == 1
        await poller.wait_idle()

        [result] = poller.drain()
        assert result.status == OperationRunning()
        assert poller.drain() == []

    @pytest.mark.asyncio
    async def test_polls_are_independent(self, tracker, clock, client) -> None:
        def router(method, url, params):
            if url.endswith("op-2"):
                return ConnectionError("network down")
            return {"status": "DONE"}

        client.router = router
        poller = OperationPoller(tracker, client)
        first = in_progress(tracker, 1)
        second = in_progress(tracker, 2)

        assert poller.tick(clock.now + 5) == 2
        await poller.wait_idle()

        results = {r.notification_id: r for r in poller.drain()}
        assert results[first].status == OperationDone()
        assert results[second].status is None
        assert results[second].error == "network down"
        assert poller.in_flight == 0

    @pytest.mark.asyncio
    async def test_token_failure_is_queued(self, tracker, clock, client) -> None:
        client.router = lambda method, url, params: AuthenticationError(
            "Could not refresh access token"
        )
        poller = OperationPoller(tracker, client)
        nid = in_progress(tracker, 1)

        poller.tick(clock.now + 5)
        await poller.wait_idle()

        [result] = poller.drain()
        assert result.notification_id == nid
        assert result.status is None
        assert result.error == "Could not refresh access token"
        assert poller.in_flight == 0
        assert not apply_poll_result(tracker, result)
        assert tracker.is_pending(nid)

    @pytest.mark.asyncio
    async def test_tick_never_awaits(self, tracker, clock, client) -> None:
        poller = OperationPoller(tracker, client)
        in_progress(tracker, 1)
        poller.tick(clock.now + 5)
        # Nothing ran yet; the task only progresses when the loop gets control
        assert poller.drain() == []
        await poller.wait_idle()
        assert len(poller.drain()) == 1


class TestApplyPollResult:
    def test_done_marks_success_and_requests_refresh(self, tracker) -> None:
        nid = in_progress(tracker, 1)
        assert apply_poll_result(tracker, PollResult(nid, OP_URL, OperationDone()))
        assert tracker.get(nid).status == NotificationStatus.SUCCESS
        assert not tracker.is_pending(nid)

    def test_failed_marks_error(self, tracker) -> None:
        nid = in_progress(tracker, 1)
        assert not apply_poll_result(tracker, PollResult(nid, OP_URL, OperationFailed("quota")))
        assert tracker.get(nid).status == NotificationStatus.ERROR
        assert tracker.get(nid).error == "quota"

    @pytest.mark.parametrize("status", [OperationRunning(), OperationUnknown("WEIRD"), None])
    def test_other_outcomes_keep_polling(self, tracker, status) -> None:
        nid = in_progress(tracker, 1)
        assert not apply_poll_result(tracker, PollResult(nid, OP_URL, status, "x"))
        assert tracker.get(nid).status == NotificationStatus.IN_PROGRESS
        assert tracker.is_pending(nid)
