"""Shared fixtures for unit tests.

FakeClient stands in for GcpClient: it records every call and answers
from a routing function, so tests can script API responses without
a transport. The ``app`` fixture wires an App to it with a fake clock
and a shell runner that records commands instead of running them.
"""

from typing import Any, Callable, Optional

import pytest

from tgcp.app import App
from tgcp.config import ConfigStore, NotificationSettings
from tgcp.gcp.context import GcpContext
from tgcp.gcp.operations import OperationStatus, parse_operation_status
from tgcp.notifications import NotificationTracker, OperationPoller
from tgcp.resources import ResourceBackend, ResourceRegistry
from tgcp.shell import ShellRunner, Success

PROJECT = "demo-project"
ZONE = "us-central1-a"

Router = Callable[[str, str, Any], Any]

INSTANCES = [
    {
        "name": f"vm-{n}",
        "zone": "projects/demo-project/zones/us-central1-a",
        "status": status,
        "machineType": "zones/us-central1-a/machineTypes/e2-medium",
    }
    for n, status in enumerate(["RUNNING", "TERMINATED", "RUNNING", "STAGING", "RUNNING"])
]

NETWORKS = [
    {
        "name": "default",
        "selfLink": "https://www.googleapis.com/compute/v1/projects/demo-project/global/networks/default",
        "autoCreateSubnetworks": True,
    },
    {
        "name": "prod-vpc",
        "selfLink": "https://www.googleapis.com/compute/v1/projects/demo-project/global/networks/prod-vpc",
        "autoCreateSubnetworks": False,
    },
]


class FakeClient:
    """Records calls; ``router(method, url, params)`` produces responses."""

    def __init__(self, router: Optional[Router] = None) -> None:
        self.router = router or (lambda method, url, params: {"items": []})
        self.calls: list[tuple[str, str, Any]] = []

    async def _call(self, method: str, url: str, params: Any = None) -> Any:
        self.calls.append((method, url, params))
        response = self.router(method, url, params)
        if isinstance(response, Exception):
            raise response
        return response

    async def get(self, url: str, params: Any = None) -> Any:
        return await self._call("GET", url, params)

    async def post(self, url: str, body: Any = None) -> Any:
        return await self._call("POST", url)

    async def delete(self, url: str) -> Any:
        return await self._call("DELETE", url)

    async def poll_operation(self, operation_url: str) -> OperationStatus:
        return parse_operation_status(await self.get(operation_url))

    def urls(self, method: Optional[str] = None) -> list[str]:
        return [url for m, url, _ in self.calls if method is None or m == method]


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class RecordingShell(ShellRunner):
    """ShellRunner whose commands are recorded instead of run."""

    def __init__(self) -> None:
        self.commands: list[list[str]] = []
        self.outcome = Success()
        super().__init__(run=self._record, wait_for_enter=lambda: None)

    def _record(self, argv):
        self.commands.append(list(argv))
        return self.outcome


def default_router(method, url, params):
    """Serves instances and networks; everything else is empty."""
    if method == "GET" and url.endswith("/instances"):
        return {"items": [dict(i) for i in INSTANCES]}
    if method == "GET" and url.endswith("/global/networks"):
        return {"items": [dict(n) for n in NETWORKS]}
    return {"items": []}


@pytest.fixture(scope="session")
def registry() -> ResourceRegistry:
    return ResourceRegistry.load()


@pytest.fixture
def context() -> GcpContext:
    return GcpContext(project=PROJECT, zone=ZONE)


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def backend(registry, client, context) -> ResourceBackend:
    return ResourceBackend(registry, client, context)


@pytest.fixture
def store(tmp_path) -> ConfigStore:
    store = ConfigStore(tmp_path / "config.yaml")
    store.config.project_id = PROJECT
    store.config.zone = ZONE
    return store


@pytest.fixture
def project() -> str:
    return PROJECT


@pytest.fixture
def zone() -> str:
    return ZONE


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def shell() -> RecordingShell:
    return RecordingShell()


@pytest.fixture
def tracker(clock) -> NotificationTracker:
    return NotificationTracker(NotificationSettings(), clock=clock, beep=lambda: None)


@pytest.fixture
def app(registry, backend, client, tracker, store, shell, clock) -> App:
    client.router = default_router
    return App(
        registry,
        backend,
        tracker,
        store,
        shell=shell,
        poller=OperationPoller(tracker, client),
        clock=clock,
    )


@pytest.fixture
def instances():
    return INSTANCES


@pytest.fixture
def networks():
    return NETWORKS
