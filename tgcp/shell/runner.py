"""
Out-of-process actions: SSH sessions and the browser.

Every command reports one of three outcomes: it ran and exited 0, it ran
and exited non-zero, or it could not be started. Interactive commands
need the terminal, so the UI hands ShellRunner a ``suspend`` wrapper that
gives the screen back to the child process and restores it afterwards.
"""

import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar, Union

from tgcp.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

CONSOLE_BASE = "https://console.cloud.google.com"
RETURN_PROMPT = "\nPress Enter to return to tgcp..."


@dataclass(frozen=True)
class Success:
    pass


@dataclass(frozen=True)
class Failed:
    code: int


@dataclass(frozen=True)
class SpawnError:
    message: str


ShellOutcome = Union[Success, Failed, SpawnError]


@dataclass
class SshOptions:
    instance: str
    zone: str
    project: str
    use_iap: bool = False
    extra_args: list[str] = field(default_factory=list)

    def argv(self) -> list[str]:
        args = [
            "gcloud",
            "compute",
            "ssh",
            self.instance,
            "--zone",
            self.zone,
            "--project",
            self.project,
        ]
        if self.use_iap:
            args.append("--tunnel-through-iap")
        args.extend(self.extra_args)
        return args


def run_command(argv: Sequence[str]) -> ShellOutcome:
    """Run a command with inherited stdio and wait for it."""
    logger.info(f"Executing: {' '.join(argv)}")
    try:
        completed = subprocess.run(list(argv), check=False)
    except OSError as e:
        return SpawnError(f"Failed to execute {argv[0]}: {e}")
    if completed.returncode == 0:
        return Success()
    return Failed(completed.returncode)


def browser_command(url: str, platform: Optional[str] = None) -> list[str]:
    platform = platform or sys.platform
    if platform == "darwin":
        return ["open", url]
    if platform.startswith("win"):
        return ["cmd", "/C", "start", url]
    return ["xdg-open", url]


def console_url(resource_key: str, name: str, project: str, zone: str) -> str:
    """Cloud Console page for a resource, or the project dashboard."""
    if resource_key == "compute-instances":
        return (
            f"{CONSOLE_BASE}/compute/instancesDetail/zones/{zone}/instances/{name}"
            f"?project={project}"
        )
    if resource_key == "compute-disks":
        return f"{CONSOLE_BASE}/compute/disksDetail/zones/{zone}/disks/{name}?project={project}"
    if resource_key == "storage-buckets":
        return f"{CONSOLE_BASE}/storage/browser/{name}?project={project}"
    if resource_key == "gke-clusters":
        return f"{CONSOLE_BASE}/kubernetes/clusters/details/{zone}/{name}?project={project}"
    return f"{CONSOLE_BASE}/home/dashboard?project={project}"


def _no_suspend(func: Callable[[], T]) -> T:
    return func()


class ShellRunner:
    """Runs shell actions for the application.

    Args:
        suspend: Wraps a callable that needs the real terminal
        run: Command runner, replaceable in tests
        wait_for_enter: Called after an interactive command finishes
    """

    def __init__(
        self,
        suspend: Callable[[Callable[[], ShellOutcome]], ShellOutcome] = _no_suspend,
        run: Callable[[Sequence[str]], ShellOutcome] = run_command,
        wait_for_enter: Optional[Callable[[], None]] = None,
    ) -> None:
        self.suspend = suspend
        self.run = run
        self.wait_for_enter = wait_for_enter or self._prompt_return

    @staticmethod
    def _prompt_return() -> None:
        print(RETURN_PROMPT)
        try:
            input()
        except EOFError:
            pass

    def ssh(self, options: SshOptions) -> ShellOutcome:
        def session() -> ShellOutcome:
            outcome = self.run(options.argv())
            if not isinstance(outcome, SpawnError):
                self.wait_for_enter()
            return outcome

        return self.suspend(session)

    def open_browser(self, url: str) -> ShellOutcome:
        return self.run(browser_command(url))
