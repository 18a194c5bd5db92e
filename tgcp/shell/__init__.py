"""Shell actions (SSH, browser) and their outcomes."""

from tgcp.shell.runner import (
    Failed,
    ShellOutcome,
    ShellRunner,
    SpawnError,
    SshOptions,
    Success,
    browser_command,
    console_url,
    run_command,
)

__all__ = [
    "Failed",
    "ShellOutcome",
    "ShellRunner",
    "SpawnError",
    "SshOptions",
    "Success",
    "browser_command",
    "console_url",
    "run_command",
]
