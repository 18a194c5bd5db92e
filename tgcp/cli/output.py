"""CLI output helpers.

Formats messages for human or JSON consumption based on
CLIState.json_mode. Human mode uses Rich formatting; JSON mode writes
one JSON document to stdout.
"""

import json
from typing import Any, Optional

from rich.console import Console

from tgcp.cli.state import CLIState

# Console instances for stdout and stderr
console = Console()
error_console = Console(stderr=True)


def print_success(message: str, state: CLIState, data: Optional[dict] = None) -> None:
    """Print success message (human) or JSON response.

    Args:
        message: The success message to display.
        state: CLI state with json_mode flag.
        data: Optional data dict to include (JSON mode only).
    """
    if state.json_mode:
        output: dict = {"status": "success", "message": message}
        if data is not None:
            output["data"] = data
        print(json.dumps(output))
    else:
        console.print(f"[green]{message}[/green]")


def print_error(message: str, state: CLIState, error: Optional[Exception] = None) -> None:
    """Print error message (human) or JSON response with optional exception context.

    In human mode, prints to stderr with red formatting and the error's
    suggestion when it has one. In JSON mode, prints to stdout.

    Args:
        message: The error message to display.
        state: CLI state with json_mode flag.
        error: Optional exception object with additional context.
    """
    error_code = getattr(error, "error_code", None)
    suggestion = getattr(error, "suggestion", None)

    if state.json_mode:
        output = {"status": "error", "message": message}
        if error_code:
            output["error_code"] = error_code
        if suggestion:
            output["suggestion"] = suggestion
        print(json.dumps(output))
        return

    error_console.print(f"[red bold]Error:[/red bold] {message}")
    if suggestion:
        error_console.print(f"\n[cyan]Suggestion:[/cyan] {suggestion}")


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))
