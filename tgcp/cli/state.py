"""CLI state management.

Provides a typed, immutable state object that holds CLI-wide options.
The root Typer callback builds it and stores it in the Typer context for
commands to access.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CLIState:
    """Immutable state object for CLI-wide configuration.

    Attributes:
        json_mode: If True, output JSON for scripting. If False, human-readable output.
        log_level: One of off, error, warn, info, debug, trace.
        project: Project id from the command line, overriding config and gcloud.
        zone: Zone from the command line, overriding config and gcloud.
        readonly: Disable every mutating action in the UI.
    """

    json_mode: bool = False
    log_level: str = "info"
    project: Optional[str] = None
    zone: Optional[str] = None
    readonly: bool = False
