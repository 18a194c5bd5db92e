"""
Command line interface for tgcp.

``tgcp`` starts the terminal UI; ``tgcp resources``, ``tgcp list`` and
``tgcp config show`` are plain commands for scripting and inspection.
"""

from tgcp.cli.app import app, cli_entry

__all__ = ["app", "cli_entry"]
