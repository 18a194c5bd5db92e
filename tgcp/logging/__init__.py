"""
Logging system for tgcp.

This module provides a centralized logging configuration with a rotating
log file and helper decorators for common logging patterns.
"""

from tgcp.logging.config import (
    configure_logging,
    get_logger,
    is_debug_mode,
    level_from_name,
    set_debug_mode,
)
from tgcp.logging.helpers import log_performance

__all__ = [
    # Configuration
    "configure_logging",
    "get_logger",
    "level_from_name",
    "set_debug_mode",
    "is_debug_mode",
    # Helper methods
    "log_performance",
]
