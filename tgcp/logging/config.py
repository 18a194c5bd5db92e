"""
Logging configuration for tgcp.

This module handles the centralized logging configuration including:
- Rotating file output (the terminal belongs to the UI while it runs)
- Global debug flag mechanism
- Level names accepted on the command line
- Logger retrieval with consistent formatting
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Optional, Union

# Global debug flag
_DEBUG_MODE = False

# Component-specific log levels
_COMPONENT_LOG_LEVELS = {
    "gcp.auth": logging.INFO,
    "notifications.poller": logging.INFO,
}

# Log format with detailed context
_DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s.%(funcName)s:%(lineno)d | %(message)s"

# Name of the package root logger
_ROOT_LOGGER = "tgcp"

# Command line level names. "trace" has no stdlib equivalent and maps to
# the most verbose level available.
_LEVEL_NAMES = {
    "off": None,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.NOTSET,
}


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name and apply component-specific levels.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        A configured logger instance
    """
    logger = logging.getLogger(name)

    for component, level in _COMPONENT_LOG_LEVELS.items():
        if component in name:
            logger.setLevel(level)
            break

    return logger


def level_from_name(name: str) -> Optional[int]:
    """
    Translate a command line level name into a logging level.

    Args:
        name: One of off, error, warn, info, debug, trace (case-insensitive)

    Returns:
        The logging level, or None when logging is switched off

    Raises:
        ValueError: If the name is not recognized
    """
    key = name.strip().lower()
    if key not in _LEVEL_NAMES:
        raise ValueError(
            f"Unknown log level '{name}'. Expected one of: off, error, warn, info, debug, trace"
        )
    return _LEVEL_NAMES[key]


def set_debug_mode(enabled: bool) -> None:
    """
    Set the global debug mode flag.

    Args:
        enabled: True to enable debug mode, False to disable
    """
    global _DEBUG_MODE
    old_value = _DEBUG_MODE
    _DEBUG_MODE = enabled

    if old_value != _DEBUG_MODE:
        root_logger = logging.getLogger(_ROOT_LOGGER)
        if enabled:
            root_logger.setLevel(logging.DEBUG)
            root_logger.info("Debug mode enabled")
        else:
            root_logger.info("Debug mode disabled")
            root_logger.setLevel(logging.INFO)


def is_debug_mode() -> bool:
    """
    Check if debug mode is currently enabled.

    Returns:
        True if debug mode is enabled, False otherwise
    """
    return _DEBUG_MODE


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    file_level: Optional[int] = logging.INFO,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    config: Optional[dict[str, Any]] = None,
) -> Optional[Path]:
    """
    Configure file logging for the session.

    No console handler is installed: curses owns the terminal and any
    stray write would corrupt the screen.

    Args:
        log_dir: Directory to store the log file. Logging is disabled when None.
        file_level: Logging level for file output, None switches logging off
        max_file_size_mb: Maximum size of the log file in MB before rotation
        backup_count: Number of rotated files to keep
        config: Additional configuration options (file_format, debug_mode)

    Returns:
        Path of the log file, or None when file logging is disabled
    """
    if config is None:
        config = {}

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    tgcp_logger = logging.getLogger(_ROOT_LOGGER)

    if log_dir is None or file_level is None:
        # Keep library warnings from falling through to stderr.
        root_logger.addHandler(logging.NullHandler())
        tgcp_logger.setLevel(logging.CRITICAL + 1)
        return None

    root_logger.setLevel(logging.DEBUG)
    tgcp_logger.setLevel(logging.DEBUG if is_debug_mode() else file_level)

    log_path = Path(log_dir) if isinstance(log_dir, str) else log_dir
    log_path.mkdir(exist_ok=True, parents=True)
    log_file = log_path / "tgcp.log"

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=max_file_size_mb * 1024 * 1024,
        backupCount=backup_count,
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(
        logging.Formatter(config.get("file_format", _DEFAULT_FORMAT))
    )
    root_logger.addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    tgcp_logger.info(
        f"tgcp logging initialized (level: {logging.getLevelName(file_level)}, file: {log_file})"
    )

    debug_mode = config.get("debug_mode", is_debug_mode())
    set_debug_mode(debug_mode)
    return log_file
