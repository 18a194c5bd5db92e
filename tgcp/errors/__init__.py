"""
Error handling framework for tgcp.

This module exposes the application exception hierarchy.
"""

from tgcp.errors.exceptions import (
    ActionError,
    AuthenticationError,
    ConfigurationError,
    ConfigurationFileError,
    InvalidConfigurationError,
    MissingConfigurationError,
    RegistryError,
    TgcpError,
    UnknownResourceError,
)

__all__ = [
    "TgcpError",
    "ConfigurationError",
    "ConfigurationFileError",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "AuthenticationError",
    "UnknownResourceError",
    "RegistryError",
    "ActionError",
]
