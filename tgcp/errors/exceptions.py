"""
Exception hierarchy for tgcp.

This module defines the application level exceptions. Transport failures
live next to the HTTP client in tgcp.gcp.client.errors; everything here
covers configuration, credentials, the resource registry and actions.

None of these terminate an interactive session on their own. Only the
startup path (no project, no credentials) turns them into a process exit.
"""

from typing import Any, Optional


class TgcpError(Exception):
    """
    Base exception class for all tgcp application errors.

    Attributes:
        message: Human-readable error message
        error_code: Optional error code for reference and documentation
        details: Optional dictionary with additional error details
        suggestion: Optional suggestion text for how to fix the error
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize a new TgcpError.

        Args:
            message: Human-readable error message
            error_code: Optional error code for reference and documentation
            details: Optional dictionary with additional error details
            suggestion: Optional suggestion text for how to fix the error
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestion = suggestion
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize error to dictionary (used by the CLI JSON output).

        Returns:
            Dictionary with all error information
        """
        return {
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "suggestion": self.suggestion,
        }


# --- Configuration Errors ---


class ConfigurationError(TgcpError):
    """
    Base class for configuration problems.

    Raised for the persisted user config, settings and startup values
    such as the project id.
    """

    def format_user_message(self) -> str:
        """
        Format a user-friendly error message with the suggestion appended.

        Returns:
            Formatted error message string
        """
        parts = [f"Error: {self.message}"]
        if self.error_code:
            parts.append(f"Code: {self.error_code}")
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "\n".join(parts)

    def __str__(self) -> str:
        """String representation of the error."""
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class MissingConfigurationError(ConfigurationError):
    """Exception raised when a required configuration value is missing."""

    pass


class InvalidConfigurationError(ConfigurationError):
    """Exception raised when a configuration value is invalid."""

    pass


class ConfigurationFileError(ConfigurationError):
    """Exception raised when the config file cannot be read or written."""

    pass


# --- Credential Errors ---


class AuthenticationError(TgcpError):
    """Exception raised when an access token cannot be obtained."""

    pass


# --- Resource Errors ---


class UnknownResourceError(TgcpError):
    """
    Exception raised when a resource key is not in the registry.

    Non-fatal: the view stays unchanged and the message goes to the status line.
    """

    def __init__(self, resource_key: str) -> None:
        super().__init__(
            message=f"Unknown resource: {resource_key}",
            error_code="RESOURCE-Unknown",
            details={"resource_key": resource_key},
        )
        self.resource_key = resource_key


class RegistryError(TgcpError):
    """Exception raised when resource definitions are malformed."""

    pass


class ActionError(TgcpError):
    """Exception raised when an action cannot be dispatched (bad method, missing parameter)."""

    pass
