"""Exception hierarchy for GCP HTTP client errors.

This module defines custom exceptions for HTTP client operations,
providing structured error information with status codes, a coarse
category for callers, and details that are safe to log.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Coarse classification of a failed API call."""

    AUTH_FAILED = "auth_failed"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INVALID_REQUEST = "invalid_request"
    CONFLICT = "conflict"
    SERVICE_UNAVAILABLE = "service_unavailable"
    GENERIC = "generic"

    @classmethod
    def from_status(cls, status_code: Optional[int]) -> "ErrorCategory":
        """Map an HTTP status code to its category.

        Args:
            status_code: HTTP status, or None for failures without a response

        Returns:
            The matching category, GENERIC when nothing specific applies
        """
        return _STATUS_CATEGORIES.get(status_code, cls.GENERIC)


_STATUS_CATEGORIES = {
    401: ErrorCategory.AUTH_FAILED,
    403: ErrorCategory.PERMISSION_DENIED,
    404: ErrorCategory.NOT_FOUND,
    429: ErrorCategory.RATE_LIMITED,
    400: ErrorCategory.INVALID_REQUEST,
    409: ErrorCategory.CONFLICT,
    500: ErrorCategory.SERVICE_UNAVAILABLE,
    503: ErrorCategory.SERVICE_UNAVAILABLE,
}


class GcpClientError(Exception):
    """Base exception for GCP client errors.

    All client exceptions inherit from this class, allowing
    callers to catch any client error with a single except clause.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code if applicable, None otherwise.
        details: Additional error context as a dictionary.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory.from_status(self.status_code)


class ConnectionError(GcpClientError):
    """Failed to connect to the API endpoint.

    Raised when the client cannot establish a connection after all
    retry attempts have been exhausted.
    """

    pass


class TimeoutError(GcpClientError):
    """Request timed out.

    Raised when a request exceeds the configured timeout,
    including after all retry attempts have been exhausted.
    """

    pass


class ResponseParseError(GcpClientError):
    """A successful response carried a body that is not valid JSON."""

    pass


class APIError(GcpClientError):
    """API returned an error response.

    The message is taken from the structured error envelope only; the raw
    response body is never part of it.
    """

    _RETRYABLE_STATUS_CODES = {429, 502, 503, 504}

    @property
    def retryable(self) -> bool:
        """Whether the failure is transient."""
        if self.status_code is None:
            return False
        return self.status_code in self._RETRYABLE_STATUS_CODES

    def __str__(self) -> str:
        return self.message

    def verbose_str(self) -> str:
        """Return detailed error string with status code.

        Returns:
            Error message with status code appended.
        """
        if self.status_code is not None:
            return f"{self.message} ({self.status_code})"
        return self.message


_CATEGORY_MESSAGES = {
    ErrorCategory.AUTH_FAILED: "Authentication failed. Run 'gcloud auth login'.",
    ErrorCategory.PERMISSION_DENIED: "Permission denied. Check your IAM permissions.",
    ErrorCategory.NOT_FOUND: "Resource not found.",
    ErrorCategory.RATE_LIMITED: "Rate limit exceeded. Please try again later.",
}

MAX_STATUS_MESSAGE = 100


def format_error(error: BaseException) -> str:
    """Format an exception for the single-line status bar.

    Well-known categories get a fixed hint; everything else uses the
    error message, truncated.

    Args:
        error: Any exception raised while talking to the API

    Returns:
        Short user-facing text
    """
    if isinstance(error, GcpClientError):
        fixed = _CATEGORY_MESSAGES.get(error.category)
        if fixed is not None:
            return fixed
        text = error.message
    else:
        text = getattr(error, "message", None) or str(error) or type(error).__name__

    if len(text) > MAX_STATUS_MESSAGE:
        return f"{text[:MAX_STATUS_MESSAGE]}..."
    return text
