"""HTTP transport for the Google Cloud REST APIs.

Usage:
    from tgcp.gcp.client import GcpClient

    async with GcpClient(credentials) as client:
        page = await client.get(url, params={"maxResults": "100"})
"""

from tgcp.gcp.client.async_client import GcpClient
from tgcp.gcp.client.core import (
    NO_CONTENT,
    ClientConfig,
    calculate_backoff,
    parse_response,
    sanitize_excerpt,
    should_retry,
)
from tgcp.gcp.client.errors import (
    APIError,
    ConnectionError,
    ErrorCategory,
    GcpClientError,
    ResponseParseError,
    TimeoutError,
    format_error,
)

__all__ = [
    "GcpClient",
    "ClientConfig",
    "NO_CONTENT",
    "calculate_backoff",
    "parse_response",
    "sanitize_excerpt",
    "should_retry",
    "APIError",
    "ConnectionError",
    "ErrorCategory",
    "GcpClientError",
    "ResponseParseError",
    "TimeoutError",
    "format_error",
]
