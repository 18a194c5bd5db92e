"""Core shared logic for the GCP HTTP client.

This module contains pure functions and configuration used by GcpClient:
retry policy, backoff calculation, response parsing and the sanitizing
of response bodies before they reach a log file.
"""

import random
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from tgcp.gcp.client.errors import APIError, ResponseParseError
from tgcp.logging import get_logger

logger = get_logger(__name__)

# Statuses worth another attempt: rate limiting and gateway/availability hiccups
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})

# Longest response excerpt written to the log
LOG_EXCERPT_LIMIT = 200


class _NoContent:
    """Marker for a successful response with an empty body."""

    _instance: Optional["_NoContent"] = None

    def __new__(cls) -> "_NoContent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_CONTENT"


NO_CONTENT = _NoContent()


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration for GcpClient instances.

    Attributes:
        timeout: Per-request timeout in seconds
        max_retries: Additional attempts after the first for transient failures
        base_delay: Backoff delay for the first retry in seconds
        max_delay: Upper bound of the exponential part of the backoff
        user_agent: Value of the User-Agent header
    """

    timeout: float = 30.0
    max_retries: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    user_agent: str = "tgcp"


def should_retry(status_code: int, attempt: int, max_retries: int) -> bool:
    """Determine if a request should be retried based on status code and attempt count.

    Only 429, 502, 503 and 504 are retried. Everything else, including
    other 5xx codes, fails immediately.

    Args:
        status_code: HTTP response status code
        attempt: Current attempt number (0-indexed)
        max_retries: Maximum number of retries allowed

    Returns:
        True if the request should be retried, False otherwise
    """
    if attempt >= max_retries:
        return False
    return status_code in RETRYABLE_STATUS_CODES


def calculate_backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    """Calculate capped exponential backoff delay with jitter.

    Uses the formula: min(base_delay * 2**attempt, max_delay) + random(0, capped / 2)

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Ceiling for the exponential part in seconds

    Returns:
        Delay in seconds before next retry attempt
    """
    capped = min(base_delay * (2**attempt), max_delay)
    jitter = random.uniform(0, capped * 0.5)
    return capped + jitter


def sanitize_excerpt(text: Optional[str], limit: int = LOG_EXCERPT_LIMIT) -> str:
    """Reduce a response body to a short, printable excerpt for logging.

    Non-printable characters (control codes, escape sequences) are dropped
    so a hostile or binary body cannot mangle the log or the terminal.

    Args:
        text: Raw response text
        limit: Maximum length of the excerpt

    Returns:
        Printable excerpt, suffixed with "..." when truncated
    """
    if not text:
        return ""
    printable = "".join(ch for ch in text if ch.isprintable())
    if len(printable) > limit:
        return printable[:limit] + "..."
    return printable


def extract_error_message(response: httpx.Response) -> Optional[str]:
    """Pull error.message out of a Google API error envelope.

    Args:
        response: httpx Response with a non-2xx status

    Returns:
        The structured message, or None when the body does not follow the envelope
    """
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    # storage and oauth endpoints sometimes use {"error": "...", "error_description": "..."}
    description = payload.get("error_description")
    if isinstance(description, str) and description:
        return description
    return None


def _request_url(response: httpx.Response) -> str:
    try:
        return str(response.request.url)
    except RuntimeError:
        # Response built without a request (tests, synthetic responses)
        return ""


def parse_response(response: httpx.Response) -> Any:
    """Parse HTTP response, extracting JSON and handling errors.

    Args:
        response: httpx Response object

    Returns:
        Parsed JSON value for non-empty 2xx responses, NO_CONTENT for empty ones

    Raises:
        APIError: For non-2xx responses
        ResponseParseError: For 2xx responses whose body is not JSON
    """
    url = _request_url(response)

    if 200 <= response.status_code < 300:
        if not response.content or not response.content.strip():
            return NO_CONTENT
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                f"Invalid JSON from {url} ({response.status_code}): "
                f"{sanitize_excerpt(response.text)}"
            )
            raise ResponseParseError(
                message="Failed to parse response from the API",
                status_code=response.status_code,
                details={"url": url},
            ) from e

    logger.error(
        f"API error {response.status_code} from {url}: {sanitize_excerpt(response.text)}"
    )
    message = extract_error_message(response) or (
        f"API request failed with status {response.status_code}"
    )
    raise APIError(
        message=message,
        status_code=response.status_code,
        details={"url": url},
    )
