"""Long-running operation helpers.

Mutating Compute Engine calls answer with an Operation resource. Its
``selfLink`` is polled until ``status`` reaches DONE; a DONE operation
with an ``error`` block failed.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

OPERATION_DONE = "DONE"
OPERATION_ACTIVE_STATES = frozenset({"RUNNING", "PENDING"})


@dataclass(frozen=True)
class OperationDone:
    """The operation finished without error."""


@dataclass(frozen=True)
class OperationFailed:
    """The operation finished with an error."""

    message: str


@dataclass(frozen=True)
class OperationRunning:
    """The operation is still pending or running."""


@dataclass(frozen=True)
class OperationUnknown:
    """The status field held something we do not recognize."""

    raw: str


OperationStatus = Union[OperationDone, OperationFailed, OperationRunning, OperationUnknown]


def extract_operation_url(response: Any) -> Optional[str]:
    """Return the polling URL when a response is an Operation.

    Args:
        response: Parsed JSON returned by a mutating call

    Returns:
        The operation's selfLink, or None for synchronous responses
    """
    if not isinstance(response, dict):
        return None
    self_link = response.get("selfLink")
    if not isinstance(self_link, str) or not self_link:
        return None
    kind = response.get("kind")
    is_operation = (isinstance(kind, str) and kind.endswith("#operation")) or (
        "status" in response and "operationType" in response
    )
    return self_link if is_operation else None


def _first_error_message(error: Any) -> str:
    if isinstance(error, dict):
        errors = error.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict) and isinstance(first.get("message"), str):
                return first["message"]
        if isinstance(error.get("message"), str):
            return error["message"]
    return "Unknown error"


def parse_operation_status(response: Any) -> OperationStatus:
    """Classify an Operation resource.

    Args:
        response: Parsed Operation JSON

    Returns:
        OperationDone, OperationFailed(message), OperationRunning or
        OperationUnknown(raw status)
    """
    status = response.get("status") if isinstance(response, dict) else None
    if status == OPERATION_DONE:
        error = response.get("error")
        if error:
            return OperationFailed(_first_error_message(error))
        return OperationDone()
    if status in OPERATION_ACTIVE_STATES:
        return OperationRunning()
    return OperationUnknown(str(status))
