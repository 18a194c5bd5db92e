"""Google Cloud access: credentials, transport, context and operations."""

from tgcp.gcp.auth import (
    CredentialCache,
    GcloudTokenProvider,
    StaticTokenProvider,
    default_token_provider,
    get_default_project,
    get_default_zone,
    validate_project_id,
)
from tgcp.gcp.context import ALL_ZONES, GcpContext
from tgcp.gcp.operations import (
    OperationDone,
    OperationFailed,
    OperationRunning,
    OperationStatus,
    OperationUnknown,
    extract_operation_url,
    parse_operation_status,
)

__all__ = [
    "ALL_ZONES",
    "CredentialCache",
    "GcloudTokenProvider",
    "GcpContext",
    "OperationDone",
    "OperationFailed",
    "OperationRunning",
    "OperationStatus",
    "OperationUnknown",
    "StaticTokenProvider",
    "default_token_provider",
    "extract_operation_url",
    "get_default_project",
    "get_default_zone",
    "parse_operation_status",
    "validate_project_id",
]
