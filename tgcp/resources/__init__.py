"""
Resource registry, backend and fetch engine.

Usage:
    from tgcp.resources import ResourceRegistry, ResourceBackend, fetch_page

    registry = ResourceRegistry.load()
    backend = ResourceBackend(registry, client, context)
    page = await fetch_page(backend, "compute-instances")
"""

from tgcp.resources.backend import ResourceBackend, flatten_aggregated
from tgcp.resources.fetcher import (
    PageResult,
    extract_items,
    fetch_all,
    fetch_concurrent,
    fetch_page,
)
from tgcp.resources.models import (
    ApiAction,
    ApiCall,
    ColumnDef,
    ConfirmPolicy,
    ListCall,
    ResourceDef,
    Scope,
    ShellAction,
    SubResourceDef,
)
from tgcp.resources.registry import ResourceRegistry
from tgcp.resources.values import (
    PLACEHOLDER,
    display_value,
    extract_value,
    format_value,
    text_value,
)

__all__ = [
    # Registry
    "ResourceRegistry",
    "ResourceDef",
    "ApiAction",
    "ApiCall",
    "ColumnDef",
    "ConfirmPolicy",
    "ListCall",
    "Scope",
    "ShellAction",
    "SubResourceDef",
    # Backend and fetching
    "ResourceBackend",
    "PageResult",
    "extract_items",
    "fetch_all",
    "fetch_concurrent",
    "fetch_page",
    "flatten_aggregated",
    # Values
    "PLACEHOLDER",
    "display_value",
    "extract_value",
    "format_value",
    "text_value",
]
