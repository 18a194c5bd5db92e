"""
Resource backend.

Turns registry entries into concrete REST calls: expands URL templates,
builds query strings, flattens aggregated listings and applies the
definition's enrichers. The application never special-cases a resource
type; everything type specific lives in the YAML definitions.
"""

import string
from collections.abc import Mapping, Sequence
from typing import Any, Optional
from urllib.parse import quote, urlencode

from tgcp.errors import ActionError, TgcpError
from tgcp.gcp.client import GcpClient
from tgcp.gcp.context import (
    BILLING_BASE,
    BUDGETS_BASE,
    COMPUTE_BASE,
    CONTAINER_BASE,
    RESOURCE_MANAGER_BASE,
    STORAGE_BASE,
    GcpContext,
)
from tgcp.logging import get_logger
from tgcp.resources.enrichment import enrich_items
from tgcp.resources.models import ApiAction, ApiCall, ResourceDef, Scope
from tgcp.resources.registry import ResourceRegistry
from tgcp.resources.values import text_value

logger = get_logger(__name__)

Params = Mapping[str, Sequence[str]]
QueryPairs = list[tuple[str, str]]

SCOPE_BASES = {
    Scope.COMPUTE: COMPUTE_BASE + "/projects/{project}",
    Scope.ZONAL: COMPUTE_BASE + "/projects/{project}/zones/{zone}",
    Scope.REGIONAL: COMPUTE_BASE + "/projects/{project}/regions/{region}",
    Scope.GLOBAL: COMPUTE_BASE + "/projects/{project}/global",
    Scope.STORAGE: STORAGE_BASE,
    Scope.CONTAINER: CONTAINER_BASE + "/projects/{project}",
    Scope.BILLING: BILLING_BASE,
    Scope.BUDGETS: BUDGETS_BASE,
    Scope.RESOURCE_MANAGER: RESOURCE_MANAGER_BASE,
}
AGGREGATED_BASE = COMPUTE_BASE + "/projects/{project}/aggregated"
AGGREGATED_SCOPES = (Scope.ZONAL, Scope.REGIONAL)

# Names filled from the environment rather than from parameters
_CONTEXT_FIELDS = ("project", "zone", "region")


def template_fields(template: str) -> list[str]:
    """Placeholder names used by a format template."""
    return [
        field for _, field, _, _ in string.Formatter().parse(template) if field
    ]


def flatten_aggregated(response: Any) -> dict[str, Any]:
    """Merge the per-scope buckets of an aggregated list into ``items``.

    ``{"items": {"zones/a": {"instances": [...]}, ...}}`` becomes
    ``{"items": [...]}``. ``warning`` entries (empty scopes) are skipped
    and ``nextPageToken`` is kept.
    """
    flattened: dict[str, Any] = {"items": []}
    if not isinstance(response, dict):
        return flattened
    buckets = response.get("items")
    if isinstance(buckets, dict):
        for bucket in buckets.values():
            if not isinstance(bucket, dict):
                continue
            for key, value in bucket.items():
                if key != "warning" and isinstance(value, list):
                    flattened["items"].extend(value)
    token = response.get("nextPageToken")
    if token:
        flattened["nextPageToken"] = token
    return flattened


class _Resolver:
    """Looks up template values: id, request params, record fields, context."""

    def __init__(
        self,
        context: GcpContext,
        params: Params,
        item: Optional[Mapping[str, Any]],
        resource_id: Optional[str],
    ) -> None:
        self.context = context
        self.params = params
        self.item = item
        self.resource_id = resource_id

    def lookup(self, name: str) -> Optional[str]:
        if name == "id":
            return self.resource_id
        values = self.params.get(name)
        if values:
            return values[0]
        if self.item is not None:
            if name in ("zone", "region"):
                found = text_value(self.item, f"{name}_short")
            else:
                found = text_value(self.item, name)
            if found:
                return found
        if name == "project":
            return self.context.project
        if name in ("zone", "region") and not self.context.all_zones:
            return self.context.zone if name == "zone" else self.context.region
        return None

    def format(self, template: str, what: str) -> str:
        values = {}
        for name in template_fields(template):
            value = self.lookup(name)
            if value is None:
                raise ActionError(
                    message=f"Missing required parameter: {name}",
                    error_code="ACTION-MissingParameter",
                    details={"parameter": name, "template": what},
                )
            # {id} is a single path segment; other values may span segments
            values[name] = quote(value, safe="" if name == "id" else "/")
        return template.format(**values)


class ResourceBackend:
    """Executes listing, describe and action calls for registry entries.

    Attributes:
        registry: Resource definitions
        client: Transport used for every call
        context: Current project and zone, replaced on switches
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        client: GcpClient,
        context: GcpContext,
    ) -> None:
        self.registry = registry
        self.client = client
        self.context = context

    def definition(self, key: str) -> ResourceDef:
        return self.registry.require(key)

    def build_request(
        self,
        call: ApiCall,
        params: Optional[Params] = None,
        item: Optional[Mapping[str, Any]] = None,
        resource_id: Optional[str] = None,
        path: Optional[str] = None,
        base: Optional[str] = None,
        template_only: bool = False,
    ) -> tuple[str, QueryPairs]:
        """Expand a call into an absolute URL and query pairs.

        Request params are the call's defaults overridden by ``params``.
        Params consumed by the URL template are left out of the query;
        the rest become repeated ``(name, value)`` pairs. With
        ``template_only``, ``params`` the call does not declare only fill
        the URL template and never reach the query.
        """
        merged: dict[str, list[str]] = {}
        for name, default in call.params.items():
            merged[name] = [default] if isinstance(default, str) else list(default)
        for name, values in (params or {}).items():
            merged[name] = list(values)

        # Defaults may refer to context values, e.g. parent: "projects/{project}"
        resolver = _Resolver(self.context, {}, item, resource_id)
        for name, values in merged.items():
            merged[name] = [
                resolver.format(v, name) if template_fields(v) else v for v in values
            ]

        resolver = _Resolver(self.context, merged, item, resource_id)
        template = f"{base or SCOPE_BASES[call.scope]}/{path or call.path}"
        url = resolver.format(template, template)

        # Context names only reach the query when the call declares them
        consumed = set(template_fields(template))
        query: QueryPairs = [
            (name, value)
            for name, values in merged.items()
            if name not in consumed
            and (name in call.params or name not in _CONTEXT_FIELDS)
            and (name in call.params or not template_only)
            for value in values
        ]
        return url, query

    async def invoke_list(self, definition: ResourceDef, params: Params) -> Any:
        """Run a definition's list call.

        Returns:
            The decoded response; aggregated listings come back flattened

        Raises:
            TgcpError: Zonal or regional listing with zone "all" and no
                aggregated endpoint
        """
        call = definition.list
        aggregated = call.scope in AGGREGATED_SCOPES and self.context.all_zones
        if aggregated and call.aggregated_path is None:
            raise TgcpError(
                message=f"Select a zone to list {definition.display_name}",
                error_code="RESOURCE-NeedsZone",
                details={"resource_key": definition.key},
            )
        if aggregated:
            url, query = self.build_request(
                call, params, path=call.aggregated_path, base=AGGREGATED_BASE
            )
            logger.debug(f"Listing {definition.key} (aggregated)")
            return flatten_aggregated(await self.client.get(url, params=query))

        url, query = self.build_request(call, params)
        logger.debug(f"Listing {definition.key}")
        return await self.client.get(url, params=query)

    def enrich(self, definition: ResourceDef, items: list[Any]) -> list[Any]:
        return enrich_items(items, definition.enrichers)

    async def execute_action(
        self,
        definition: ResourceDef,
        action: ApiAction,
        resource_id: str,
        item: Optional[Mapping[str, Any]] = None,
        params: Optional[Params] = None,
    ) -> Any:
        """Run a mutating call against one resource.

        ``params`` (the parent's list filters) only fill the URL template.

        Returns:
            Decoded response (often an Operation), or NO_CONTENT
        """
        url, query = self.build_request(
            action.call, params, item, resource_id, template_only=True
        )
        if query:
            url = f"{url}?{urlencode(query)}"
        logger.info(
            f"Executing {action.method} on {definition.key}/{resource_id} "
            f"({action.http_method})"
        )
        if action.http_method == "DELETE":
            return await self.client.delete(url)
        return await self.client.post(url)

    async def describe(
        self,
        definition: ResourceDef,
        resource_id: Optional[str],
        item: Mapping[str, Any],
        params: Optional[Params] = None,
    ) -> Any:
        """Full detail of one record.

        Falls back to the listed record when the definition has no
        describe call.
        """
        if definition.describe is None or resource_id is None:
            return dict(item)
        url, query = self.build_request(
            definition.describe, params, item, resource_id, template_only=True
        )
        return await self.client.get(url, params=query)
