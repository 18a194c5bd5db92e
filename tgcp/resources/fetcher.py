"""
Paginated fetch engine.

fetch_page turns a resource key, filters and an opaque page token into
one page of enriched records. fetch_all walks every page in order and
fetch_concurrent fans later pages out in bounded waves.
"""

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from tgcp.logging import get_logger, log_performance
from tgcp.resources.backend import ResourceBackend
from tgcp.resources.values import extract_value

logger = get_logger(__name__)

Filters = Mapping[str, Sequence[str]]

PAGE_TOKEN_PARAM = "pageToken"
NEXT_PAGE_TOKEN_FIELD = "nextPageToken"
DEFAULT_MAX_CONCURRENCY = 4


@dataclass
class PageResult:
    """One page of records and the cursor for the next one."""

    items: list[Any] = field(default_factory=list)
    next_token: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_token is not None


def extract_items(response: Any, response_path: str, single: bool = False) -> list[Any]:
    """Find the record list in a response.

    Args:
        response: Decoded list response
        response_path: Dot path to the list; empty means the response is the list
        single: The response is one record rather than a list

    Returns:
        The records, or an empty list if the path is missing
    """
    if single:
        return [response] if isinstance(response, dict) else []
    items = extract_value(response, response_path)
    if isinstance(items, list):
        return items
    return []


def _next_token(response: Any) -> Optional[str]:
    if not isinstance(response, dict):
        return None
    token = response.get(NEXT_PAGE_TOKEN_FIELD)
    return token if isinstance(token, str) and token else None


@log_performance(threshold_ms=500)
async def fetch_page(
    backend: ResourceBackend,
    resource_key: str,
    filters: Optional[Filters] = None,
    page_token: Optional[str] = None,
) -> PageResult:
    """Fetch one page of a resource.

    Args:
        backend: Resource backend
        resource_key: Registry key, e.g. "compute-instances"
        filters: Request parameters, each mapped to a list of values
        page_token: Opaque cursor from a previous page, or None for page 1

    Returns:
        PageResult with enriched items and the next token

    Raises:
        UnknownResourceError: If the key is not registered
        GcpClientError: If the request fails
    """
    definition = backend.definition(resource_key)
    params: dict[str, list[str]] = {
        name: list(values) for name, values in (filters or {}).items()
    }
    if page_token is not None:
        params[PAGE_TOKEN_PARAM] = [page_token]

    response = await backend.invoke_list(definition, params)
    items = extract_items(response, definition.response_path, definition.single)
    result = PageResult(
        items=backend.enrich(definition, items),
        next_token=None if definition.single else _next_token(response),
    )
    logger.debug(
        f"Fetched {len(result.items)} {resource_key} "
        f"(more: {result.has_more})"
    )
    return result


async def fetch_all(
    backend: ResourceBackend,
    resource_key: str,
    filters: Optional[Filters] = None,
) -> list[Any]:
    """Fetch every page sequentially, in order."""
    items: list[Any] = []
    token: Optional[str] = None
    while True:
        page = await fetch_page(backend, resource_key, filters, token)
        items.extend(page.items)
        if page.next_token is None:
            return items
        token = page.next_token


async def fetch_concurrent(
    backend: ResourceBackend,
    resource_key: str,
    filter_sets: Optional[Sequence[Filters]] = None,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> list[Any]:
    """Fetch every page of one or more listings with bounded concurrency.

    The first page of the first listing is fetched alone so a failure
    there (bad key, no credentials) surfaces directly. After that, each
    wave fetches the next page of every listing that still has one,
    with at most ``max_concurrency`` requests in flight. Tokens of a wave
    are only known once the previous wave has finished.

    A page that fails inside a wave is logged and dropped along with the
    rest of its listing. Results are ordered by listing, then page, and
    items keep their order within a page.

    Args:
        backend: Resource backend
        resource_key: Registry key
        filter_sets: One filter mapping per listing, e.g. one per zone
        max_concurrency: Upper bound on simultaneous requests

    Returns:
        All fetched items
    """
    chains: list[Filters] = list(filter_sets or [{}])
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    first = await fetch_page(backend, resource_key, chains[0], None)
    # Pages of each listing, in fetch order
    pages: list[list[list[Any]]] = [[] for _ in chains]
    pages[0].append(list(first.items))

    # (chain index, token) pairs to fetch in the next wave
    pending: list[tuple[int, Optional[str]]] = []
    if first.next_token is not None:
        pending.append((0, first.next_token))
    pending.extend((index, None) for index in range(1, len(chains)))

    async def fetch_one(index: int, token: Optional[str]) -> PageResult:
        async with semaphore:
            return await fetch_page(backend, resource_key, chains[index], token)

    wave = 0
    while pending:
        wave += 1
        logger.debug(f"Fetching wave {wave} of {resource_key}: {len(pending)} pages")
        results = await asyncio.gather(
            *(fetch_one(index, token) for index, token in pending),
            return_exceptions=True,
        )
        next_pending: list[tuple[int, Optional[str]]] = []
        for (index, token), result in zip(pending, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    f"Dropping page of {resource_key} (listing {index}): {result}"
                )
                continue
            pages[index].append(list(result.items))
            if result.next_token is not None:
                next_pending.append((index, result.next_token))
        pending = next_pending
    return [item for listing in pages for page in listing for item in page]
