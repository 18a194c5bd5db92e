"""Filtering and sorting of fetched records.

Both functions return new lists; the input is never reordered in place.
"""

import functools
import json
import math
from collections.abc import Sequence
from typing import Any, Optional

from tgcp.resources.models import ColumnDef
from tgcp.resources.values import display_value


def matches(item: Any, needle: str, columns: Optional[Sequence[ColumnDef]]) -> bool:
    """Case-insensitive substring match against every column.

    Without column definitions the whole record's JSON text is searched.
    ``needle`` must already be lower case.
    """
    if columns is None:
        return needle in json.dumps(item, sort_keys=True).lower()
    return any(
        needle in display_value(item, column.json_path).lower() for column in columns
    )


def filter_items(
    items: Sequence[Any],
    text: str,
    columns: Optional[Sequence[ColumnDef]] = None,
) -> list[Any]:
    needle = text.lower()
    if not needle:
        return list(items)
    return [item for item in items if matches(item, needle, columns)]


def _as_number(text: str) -> Optional[float]:
    try:
        number = float(text)
    except ValueError:
        return None
    # nan and inf would break the total order
    return number if math.isfinite(number) else None


def compare_values(a: str, b: str) -> int:
    """Numeric comparison when both parse as numbers, text otherwise."""
    na, nb = _as_number(a), _as_number(b)
    if na is not None and nb is not None:
        if na < nb:
            return -1
        if na > nb:
            return 1
        return 0
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def sort_items(items: Sequence[Any], json_path: str, ascending: bool = True) -> list[Any]:
    """Stable sort on one column; equal keys keep their relative order."""
    keyed = [(display_value(item, json_path), item) for item in items]

    def compare(left: tuple[str, Any], right: tuple[str, Any]) -> int:
        result = compare_values(left[0], right[0])
        return result if ascending else -result

    return [item for _, item in sorted(keyed, key=functools.cmp_to_key(compare))]
