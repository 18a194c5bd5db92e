"""Reading fields out of API records.

Records are plain dicts decoded from JSON. Lookups never fail: a missing
field is None. The "-" placeholder is applied only by display_value, at
render time, and is never stored back into a record.
"""

from typing import Any, Optional

PLACEHOLDER = "-"


def extract_value(item: Any, path: str) -> Optional[Any]:
    """Follow a dot path into a record.

    Numeric segments index into lists, so ``networkInterfaces.0.networkIP``
    reads the first interface's address.

    Args:
        item: Record (usually a dict)
        path: Dot separated field path

    Returns:
        The value found, or None if any segment is missing
    """
    if not path:
        return item
    current = item
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return None
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def format_value(value: Any) -> str:
    """Render a single JSON value for a table cell."""
    if value is None:
        return PLACEHOLDER
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return f"[{len(value)} items]"
    if isinstance(value, dict):
        return "[object]"
    return str(value)


def display_value(item: Any, path: str) -> str:
    """extract_value followed by format_value."""
    return format_value(extract_value(item, path))


def text_value(item: Any, path: str) -> Optional[str]:
    """Like display_value, but None for absent values instead of the placeholder.

    Used where code needs a real string (ids, names, filter values).
    """
    value = extract_value(item, path)
    if value is None:
        return None
    text = format_value(value)
    return text or None
