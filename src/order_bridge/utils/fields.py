#!/usr/bin/env python3
"""
Candidate Field Lookup

The storefront API does not pin down its field names (snake_case vs camelCase,
flat vs nested), so values are read from an ordered list of candidate paths.

A path is a dotted string: "shipment.trackingUrl", "orderStatus.name",
"shipments.0.trackingNumber" (numeric segments index into lists).
"""

from typing import Any, Iterable, Iterator, Optional, Tuple

_MISSING = object()


def resolve_path(obj: Any, path: str) -> Any:
    """
    Walk a dotted path through nested dicts and lists.

    Args:
        obj: Parsed JSON object
        path: Dotted candidate path

    Returns:
        The value at the path, or a private sentinel when any segment is absent
    """
    current = obj
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def _usable(value: Any) -> bool:
    """Scalar, non-empty values only; nested objects never count as a value."""
    if value is _MISSING or value is None or isinstance(value, (dict, list, bool)):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def iter_present(obj: Any, paths: Iterable[str]) -> Iterator[Tuple[str, str]]:
    """Yield (path, value-as-string) for every candidate path holding a usable value."""
    for path in paths:
        value = resolve_path(obj, path)
        if _usable(value):
            yield path, str(value).strip()


def first_present(obj: Any, paths: Iterable[str], default: Optional[str] = None) -> Optional[str]:
    """
    Return the first present, non-empty value among candidate paths.

    Args:
        obj: Parsed JSON object
        paths: Candidate paths in priority order
        default: Returned when no candidate holds a usable value

    Returns:
        The value as a stripped string, or default
    """
    for _, value in iter_present(obj, paths):
        return value
    return default
