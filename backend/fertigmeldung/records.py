"""
Accessors for schemaless sevDesk JSON records.

Orders, contacts, positions and parts arrive as plain dicts whose keys vary
between API versions and hosts. Every lookup goes through a priority list of
keys; the first present, truthy value wins.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

Record = Mapping[str, Any]


def first_value(record: Optional[Record], keys: Iterable[str]) -> Any:
    """Return the first truthy value among ``keys``, or None."""
    if not isinstance(record, Mapping):
        return None
    for key in keys:
        value = record.get(key)
        if value:
            return value
    return None


def first_str(record: Optional[Record], keys: Iterable[str]) -> Optional[str]:
    """Like ``first_value`` but only string values count."""
    if not isinstance(record, Mapping):
        return None
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def get_nested(record: Optional[Record], *path: str) -> Any:
    """Follow ``path`` through nested mappings; None as soon as a step is missing."""
    current: Any = record
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def unwrap_first(resp: Any) -> Any:
    """
    Reduce a response envelope to a single record.

    Objects are searched for the first non-empty ``objects``/``data``/
    ``result``/``elements`` entry (lists yield their first element); an object
    without any of them is the record itself. A non-empty list yields its first
    element. Everything else yields None.
    """
    if isinstance(resp, Mapping):
        for key in ("objects", "data", "result", "elements"):
            value = resp.get(key)
            if value:
                return value[0] if isinstance(value, list) else value
        return resp
    if isinstance(resp, list) and resp:
        return resp[0]
    return None
