"""Turn flat key/value argument lists into dictionaries."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def _key(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "<nil>"
    return str(value)


def to_map(kvs: Iterable[Any]) -> dict[str, Any]:
    """Pair up alternating keys and values into a dict.

    A trailing key without a value is paired with None; non-string keys
    are converted to strings and later duplicates win.
    """
    items = list(kvs)
    if len(items) % 2:
        items.append(None)
    return {_key(key): value for key, value in zip(items[::2], items[1::2])}