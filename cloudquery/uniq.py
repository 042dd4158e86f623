"""Sorted de-duplication of string lists."""

from __future__ import annotations

from collections.abc import Iterable


def unique(items: Iterable[str] | None) -> list[str] | None:
    """Return the distinct items in ascending order; None stays None."""
    if items is None:
        return None
    return sorted(set(items))