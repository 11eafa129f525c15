"""Orderings for the children of a node."""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Mapping


class SortOrder(IntEnum):
    BY_NAME = 0
    BY_SIZE_DESC = 1


def order_keys(children: Mapping[str, Any], sort_order: SortOrder | None) -> list[str]:
    """Return the child names in the requested order; unknown orders sort by name."""
    if sort_order == SortOrder.BY_SIZE_DESC:
        return sorted(children, key=lambda name: (-children[name].get_size(), name))
    return sorted(children)