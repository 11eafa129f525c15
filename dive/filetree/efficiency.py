"""Wasted-space scoring across the layers of an image."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .node import FileNode
from .tree import FileTree, stack_tree_range

_log = logging.getLogger(__name__)


@dataclass
class EfficiencyData:
    """Storage and reference statistics for one path across layers."""

    path: str
    nodes: list[FileNode] = field(default_factory=list)
    cumulative_size: int = 0
    min_discovered_size: int = field(default=-1, repr=False)


def _removed_size(trees: Sequence[FileTree], index: int, path: str) -> int:
    """Size of what a whiteout in layer `index` removes from the layers below."""
    stacked, failed = stack_tree_range(trees, 0, index - 1)
    for error in failed:
        _log.debug("unable to include path in stacked tree: %s", error)
    previous = stacked.get_node(path)
    total = 0
    if previous.data.file_info.is_dir:

        def sizer(node: FileNode) -> None:
            nonlocal total
            total += node.data.file_info.size

        previous.visit_depth_child_first(sizer, None, None)
    return total


def efficiency(trees: Sequence[FileTree]) -> tuple[float, list[EfficiencyData]]:
    """Score the layers and list paths stored more than once, smallest waste first.

    Files duplicated across layers, and files later removed, lower the score
    in proportion to their size.
    """
    by_path: dict[str, EfficiencyData] = {}
    inefficient: list[EfficiencyData] = []

    for index, tree in enumerate(trees):

        def visitor(node: FileNode, index: int = index) -> None:
            path = node.path()
            data = by_path.setdefault(path, EfficiencyData(path=path))
            if node.is_whiteout():
                size = _removed_size(trees, index, path)
            else:
                size = node.data.file_info.size

            data.cumulative_size += size
            if data.min_discovered_size < 0 or size < data.min_discovered_size:
                data.min_discovered_size = size
            data.nodes.append(node)
            if len(data.nodes) == 2:
                inefficient.append(data)

        try:
            tree.visit_depth_child_first(visitor, FileNode.is_leaf)
        except (LookupError, ValueError) as err:
            _log.debug("unable to propagate layer tree %s: %s", tree.id, err)

    minimum_total = sum(data.min_discovered_size for data in by_path.values())
    discovered_total = sum(data.cumulative_size for data in by_path.values())
    score = 1.0 if discovered_total == 0 else minimum_total / discovered_total

    inefficient.sort(key=lambda data: data.cumulative_size)
    return score, inefficient