"""A layer's file tree: building, stacking, comparing and rendering."""

from __future__ import annotations

import logging
import posixpath
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Sequence

from .diff import DiffType, FileAction, PathError
from .file_info import FileInfo
from .node import DOUBLE_WHITEOUT_PREFIX, FileNode, VisitEvaluator, Visitor
from .order import SortOrder, order_keys

_log = logging.getLogger(__name__)


@dataclass
class _RenderParams:
    node: FileNode
    spaces: list[bool] = field(default_factory=list)
    child_spaces: list[bool] = field(default_factory=list)
    show_collapsed: bool = False
    is_last: bool = False


@dataclass
class _CompareMark:
    lower_node: FileNode
    upper_node: FileNode
    tentative: DiffType | None
    final: DiffType | None


class FileTree:
    """A set of files and directories and their relations."""

    def __init__(self) -> None:
        self.size = 0
        self.file_size = 0
        self.name = ""
        self.id = uuid.uuid4()
        self.sort_order = SortOrder.BY_NAME
        self.root = self._new_root()

    def _new_root(self) -> FileNode:
        root = FileNode()
        root.tree = self
        root.size = 0
        root.data.view_info.collapsed = False
        return root

    def __str__(self) -> str:
        return self.to_string(False)

    def _render_between(self, start_row: int, stop_row: int, show_attributes: bool) -> str:
        selected: list[_RenderParams] = []
        to_visit: deque[_RenderParams] = deque([_RenderParams(self.root)])
        row = 0
        while to_visit and row <= stop_row:
            current = to_visit.popleft()
            node = current.node
            child_params: list[_RenderParams] = []
            for idx, name in enumerate(order_keys(node.children, self.sort_order)):
                child = node.children[name]
                if child.data.view_info.hidden or node.data.view_info.collapsed:
                    continue
                is_last = idx == len(node.children) - 1
                show_collapsed = child.data.view_info.collapsed and bool(child.children)
                child_spaces = list(current.child_spaces)
                if child.children and not child.data.view_info.collapsed:
                    child_spaces.append(is_last)
                child_params.append(
                    _RenderParams(
                        node=child,
                        spaces=current.child_spaces,
                        child_spaces=child_spaces,
                        show_collapsed=show_collapsed,
                        is_last=is_last,
                    )
                )
            to_visit.extendleft(reversed(child_params))

            if node is self.root:
                continue
            if start_row <= row <= stop_row:
                selected.append(current)
            row += 1

        lines = []
        for params in selected:
            prefix = params.node.metadata_string() + " " if show_attributes else ""
            lines.append(
                prefix
                + params.node.render_tree_line(params.spaces, params.is_last, params.show_collapsed)
            )
        return "".join(lines)

    def to_string(self, show_attributes: bool = False) -> str:
        """The whole tree as ASCII art."""
        return self._render_between(0, self.size, show_attributes)

    def string_between(self, start: int, stop: int, show_attributes: bool = False) -> str:
        """The visible rows from start to stop (inclusive) as ASCII art."""
        return self._render_between(start, stop, show_attributes)

    def visible_size(self) -> int:
        """Number of rows that would be visible, counting collapsed directories once."""
        size = 0

        def visitor(node: FileNode) -> None:
            nonlocal size
            size += 1

        def evaluator(node: FileNode) -> bool:
            nonlocal size
            view = node.data.view_info
            if node.data.file_info.is_dir:
                if view.collapsed:
                    size += 1
                return not view.collapsed and not view.hidden
            return not view.hidden

        self.visit_depth_parent_first(visitor, evaluator)
        return size - 1

    def copy(self) -> "FileTree":
        """A deep copy of the tree structure and payloads."""
        new_tree = FileTree()
        new_tree.size = self.size
        new_tree.file_size = self.file_size
        new_tree.sort_order = self.sort_order
        new_tree.root = self.root.copy(None)
        pending = [new_tree.root]
        while pending:
            node = pending.pop()
            node.tree = new_tree
            pending.extend(node.children.values())
        return new_tree

    def visit_depth_child_first(
        self, visitor: Visitor, evaluator: VisitEvaluator | None = None
    ) -> None:
        self.root.visit_depth_child_first(visitor, evaluator, self.sort_order)

    def visit_depth_parent_first(
        self, visitor: Visitor, evaluator: VisitEvaluator | None = None
    ) -> None:
        self.root.visit_depth_parent_first(visitor, evaluator, self.sort_order)

    def stack(self, upper: "FileTree") -> list[PathError]:
        """Lay the upper tree over this one, applying whiteouts; returns per-path failures."""
        failed: list[PathError] = []

        def graft(node: FileNode) -> None:
            if node.is_whiteout():
                try:
                    self.remove_path(node.path())
                except (LookupError, ValueError) as err:
                    failed.append(PathError(node.path(), FileAction.ADD, err))
            else:
                try:
                    self.add_path(node.path(), node.data.file_info)
                except ValueError as err:
                    failed.append(PathError(node.path(), FileAction.REMOVE, err))

        upper.visit_depth_child_first(graft, None)
        return failed

    def get_node(self, path: str) -> FileNode:
        """Fetch the node at a slash-delimited path; raises LookupError if absent."""
        node = self.root
        for name in path.strip("/").split("/"):
            if not name:
                continue
            child = node.children.get(name)
            if child is None:
                raise LookupError(f"path does not exist: {path}")
            node = child
        return node

    def add_path(self, filepath: str, data: FileInfo) -> tuple[FileNode | None, list[FileNode]]:
        """Add a node at the path with the payload; returns it and the nodes newly created."""
        filepath = posixpath.normpath(filepath) if filepath else "."
        if filepath == ".":
            raise ValueError(f"cannot add relative path '{filepath}'")
        names = filepath.strip("/").split("/")
        node: FileNode | None = self.root
        added: list[FileNode] = []
        last = len(names) - 1
        for idx, name in enumerate(names):
            if not name:
                continue
            existing = node.children.get(name)
            if existing is not None:
                node = existing
            else:
                if name.startswith(DOUBLE_WHITEOUT_PREFIX):
                    return None, added
                node = node.add_child(name, FileInfo())
                if node is None:
                    raise ValueError(f"could not add child node: '{name}' (path:'{filepath}')")
                added.append(node)
            if idx == last:
                node.data.file_info = data.copy()
        return node, added

    def remove_path(self, path: str) -> None:
        """Remove the node at the path and its subtree."""
        self.get_node(path).remove()

    def _try_get_node(self, path: str) -> FileNode | None:
        try:
            return self.get_node(path)
        except LookupError:
            return None

    def compare_and_mark(self, upper: "FileTree") -> list[PathError]:
        """Mark nodes of this (lower) tree with diff types against the upper tree."""
        modifications: list[_CompareMark] = []
        failed: list[PathError] = []

        def graft(upper_node: FileNode) -> None:
            path = upper_node.path()
            if upper_node.is_whiteout():
                try:
                    self.get_node(path).assign_diff_type(DiffType.REMOVED)
                except LookupError as err:
                    failed.append(PathError(path, FileAction.REMOVE, err))
                return

            lower_node = self._try_get_node(path)
            if lower_node is None:
                try:
                    _, new_nodes = self.add_path(path, upper_node.data.file_info)
                except ValueError as err:
                    failed.append(PathError(path, FileAction.ADD, err))
                    return
                for new_node in reversed(new_nodes):
                    modifications.append(_CompareMark(new_node, upper_node, None, DiffType.ADDED))
                return

            diff_type = lower_node.compare(upper_node)
            modifications.append(_CompareMark(lower_node, upper_node, diff_type, None))

        upper.visit_depth_child_first(graft, None)

        for mark in modifications:
            if mark.final is not None:
                mark.lower_node.assign_diff_type(mark.final)
            elif mark.lower_node.data.diff_type == DiffType.UNMODIFIED:
                mark.lower_node.derive_diff_type(mark.tentative)
            mark.lower_node.data.file_info = mark.upper_node.data.file_info.copy()
        return failed


def stack_tree_range(
    trees: Sequence[FileTree], start: int, stop: int
) -> tuple[FileTree, list[PathError]]:
    """Stack trees[start..stop] (inclusive) onto a copy of the first tree."""
    errors: list[PathError] = []
    tree = trees[0].copy()
    for idx in range(start, stop + 1):
        errors.extend(tree.stack(trees[idx]))
    return tree, errors