"""A single node of a layer's file tree."""

from __future__ import annotations

import math
import os
import sys
from typing import Any, Callable, Iterable

from .diff import DiffType
from .file_info import TYPE_LINK, TYPE_SYMLINK, FileInfo
from .node_data import NodeData
from .order import SortOrder, order_keys

NEW_LINE = "\n"
NO_BRANCH_SPACE = "    "
BRANCH_SPACE = "│   "
MIDDLE_ITEM = "├─"
LAST_ITEM = "└─"
WHITEOUT_PREFIX = ".wh."
DOUBLE_WHITEOUT_PREFIX = ".wh..wh.."
UNCOLLAPSED_ITEM = "─ "
COLLAPSED_ITEM = "⊕ "

_DIFF_COLORS = {
    DiffType.ADDED: "32",
    DiffType.REMOVED: "31",
    DiffType.MODIFIED: "33",
    DiffType.UNMODIFIED: "0",
}

_SIZE_SUFFIXES = ("B", "kB", "MB", "GB", "TB", "PB", "EB")

Visitor = Callable[["FileNode"], None]
VisitEvaluator = Callable[["FileNode"], bool]


def _colors_enabled() -> bool:
    if "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb":
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def _colorize(text: str, diff_type: DiffType) -> str:
    if not _colors_enabled():
        return text
    return f"\x1b[{_DIFF_COLORS.get(diff_type, '0')}m{text}\x1b[0m"


def format_bytes(size: int) -> str:
    """Render a byte count with SI units, e.g. 600 B or 83 MB."""
    size = max(int(size), 0)
    if size < 10:
        return f"{size} B"
    exponent = math.floor(math.log(size) / math.log(1000))
    suffix = _SIZE_SUFFIXES[exponent]
    value = math.floor(size / 1000**exponent * 10 + 0.5) / 10
    if value < 10:
        return f"{value:.1f} {suffix}"
    return f"{value:.0f} {suffix}"


class FileNode:
    """A file or directory, its children, and the tree it belongs to."""

    def __init__(
        self,
        parent: FileNode | None = None,
        name: str = "",
        data: FileInfo | None = None,
    ) -> None:
        self.name = name
        self.parent = parent
        self.tree: Any = parent.tree if parent is not None else None
        self.data = NodeData()
        self.data.file_info = (data or FileInfo()).copy()
        self.size = -1
        self.children: dict[str, FileNode] = {}
        self._path = ""

    def __repr__(self) -> str:
        return f"FileNode(name={self.name!r})"

    def __str__(self) -> str:
        display = self.name
        if self.data.file_info.type_flag in (TYPE_SYMLINK, TYPE_LINK):
            display += " → " + self.data.file_info.linkname
        return _colorize(display, self.data.diff_type)

    def render_tree_line(self, spaces: Iterable[bool], last: bool, collapsed: bool) -> str:
        """Render this node as one line of an ASCII tree."""
        branches = "".join(NO_BRANCH_SPACE if space else BRANCH_SPACE for space in spaces)
        this_branch = LAST_ITEM if last else MIDDLE_ITEM
        indicator = COLLAPSED_ITEM if collapsed else UNCOLLAPSED_ITEM
        return branches + this_branch + indicator + str(self) + NEW_LINE

    def copy(self, parent: FileNode | None) -> FileNode:
        """Duplicate this node and its subtree under a new parent."""
        new_node = FileNode(parent, self.name, self.data.file_info)
        new_node.data.view_info = self.data.view_info.copy()
        new_node.data.diff_type = self.data.diff_type
        for name, child in self.children.items():
            new_node.children[name] = child.copy(new_node)
        return new_node

    def add_child(self, name: str, data: FileInfo) -> FileNode | None:
        """Create a child; an existing child keeps its children and takes the new payload."""
        if name.startswith(DOUBLE_WHITEOUT_PREFIX):
            return None
        child = FileNode(self, name, data)
        existing = self.children.get(name)
        if existing is not None:
            existing.data.file_info = data.copy()
        else:
            self.children[name] = child
            self.tree.size += 1
        return child

    def remove(self) -> None:
        """Detach this node and its subtree from the tree."""
        if self is self.tree.root:
            raise ValueError("cannot remove the tree root")
        for child in list(self.children.values()):
            child.remove()
        del self.parent.children[self.name]
        self.tree.size -= 1

    def metadata_string(self) -> str:
        """Type, permissions, owner and size in fixed-width columns."""
        info = self.data.file_info
        mode = info.mode

        def bit(mask: int, char: str) -> str:
            return char if mode & mask else "-"

        def exec_bit(mask: int, special: int, on: str, off: str) -> str:
            if mode & mask:
                return on if mode & special else "x"
            return off if mode & special else "-"

        perms = (
            bit(0o400, "r")
            + bit(0o200, "w")
            + exec_bit(0o100, 0o4000, "s", "S")
            + bit(0o040, "r")
            + bit(0o020, "w")
            + exec_bit(0o010, 0o2000, "s", "S")
            + bit(0o004, "r")
            + bit(0o002, "w")
            + exec_bit(0o001, 0o1000, "t", "T")
        )
        kind = "d" if info.is_dir else "-"
        user_group = f"{info.uid}:{info.gid}"
        size = format_bytes(self.get_size())
        text = f"{kind}{perms} {user_group:>11} {size:>10} "
        return _colorize(text, self.data.diff_type)

    def get_size(self) -> int:
        """Total size, memoized; removed children count only inside a removed directory."""
        if self.size >= 0:
            return self.size
        if self.is_leaf():
            total = self.data.file_info.size
        else:
            total = 0

            def sizer(node: FileNode) -> None:
                nonlocal total
                if node.data.diff_type != DiffType.REMOVED or self.data.diff_type == DiffType.REMOVED:
                    total += node.data.file_info.size

            self.visit_depth_child_first(sizer, None, None)
        self.size = total
        return total

    def _is_root(self) -> bool:
        return self.tree is not None and self is self.tree.root

    def visit_depth_child_first(
        self,
        visitor: Visitor,
        evaluator: VisitEvaluator | None = None,
        sort_order: SortOrder | None = None,
    ) -> None:
        """Depth-first walk visiting children before their parent; the root is never visited."""
        order = SortOrder.BY_NAME if sort_order is None else sort_order
        for name in order_keys(self.children, order):
            child = self.children.get(name)
            if child is not None:
                child.visit_depth_child_first(visitor, evaluator, order)
        if self._is_root():
            return
        if evaluator is None or evaluator(self):
            visitor(self)

    def visit_depth_parent_first(
        self,
        visitor: Visitor,
        evaluator: VisitEvaluator | None = None,
        sort_order: SortOrder | None = None,
    ) -> None:
        """Depth-first walk visiting a parent before its children; rejected nodes are not descended."""
        if evaluator is not None and not evaluator(self):
            return
        if not self._is_root():
            visitor(self)
        order = SortOrder.BY_NAME if sort_order is None else sort_order
        for name in order_keys(self.children, order):
            child = self.children.get(name)
            if child is not None:
                child.visit_depth_parent_first(visitor, evaluator, order)

    def is_whiteout(self) -> bool:
        return self.name.startswith(WHITEOUT_PREFIX)

    def is_leaf(self) -> bool:
        return not self.children

    def path(self) -> str:
        """Slash-delimited path from the tree root to this node."""
        if not self._path:
            names: list[str] = []
            current = self
            while current.parent is not None:
                name = current.name
                if current is self:
                    name = name.removeprefix(WHITEOUT_PREFIX)
                names.append(name)
                current = current.parent
            self._path = "/" + "/".join(reversed(names))
        return self._path.replace("//", "/")

    def derive_diff_type(self, diff_type: DiffType) -> None:
        """Assign a diff type merged from the given one and those of the children."""
        if self.is_leaf():
            self.assign_diff_type(diff_type)
            return
        merged = diff_type
        for child in self.children.values():
            merged = merged.merge(child.data.diff_type)
        self.assign_diff_type(merged)

    def assign_diff_type(self, diff_type: DiffType) -> None:
        """Set the diff type; a removal propagates to all descendants."""
        self.data.diff_type = diff_type
        if diff_type == DiffType.REMOVED:
            for child in self.children.values():
                child.assign_diff_type(diff_type)

    def compare(self, other: FileNode | None) -> DiffType:
        """Compare this (lower) node with the corresponding upper node."""
        if other is None:
            return DiffType.REMOVED
        if other.is_whiteout():
            return DiffType.REMOVED
        if self.name != other.name:
            raise ValueError("comparing mismatched nodes")
        return self.data.file_info.compare(other.data.file_info)