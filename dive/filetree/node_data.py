"""Per-node payload: view state, file metadata and diff result."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from .diff import DiffType
from .file_info import FileInfo

_global_collapse = False


def set_global_collapse(value: bool) -> None:
    """Set whether newly created nodes start collapsed."""
    global _global_collapse
    _global_collapse = bool(value)


def _default_collapse() -> bool:
    return _global_collapse


@dataclass
class ViewInfo:
    """UI state for a single node."""

    collapsed: bool = field(default_factory=_default_collapse)
    hidden: bool = False

    def copy(self) -> "ViewInfo":
        return replace(self)


@dataclass
class NodeData:
    """The payload carried by a file node."""

    view_info: ViewInfo = field(default_factory=ViewInfo)
    file_info: FileInfo = field(default_factory=FileInfo)
    diff_type: DiffType = DiffType.UNMODIFIED

    def copy(self) -> "NodeData":
        return NodeData(
            view_info=self.view_info.copy(),
            file_info=self.file_info.copy(),
            diff_type=self.diff_type,
        )