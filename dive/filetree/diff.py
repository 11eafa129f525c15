"""Comparison results between file nodes and path-level failures."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class DiffType(IntEnum):
    """The comparison result between two file nodes."""

    UNMODIFIED = 0
    MODIFIED = 1
    ADDED = 2
    REMOVED = 3

    def __str__(self) -> str:
        return self.name.capitalize()

    def merge(self, other: "DiffType") -> "DiffType":
        """Keep the value if both agree, otherwise all that is known is a change."""
        if self == other:
            return self
        return DiffType.MODIFIED


class FileAction(IntEnum):
    """The operation that was attempted on a path."""

    ADD = 0
    REMOVE = 1

    def __str__(self) -> str:
        return self.name.lower()


@dataclass
class PathError:
    """A failure to add or remove a single path while combining trees."""

    path: str
    action: FileAction
    error: BaseException | None = None

    def __str__(self) -> str:
        return f"unable to {self.action} '{self.path}': {self.error}"