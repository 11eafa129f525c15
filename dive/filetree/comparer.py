"""Cached comparison trees built from ranges of layer trees."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from .diff import PathError
from .tree import FileTree, stack_tree_range


@dataclass(frozen=True)
class TreeIndexKey:
    """A bottom range of layers stacked together, compared against a top range."""

    bottom_tree_start: int
    bottom_tree_stop: int
    top_tree_start: int
    top_tree_stop: int

    def __str__(self) -> str:
        bottom_single = self.bottom_tree_start == self.bottom_tree_stop
        top_single = self.top_tree_start == self.top_tree_stop
        if bottom_single and top_single:
            return f"Index({self.bottom_tree_start}:{self.top_tree_start})"
        if bottom_single:
            return f"Index({self.bottom_tree_start}:{self.top_tree_start}-{self.top_tree_stop})"
        if top_single:
            return f"Index({self.bottom_tree_start}-{self.bottom_tree_stop}:{self.top_tree_start})"
        return (
            f"Index({self.bottom_tree_start}-{self.bottom_tree_stop}:"
            f"{self.top_tree_start}-{self.top_tree_stop})"
        )


class Comparer:
    """Builds and caches diff-marked trees for pairs of layer ranges."""

    def __init__(self, ref_trees: Sequence[FileTree]) -> None:
        self.ref_trees = list(ref_trees)
        self.trees: dict[TreeIndexKey, FileTree] = {}
        self.path_errors: dict[TreeIndexKey, list[PathError]] = {}

    def get_path_errors(self, key: TreeIndexKey) -> list[PathError]:
        """The per-path failures met while building the tree for the key."""
        if key not in self.path_errors:
            self.get_tree(key)
        return list(self.path_errors[key])

    def get_tree(self, key: TreeIndexKey) -> FileTree:
        """The diff-marked tree for the key, built once and then cached."""
        cached = self.trees.get(key)
        if cached is not None:
            return cached
        tree, errors = self._build(key)
        self.trees[key] = tree
        self.path_errors[key] = errors
        return tree

    def _build(self, key: TreeIndexKey) -> tuple[FileTree, list[PathError]]:
        tree, errors = stack_tree_range(self.ref_trees, key.bottom_tree_start, key.bottom_tree_stop)
        for idx in range(key.top_tree_start, key.top_tree_stop + 1):
            errors.extend(tree.compare_and_mark(self.ref_trees[idx]))
        return tree, errors

    def natural_indexes(self) -> Iterator[TreeIndexKey]:
        """Each layer compared with everything stacked beneath it."""
        for idx in range(len(self.ref_trees)):
            bottom_stop = idx if idx == 0 else idx - 1
            yield TreeIndexKey(0, bottom_stop, idx, idx)

    def aggregated_indexes(self) -> Iterator[TreeIndexKey]:
        """The first layer compared with all layers above it up to each index."""
        for idx in range(len(self.ref_trees)):
            if idx == 0:
                yield TreeIndexKey(0, 0, 0, 0)
            else:
                yield TreeIndexKey(0, 0, 1, idx)

    def build_cache(self) -> list[Exception]:
        """Build every natural and aggregated tree, returning the problems found."""
        errors: list[Exception] = []
        for index in self.natural_indexes():
            try:
                path_errors = self.get_path_errors(index)
            except (LookupError, ValueError) as err:
                errors.append(err)
                return errors
            for path_error in path_errors:
                errors.append(RuntimeError(f"path error at layer index {index}: {path_error}"))
        for index in self.aggregated_indexes():
            try:
                self.get_tree(index)
            except (LookupError, ValueError) as err:
                errors.append(err)
                return errors
        return errors