"""Images, their layers, the analysis of wasted space, and resolver interfaces."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..filetree.efficiency import EfficiencyData, efficiency
from ..filetree.node import format_bytes
from ..filetree.tree import FileTree

LAYER_FORMAT = "{size:>7}  {text}"
_SHORT_ID_LENGTH = 15


@dataclass
class Layer:
    """One layer of an image with its file tree and metadata."""

    id: str = ""
    index: int = 0
    command: str = ""
    size: int = 0
    tree: FileTree | None = None
    names: list[str] = field(default_factory=list)
    digest: str = ""

    def short_id(self) -> str:
        return self.id[:_SHORT_ID_LENGTH]

    def _command_preview(self) -> str:
        # heredoc commands span lines; a layer renders as a single line
        return self.command.replace("\n", "↵")

    def __str__(self) -> str:
        text = "FROM " + self.short_id() if self.index == 0 else self._command_preview()
        return LAYER_FORMAT.format(size=format_bytes(self.size), text=text)


@dataclass
class Image:
    """A fetched image: the request it came from, its layer trees and layers."""

    request: str = ""
    trees: list[FileTree] = field(default_factory=list)
    layers: list[Layer] = field(default_factory=list)


@dataclass
class Analysis:
    """Size and efficiency results for an image."""

    image: str
    layers: list[Layer]
    ref_trees: list[FileTree]
    efficiency: float
    size_bytes: int
    user_size_bytes: int
    wasted_user_percent: float
    wasted_bytes: int
    inefficiencies: list[EfficiencyData]


def analyze(img: Image) -> Analysis:
    """Compute the efficiency score and wasted space of an image."""
    score, inefficiencies = efficiency(img.trees)
    size_bytes = sum(layer.size for layer in img.layers)
    user_size_bytes = sum(layer.size for layer in img.layers[1:])
    wasted_bytes = sum(data.cumulative_size for data in inefficiencies)

    if user_size_bytes:
        wasted_percent = wasted_bytes / user_size_bytes
    else:
        wasted_percent = math.nan if wasted_bytes == 0 else math.inf

    return Analysis(
        image=img.request,
        layers=img.layers,
        ref_trees=img.trees,
        efficiency=score,
        size_bytes=size_bytes,
        user_size_bytes=user_size_bytes,
        wasted_user_percent=wasted_percent,
        wasted_bytes=wasted_bytes,
        inefficiencies=inefficiencies,
    )


class ContentReader(ABC):
    """Something that can extract files of a layer from an image."""

    @abstractmethod
    def extract(self, image_id: str, layer: str, path: str) -> None:
        """Extract the files under path from the given layer of the image."""


class Resolver(ContentReader):
    """Something that can fetch or build an image."""

    @abstractmethod
    def name(self) -> str:
        """The name shown to the user."""

    @abstractmethod
    def fetch(self, image_id: str) -> Image:
        """Fetch and parse an existing image."""

    @abstractmethod
    def build(self, args: list[str]) -> Image:
        """Build an image from the given build arguments and parse it."""