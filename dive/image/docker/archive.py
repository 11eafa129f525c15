"""Reading image archives (docker save and OCI layouts) into layer trees."""

from __future__ import annotations

import io
import json
import os
import posixpath
import shutil
import tarfile
from dataclasses import dataclass, field, replace
from typing import BinaryIO, Iterator

import zstandard

from ...filetree.file_info import FileInfo, file_info_from_tar
from ...filetree.tree import FileTree
from ..model import Analysis, Image, Layer, analyze

_SNIFF_SIZE = 1024
_GZIP_MAGIC = b"\x1f\x8b"
_ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
_SHELL_PREFIX = "/bin/sh -c "


@dataclass
class HistoryEntry:
    """One entry of an image's build history."""

    id: str = ""
    size: int = 0
    created: str = ""
    author: str = ""
    created_by: str = ""
    empty_layer: bool = False


@dataclass
class ImageConfig:
    """The parts of an image config that describe its layers."""

    history: list[HistoryEntry] = field(default_factory=list)
    rootfs_type: str = ""
    diff_ids: list[str] = field(default_factory=list)


@dataclass
class Manifest:
    """The docker-save manifest entry of an image."""

    config_path: str = ""
    repo_tags: list[str] = field(default_factory=list)
    layer_tar_paths: list[str] = field(default_factory=list)


def _load_json_object(data: bytes | str) -> dict:
    loaded = json.loads(data)
    if not isinstance(loaded, dict):
        raise ValueError("expected a JSON object")
    return loaded


def parse_config(data: bytes | str) -> ImageConfig:
    """Parse an image config, giving each history entry its layer diff id."""
    try:
        raw = _load_json_object(data)
        rootfs = raw.get("rootfs") or {}
        diff_ids = [str(item) for item in rootfs.get("diff_ids") or []]
        history = [
            HistoryEntry(
                created=entry.get("created") or "",
                author=entry.get("author") or "",
                created_by=entry.get("created_by") or "",
                empty_layer=bool(entry.get("empty_layer", False)),
            )
            for entry in raw.get("history") or []
        ]
    except (ValueError, AttributeError, TypeError) as err:
        raise ValueError(f"failed to unmarshal docker config: {err}") from err

    layer_idx = 0
    for entry in history:
        if entry.empty_layer:
            entry.id = "<missing>"
        else:
            if layer_idx >= len(diff_ids):
                raise ValueError("docker config has more layer history entries than diff ids")
            entry.id = diff_ids[layer_idx]
            layer_idx += 1

    return ImageConfig(history=history, rootfs_type=str(rootfs.get("type") or ""), diff_ids=diff_ids)


def is_config(data: bytes | str) -> bool:
    """Whether the JSON document looks like an image config."""
    try:
        raw = _load_json_object(data)
    except ValueError:
        return False
    rootfs = raw.get("rootfs")
    return isinstance(rootfs, dict) and rootfs.get("type") == "layers"


def parse_manifest(data: bytes | str) -> Manifest:
    """Parse a docker-save manifest.json and return its first entry."""
    try:
        entries = json.loads(data)
        if not isinstance(entries, list) or not entries:
            raise ValueError("expected a non-empty JSON array")
        first = entries[0]
        return Manifest(
            config_path=first.get("Config") or "",
            repo_tags=list(first.get("RepoTags") or []),
            layer_tar_paths=list(first.get("Layers") or []),
        )
    except (ValueError, AttributeError, TypeError) as err:
        raise ValueError(f"failed to unmarshal manifest: {err}") from err


def _file_infos(tar: tarfile.TarFile) -> Iterator[FileInfo]:
    for member in tar:
        # relative notations are never part of the file name
        name = posixpath.normpath(member.name) if member.name else "."
        if name == ".":
            continue
        if member.type == tarfile.XGLTYPE:
            raise ValueError(
                f"unexpected tar file: (XGlobalHeader): type={member.type!r} name={name}"
            )
        if member.type == tarfile.XHDTYPE:
            raise ValueError(f"unexpected tar file (XHeader): type={member.type!r} name={name}")
        fileobj = tar.extractfile(member) if member.isreg() else None
        yield file_info_from_tar(member, fileobj, name)


def process_layer_tar(name: str, tar: tarfile.TarFile) -> FileTree:
    """Build the file tree of one layer from its tar."""
    tree = FileTree()
    tree.name = name
    for info in _file_infos(tar):
        tree.file_size += info.size
        tree.add_path(info.path, info)
    return tree


def _layer_from_stream(name: str, fileobj: BinaryIO, mode: str) -> FileTree:
    try:
        tar = tarfile.open(fileobj=fileobj, mode=mode)
    except tarfile.ReadError as err:
        if str(err) == "empty file":
            tree = FileTree()
            tree.name = name
            return tree
        raise
    with tar:
        return process_layer_tar(name, tar)


def _member_stream(tar: tarfile.TarFile, member: tarfile.TarInfo) -> BinaryIO:
    # links carry no data of their own
    if member.issym() or member.islnk():
        return io.BytesIO(b"")
    fileobj = tar.extractfile(member)
    return fileobj if fileobj is not None else io.BytesIO(b"")


class _PrefixedReader(io.RawIOBase):
    """Replays already-read bytes before continuing with the rest of a stream."""

    def __init__(self, head: bytes, rest: BinaryIO) -> None:
        self._head = head
        self._pos = 0
        self._rest = rest

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._pos < len(self._head):
            count = min(len(buffer), len(self._head) - self._pos)
            buffer[:count] = self._head[self._pos : self._pos + count]
            self._pos += count
            return count
        data = self._rest.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)


def _looks_like_tar(head: bytes) -> bool:
    if not head:
        return True
    if len(head) < tarfile.BLOCKSIZE:
        return False
    block = head[: tarfile.BLOCKSIZE]
    if block.count(0) == tarfile.BLOCKSIZE:
        return True
    try:
        tarfile.TarInfo.frombuf(block, "utf-8", "surrogateescape")
    except tarfile.HeaderError:
        return False
    return True


def _looks_like_json(head: bytes) -> bool:
    return head.lstrip(b" \t\r\n")[:1] in (b"{", b"[")


def _sniff_blob(name: str, fileobj: BinaryIO) -> FileTree | bytes | None:
    """Identify an OCI blob as a layer (gzip, zstd or plain tar) or a JSON document."""
    head = fileobj.read(_SNIFF_SIZE)
    try:
        if head.startswith(_GZIP_MAGIC):
            return _layer_from_stream(name, _PrefixedReader(head, fileobj), "r|gz")
        if head.startswith(_ZSTD_MAGIC):
            reader = zstandard.ZstdDecompressor().stream_reader(_PrefixedReader(head, fileobj))
            return _layer_from_stream(name, reader, "r|")
        if _looks_like_tar(head):
            return _layer_from_stream(name, _PrefixedReader(head, fileobj), "r|")
    except (tarfile.TarError, OSError, EOFError, ValueError, zstandard.ZstdError):
        return None
    if _looks_like_json(head):
        return head + fileobj.read()
    return None


@dataclass
class ImageArchive:
    """The manifest, config and layer trees read from an image archive."""

    manifest: Manifest
    config: ImageConfig
    layer_map: dict[str, FileTree] = field(default_factory=dict)

    def to_image(self, image_id: str) -> Image:
        """Arrange the layer trees in manifest order and pair them with history."""
        trees: list[FileTree] = []
        for tree_name in self.manifest.layer_tar_paths:
            tree = self.layer_map.get(tree_name)
            if tree is None:
                raise ValueError(f"could not find '{tree_name}' in parsed layers")
            trees.append(tree)

        history = self.config.history
        layers: list[Layer] = []
        hist_idx = 0
        for idx, tree in enumerate(trees):
            entry = HistoryEntry(created_by="(missing)")
            # empty history entries have no layer contents
            for next_idx in range(hist_idx, len(history)):
                if not history[next_idx].empty_layer:
                    hist_idx = next_idx
                    break
            if hist_idx < len(history) and not history[hist_idx].empty_layer:
                entry = replace(history[hist_idx])
                hist_idx += 1
            entry.size = tree.file_size
            layers.append(_to_layer(entry, idx, tree))

        return Image(request=image_id, trees=trees, layers=layers)


def _to_layer(history: HistoryEntry, index: int, tree: FileTree) -> Layer:
    return Layer(
        id=tree.name.split("/")[0],
        index=index,
        command=history.created_by.removeprefix(_SHELL_PREFIX),
        size=history.size,
        tree=tree,
        names=["(unavailable)"],
        digest=history.id,
    )


def read_image_archive(stream: BinaryIO) -> ImageArchive:
    """Read an image archive in a single pass."""
    layer_map: dict[str, FileTree] = {}
    json_files: dict[str, bytes] = {}

    with tarfile.open(fileobj=stream, mode="r|") as outer:
        for member in outer:
            if not (member.issym() or member.isreg()):
                continue
            name = member.name
            if name.endswith(".tar"):
                tree = _layer_from_stream(name, _member_stream(outer, member), "r|")
                layer_map[tree.name] = tree
            elif name.endswith(".tar.gz") or name.endswith("tgz"):
                tree = _layer_from_stream(name, _member_stream(outer, member), "r|gz")
                layer_map[tree.name] = tree
            elif name.endswith(".json") or name.startswith("sha256:"):
                json_files[name] = _member_stream(outer, member).read()
            elif name.startswith("blobs/"):
                found = _sniff_blob(name, _member_stream(outer, member))
                if isinstance(found, FileTree):
                    layer_map[found.name] = found
                elif found is not None:
                    json_files[name] = found

    manifest_content = json_files.get("manifest.json")
    if manifest_content is not None:
        manifest = parse_manifest(manifest_content)
    else:
        # OCI layouts need not carry manifest.json; find the config instead
        config_path = next((path for path, content in json_files.items() if is_config(content)), "")
        if not config_path:
            raise ValueError("could not find image manifest")
        manifest = Manifest(config_path=config_path, layer_tar_paths=list(layer_map))

    config_content = json_files.get(manifest.config_path)
    if config_content is None:
        raise ValueError("could not find image config")

    return ImageArchive(manifest=manifest, config=parse_config(config_content), layer_map=layer_map)


def load_archive(path: str | os.PathLike) -> ImageArchive:
    """Read the image archive stored at the given path."""
    with open(path, "rb") as handle:
        return read_image_archive(handle)


def analysis_from_archive(path: str | os.PathLike) -> Analysis:
    """Load an archive from disk and analyze it."""
    archive = load_archive(path)
    img = archive.to_image(os.fspath(path))
    return analyze(img)


def _extract_inner(tar: tarfile.TarFile, path: str) -> None:
    target = path.removeprefix("/")
    for member in tar:
        if not member.isreg() or not member.name.startswith(target):
            continue
        directory = os.path.dirname(member.name)
        if directory:
            os.makedirs(directory, 0o755, exist_ok=True)
        source = tar.extractfile(member)
        with open(member.name, "wb") as out:
            if source is not None:
                shutil.copyfileobj(source, out)


def extract_from_image(stream: BinaryIO, layer: str, path: str) -> None:
    """Write the files under path from the named layer into the working directory."""
    with tarfile.open(fileobj=stream, mode="r|") as outer:
        for member in outer:
            if member.isreg() and member.name == layer:
                with tarfile.open(fileobj=_member_stream(outer, member), mode="r|") as inner:
                    _extract_inner(inner, path)
                return