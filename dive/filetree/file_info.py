"""File metadata taken from tar headers or the local filesystem."""

from __future__ import annotations

import hashlib
import os
import stat
import tarfile
from dataclasses import dataclass, replace
from typing import BinaryIO

from .diff import DiffType

TYPE_REG = ord("0")
TYPE_LINK = ord("1")
TYPE_SYMLINK = ord("2")
TYPE_DIR = ord("5")

_CHUNK_SIZE = 1024


@dataclass
class FileInfo:
    """Metadata for one file entry."""

    path: str = ""
    type_flag: int = 0
    linkname: str = ""
    hash: int = 0
    size: int = 0
    mode: int = 0
    uid: int = 0
    gid: int = 0
    is_dir: bool = False

    def copy(self) -> "FileInfo":
        return replace(self)

    def compare(self, other: "FileInfo") -> DiffType:
        """Compare type, content hash, mode and ownership."""
        if (
            self.type_flag == other.type_flag
            and self.hash == other.hash
            and self.mode == other.mode
            and self.uid == other.uid
            and self.gid == other.gid
        ):
            return DiffType.UNMODIFIED
        return DiffType.MODIFIED


def hash_stream(stream: BinaryIO) -> int:
    """Return a 64-bit content hash of everything readable from the stream."""
    digest = hashlib.blake2b(digest_size=8)
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        digest.update(chunk)
    return int.from_bytes(digest.digest(), "big")


_EMPTY_HASH = int.from_bytes(hashlib.blake2b(digest_size=8).digest(), "big")


def _type_flag(member: tarfile.TarInfo) -> int:
    if not member.type or member.type == tarfile.AREGTYPE:
        return TYPE_REG
    return member.type[0]


def file_info_from_tar(
    member: tarfile.TarInfo, fileobj: BinaryIO | None, path: str
) -> FileInfo:
    """Build a FileInfo from a tar member and, for non-directories, its contents."""
    type_flag = _type_flag(member)
    content_hash = 0
    if type_flag != TYPE_DIR:
        content_hash = hash_stream(fileobj) if fileobj is not None else _EMPTY_HASH
    return FileInfo(
        path=path,
        type_flag=type_flag,
        linkname=member.linkname,
        hash=content_hash,
        size=member.size,
        mode=member.mode & 0o7777,
        uid=member.uid,
        gid=member.gid,
        is_dir=member.isdir(),
    )


def file_info_from_path(real_path: str | os.PathLike, path: str) -> FileInfo:
    """Build a FileInfo from a file on the local filesystem."""
    st = os.lstat(real_path)
    linkname = ""
    size = 0
    if stat.S_ISLNK(st.st_mode):
        type_flag = TYPE_SYMLINK
        linkname = os.readlink(real_path)
    elif stat.S_ISDIR(st.st_mode):
        type_flag = TYPE_DIR
    else:
        type_flag = TYPE_REG
        size = st.st_size

    content_hash = 0
    if type_flag != TYPE_DIR:
        with open(real_path, "rb") as handle:
            content_hash = hash_stream(handle)

    return FileInfo(
        path=path,
        type_flag=type_flag,
        linkname=linkname,
        hash=content_hash,
        size=size,
        mode=stat.S_IMODE(st.st_mode),
        uid=-1,
        gid=-1,
        is_dir=stat.S_ISDIR(st.st_mode),
    )