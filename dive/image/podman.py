"""Podman image resolver, built on the podman CLI."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Iterable

from ..utils import clean_args
from .docker.archive import extract_from_image, read_image_archive
from .model import Image, Resolver

_log = logging.getLogger(__name__)

_SUPPORTED = sys.platform.startswith("linux") or sys.platform == "darwin"


def is_podman_available() -> bool:
    """Whether a podman client executable is on the PATH."""
    return shutil.which("podman") is not None


def run_podman_cmd(cmd: str, *args: str) -> None:
    """Run a podman command attached to the current terminal."""
    if not is_podman_available():
        raise RuntimeError("cannot find podman client executable")
    all_args = clean_args([cmd, *args])
    _log.debug("executing: %s", " ".join(["podman", *all_args]))
    subprocess.run(["podman", *all_args], env=os.environ.copy(), check=True)


def stream_podman_cmd(*args: str) -> subprocess.Popen:
    """Start a podman command whose standard output is read as a stream."""
    if not is_podman_available():
        raise RuntimeError("cannot find podman client executable")
    all_args = clean_args(args)
    _log.debug("executing (streaming): %s", " ".join(["podman", *all_args]))
    return subprocess.Popen(["podman", *all_args], stdout=subprocess.PIPE, env=os.environ.copy())


def build_image_from_cli(build_args: Iterable[str]) -> str:
    """Build an image with podman and return its id."""
    fd, iidfile = tempfile.mkstemp(prefix="dive.", suffix=".iid")
    os.close(fd)
    try:
        run_podman_cmd("build", "--iidfile", iidfile, *build_args)
        return Path(iidfile).read_text()
    finally:
        try:
            os.remove(iidfile)
        except OSError:
            pass


def _require_platform() -> None:
    if not _SUPPORTED:
        raise RuntimeError("unsupported platform")


class PodmanResolver(Resolver):
    """Fetches images through podman image save."""

    def name(self) -> str:
        return "podman"

    def build(self, args: list[str]) -> Image:
        _require_platform()
        return self.fetch(build_image_from_cli(args))

    def fetch(self, image_id: str) -> Image:
        _require_platform()
        try:
            with stream_podman_cmd("image", "save", image_id) as proc:
                archive = read_image_archive(proc.stdout)
            if proc.returncode:
                raise RuntimeError(f"podman image save exited with {proc.returncode}")
            return archive.to_image(image_id)
        except Exception as err:
            raise RuntimeError(f"unable to resolve image {image_id!r}: {err}") from err

    def extract(self, image_id: str, layer: str, path: str) -> None:
        _require_platform()
        proc = stream_podman_cmd("image", "save", image_id)
        try:
            with proc:
                extract_from_image(proc.stdout, layer, path)
        except Exception as err:
            raise RuntimeError(f"unable to extract from image {image_id!r}: {err}") from err