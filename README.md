# dive

A library for looking inside container images. It reads an image saved as a
Docker or OCI archive, builds a file tree for every layer, and measures how
much of the image is wasted by files that are duplicated across layers or
deleted by later ones. Images can also be fetched through the `podman` CLI.

## What it does

- Reads image archives in both the classic Docker layout (`manifest.json`
  plus per-layer tars) and the OCI layout (`blobs/`), with plain, gzip and
  zstd compressed layers.
- Builds one `FileTree` per layer, honours overlay whiteout files (`.wh.`),
  and can stack layers on top of each other to show the filesystem as seen at
  any point in the image.
- Marks every path as added, modified, removed or unmodified relative to the
  layers beneath it.
- Scores the image's efficiency and lists the paths that waste space.

## Analysing a saved image

```python
from dive.image.docker.archive import analysis_from_archive

analysis = analysis_from_archive("image.tar")
print(analysis.efficiency, analysis.size_bytes, analysis.wasted_bytes)
for data in analysis.inefficiencies:
    print(data.path, data.cumulative_size)
```

`analysis_from_archive` loads the archive, turns it into an `Image` and runs
`analyze` on it. The resulting `Analysis` holds the layers, their file trees,
the efficiency score, total and user sizes (every layer but the first), the
wasted bytes and their share of the user size, and the inefficient paths.

To work with the pieces separately:

```python
from dive.image.docker.archive import load_archive
from dive.image.model import analyze

archive = load_archive("image.tar")
image = archive.to_image("image.tar")
analysis = analyze(image)

for layer in image.layers:
    print(layer)
```

`read_image_archive` does the same from an open binary stream, and
`extract_from_image(stream, layer, path)` writes the files under `path` from
the named layer tar into the current working directory.

## Fetching through Podman

```python
from dive.image.podman import PodmanResolver

resolver = PodmanResolver()
image = resolver.fetch("alpine:latest")
```

`PodmanResolver` runs `podman image save` and reads its output as an archive;
`build(args)` runs `podman build` first. It needs the `podman` executable on
the `PATH` and works on Linux and macOS only; elsewhere it raises
`RuntimeError("unsupported platform")`.

## Working with file trees directly

```python
from dive.filetree.file_info import FileInfo
from dive.filetree.tree import FileTree, stack_tree_range
from dive.filetree.efficiency import efficiency
from dive.filetree.comparer import Comparer

lower = FileTree()
lower.add_path("/etc/nginx/nginx.conf", FileInfo(size=2000))

upper = FileTree()
upper.add_path("/etc/nginx/public", FileInfo(size=3000))

print(lower.to_string(False))

stacked, failed = stack_tree_range([lower, upper], 0, 1)
score, matches = efficiency([lower, upper])
problems = Comparer([lower, upper]).build_cache()
```

Paths that cannot be added or removed while stacking or comparing trees are
reported as `PathError` values rather than stopping the whole operation.

## What it does not do

This package is a library only. It has no command-line tool and no
interactive screen for browsing layers. It does not talk to a Docker engine:
images from Docker must first be saved to an archive (for example with
`docker save`) and read with `load_archive`. There is no helper that picks a
source from a `docker://`-style prefix on an image reference.

## Requirements

Python 3.10 or later. Zstandard-compressed layers are read with the
`zstandard` package.