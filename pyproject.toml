[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dive"
version = "0.1.0"
description = "Explore container image layers, their file trees and how much space each layer wastes"
requires-python = ">=3.10"
dependencies = [
    "zstandard",
]
keywords = [
    "docker",
    "podman",
    "container",
    "image",
    "layers",
    "oci",
    "filesystem",
    "efficiency",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dive"]

[tool.hatch.build.targets.sdist]
include = [
    "dive",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
