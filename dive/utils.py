"""Small helpers for command-line argument handling."""

from __future__ import annotations

from typing import Iterable


def clean_args(args: Iterable[str]) -> list[str]:
    """Drop empty arguments and trim spaces from the rest."""
    return [arg.strip(" ") for arg in args if arg != ""]