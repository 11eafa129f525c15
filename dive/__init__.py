"""Inspect container image layers, their file trees and wasted space."""

__version__ = "0.1.0"