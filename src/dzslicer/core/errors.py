"""Error types raised by dzslicer."""

from __future__ import annotations


class DeepZoomError(RuntimeError):
    """Base class for slicing failures."""


class InvalidInput(DeepZoomError):
    """The source image path does not reference an existing file."""


class InvalidConfiguration(DeepZoomError):
    """Tile geometry, quality, format or source dimensions cannot be sliced."""
