"""Core types, paths and errors for dzslicer."""

from .errors import DeepZoomError, InvalidConfiguration, InvalidInput
from .paths import PyramidPaths, atomic_text_save, split_filename_and_extension
from .types import LevelInfo, Tile

__all__ = [
    "DeepZoomError",
    "InvalidConfiguration",
    "InvalidInput",
    "PyramidPaths",
    "atomic_text_save",
    "split_filename_and_extension",
    "LevelInfo",
    "Tile",
]
