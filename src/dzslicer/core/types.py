"""Shared type definitions for the dzslicer core module."""

from __future__ import annotations

from dataclasses import dataclass
@dataclass(frozen=True)
class Tile:
    """One tile of a level's grid.

    ``x``/``y`` are the tile origin in level pixels. ``width``/``height`` are
    the stored extents including the overlap halo; the crop clips them to the
    level raster.
    """

    level: int
    col: int
    row: int
    x: int
    y: int
    width: int
    height: int

    def filename(self, extension: str) -> str:
        return f"{self.col}_{self.row}.{extension}"


@dataclass
class LevelInfo:
    """Information about a pyramid level.

    Attributes:
        level: Level index (0 = lowest resolution)
        width: Level raster width in pixels
        height: Level raster height in pixels
        cols: Number of tile columns at this level
        rows: Number of tile rows at this level
        downsample: Downsample factor relative to full resolution (1 = full res)
    """

    level: int
    width: int
    height: int
    cols: int
    rows: int
    downsample: int = 1

    @property
    def tile_count(self) -> int:
        return self.cols * self.rows
