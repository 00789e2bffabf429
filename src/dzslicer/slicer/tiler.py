"""Level planning and tile grid computation for Deep Zoom pyramids.

Everything here is pure arithmetic on image dimensions; no pixels are touched.
Viewers recompute the same grid client-side from the descriptor's tile size,
overlap and base dimensions, so the rules below are part of the output format.
"""

from __future__ import annotations

from typing import Iterator

from dzslicer.core.errors import InvalidConfiguration
from dzslicer.core.types import LevelInfo, Tile


def max_level(width: int, height: int) -> int:
    """Number of halving steps until the larger dimension reaches 1 px.

    Equals ``ceil(log2(max(width, height)))``, computed with integer
    arithmetic. Returns 0 when ``max(width, height) <= 1``.

    Examples:
        >>> max_level(1000, 800)
        10
        >>> max_level(256, 256)
        8
    """
    largest = max(width, height)
    if largest <= 1:
        return 0
    return (largest - 1).bit_length()


def level_dimensions(width: int, height: int) -> list[tuple[int, int]]:
    """Dimensions of every level, indexed from 0 (smallest) to max_level (full size).

    Each level is the one above halved and rounded up.
    """
    dims = [(width, height)]
    w, h = width, height
    for _ in range(max_level(width, height)):
        w = (w + 1) // 2
        h = (h + 1) // 2
        dims.append((w, h))
    dims.reverse()
    return dims


def validate_tile_options(tile_size: int, overlap: int) -> None:
    """Raise InvalidConfiguration unless ``tile_size >= 1`` and ``0 <= overlap < tile_size``.

    The first step on each axis is ``tile_size - overlap``; it must be
    positive or the grid never terminates.
    """
    if tile_size < 1:
        raise InvalidConfiguration(f"tile_size must be positive, got {tile_size}")
    if overlap < 0:
        raise InvalidConfiguration(f"overlap must not be negative, got {overlap}")
    if overlap >= tile_size:
        raise InvalidConfiguration(
            f"overlap ({overlap}) must be smaller than tile_size ({tile_size})"
        )


def tile_dimensions(x: int, y: int, tile_size: int, overlap: int) -> tuple[int, int]:
    """Stored width and height of the tile starting at ``(x, y)``.

    Tiles starting on the left/top border have no outward halo on that axis
    (``tile_size + overlap``); all others carry overlap on both edges
    (``tile_size + 2 * overlap``).
    """
    overlapping_tile_size = tile_size + 2 * overlap
    border_tile_size = tile_size + overlap

    tile_width = overlapping_tile_size if x > 0 else border_tile_size
    tile_height = overlapping_tile_size if y > 0 else border_tile_size
    return tile_width, tile_height


def iter_tiles(
    width: int,
    height: int,
    tile_size: int,
    overlap: int,
    level: int = 0,
) -> Iterator[Tile]:
    """Yield the tiles of one level, columns outer and rows inner.

    After each tile the cursor advances by the stored extent minus
    ``2 * overlap``: ``tile_size - overlap`` after a border tile and
    ``tile_size`` afterwards, so column ``c > 0`` starts at
    ``c * tile_size - overlap``. An axis ends once the cursor reaches the
    level's width/height.

    Args:
        width: Level raster width in pixels
        height: Level raster height in pixels
        tile_size: Tile core size in pixels
        overlap: Overlap halo per side in pixels
        level: Level index recorded on each Tile

    Yields:
        Tile records in (col, row) order

    Raises:
        InvalidConfiguration: If tile_size/overlap cannot produce a grid
    """
    validate_tile_options(tile_size, overlap)
    if width <= 0 or height <= 0:
        return

    x, col = 0, 0
    while x < width:
        y, row = 0, 0
        while y < height:
            tile_width, tile_height = tile_dimensions(x, y, tile_size, overlap)
            yield Tile(
                level=level, col=col, row=row,
                x=x, y=y, width=tile_width, height=tile_height,
            )
            y += tile_height - 2 * overlap
            row += 1
        x += tile_width - 2 * overlap
        col += 1


def _axis_count(length: int, tile_size: int, overlap: int) -> int:
    """Number of tiles ``iter_tiles`` places along an axis of ``length`` pixels."""
    if length <= 0:
        return 0
    first_step = tile_size - overlap
    if length <= first_step:
        return 1
    return 1 + -(-(length - first_step) // tile_size)


def compute_levels(
    width: int, height: int, tile_size: int, overlap: int
) -> list[LevelInfo]:
    """Calculate the pyramid structure from base dimensions.

    Args:
        width: Base image width in pixels
        height: Base image height in pixels
        tile_size: Tile core size in pixels
        overlap: Overlap halo per side in pixels

    Returns:
        List of LevelInfo, index 0 (1x1) first and full resolution last
    """
    validate_tile_options(tile_size, overlap)
    dims = level_dimensions(width, height)
    top = len(dims) - 1

    levels = []
    for i, (lw, lh) in enumerate(dims):
        levels.append(LevelInfo(
            level=i,
            width=lw,
            height=lh,
            cols=_axis_count(lw, tile_size, overlap),
            rows=_axis_count(lh, tile_size, overlap),
            downsample=2 ** (top - i),
        ))
    return levels
