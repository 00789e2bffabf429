"""Tests for level planning and tile grid computation."""

from __future__ import annotations

import math

import pytest

from dzslicer.core.errors import InvalidConfiguration
from dzslicer.core.types import LevelInfo, Tile
from dzslicer.slicer.tiler import (
    compute_levels,
    iter_tiles,
    level_dimensions,
    max_level,
    tile_dimensions,
    validate_tile_options,
)


class TestMaxLevel:
    """Tests for the number of halving steps."""

    @pytest.mark.parametrize(
        "width, height, expected",
        [
            (1000, 800, 10),
            (256, 256, 8),
            (512, 512, 9),
            (513, 10, 10),
            (2, 1, 1),
            (1, 1, 0),
            (0, 0, 0),
            (1, 0, 0),
        ],
        ids=["1000x800", "256", "512", "513-wide", "2x1", "1x1", "0x0", "1x0"],
    )
    def test_known_values(self, width: int, height: int, expected: int) -> None:
        assert max_level(width, height) == expected

    @pytest.mark.parametrize("size", [2, 3, 7, 100, 255, 1023, 1025, 4097, 65535])
    def test_matches_ceil_log2(self, size: int) -> None:
        assert max_level(size, 1) == math.ceil(math.log2(size))
        assert max_level(1, size) == math.ceil(math.log2(size))


class TestLevelDimensions:
    """Tests for ceil-halving of level sizes."""

    def test_halves_and_rounds_up(self) -> None:
        dims = level_dimensions(1025, 768)
        assert dims[-1] == (1025, 768)
        assert dims[-2] == (513, 384)
        assert dims[-3] == (257, 192)
        assert dims[0] == (1, 1)
        assert len(dims) == max_level(1025, 768) + 1

    def test_each_level_is_half_of_level_above(self) -> None:
        dims = level_dimensions(999, 37)
        for (w, h), (upper_w, upper_h) in zip(dims, dims[1:]):
            assert w == (upper_w + 1) // 2
            assert h == (upper_h + 1) // 2

    def test_single_pixel(self) -> None:
        assert level_dimensions(1, 1) == [(1, 1)]


class TestTileDimensions:
    """Tests for border, edge and interior tile extents."""

    def test_corner_tile(self) -> None:
        assert tile_dimensions(0, 0, 254, 1) == (255, 255)

    def test_interior_tile(self) -> None:
        assert tile_dimensions(253, 507, 254, 1) == (256, 256)

    def test_top_row_tile(self) -> None:
        assert tile_dimensions(253, 0, 254, 1) == (256, 255)

    def test_left_column_tile(self) -> None:
        assert tile_dimensions(0, 253, 254, 1) == (255, 256)

    def test_zero_overlap(self) -> None:
        assert tile_dimensions(0, 0, 256, 0) == (256, 256)
        assert tile_dimensions(256, 256, 256, 0) == (256, 256)


class TestIterTiles:
    """Tests for tile enumeration order and stepping."""

    def test_500_wide_has_two_columns(self) -> None:
        tiles = list(iter_tiles(500, 100, 254, 1))
        assert [t.x for t in tiles] == [0, 253]
        assert [t.col for t in tiles] == [0, 1]

    def test_512_level_grid(self) -> None:
        tiles = list(iter_tiles(512, 512, 254, 1, level=9))
        assert len(tiles) == 9
        assert sorted({t.x for t in tiles}) == [0, 253, 507]
        assert sorted({t.y for t in tiles}) == [0, 253, 507]
        assert all(t.level == 9 for t in tiles)

    def test_columns_outer_rows_inner(self) -> None:
        tiles = list(iter_tiles(512, 300, 254, 1))
        assert [(t.col, t.row) for t in tiles] == [
            (0, 0), (0, 1), (1, 0), (1, 1), (2, 0), (2, 1),
        ]

    def test_first_tile_is_corner(self) -> None:
        first = next(iter_tiles(1000, 1000, 254, 1))
        assert first == Tile(level=0, col=0, row=0, x=0, y=0, width=255, height=255)

    def test_edge_and_interior_extents(self) -> None:
        tiles = {(t.col, t.row): t for t in iter_tiles(1000, 1000, 254, 1)}
        assert (tiles[1, 1].width, tiles[1, 1].height) == (256, 256)
        assert (tiles[1, 0].width, tiles[1, 0].height) == (256, 255)
        assert (tiles[0, 1].width, tiles[0, 1].height) == (255, 256)

    def test_interior_stride_is_tile_size(self) -> None:
        xs = sorted({t.x for t in iter_tiles(2000, 1, 254, 1)})
        assert xs[0] == 0
        assert xs[1] == 254 - 1
        assert all(b - a == 254 for a, b in zip(xs[1:], xs[2:]))

    def test_column_start_matches_deep_zoom_addressing(self) -> None:
        for tile in iter_tiles(3000, 700, 256, 4):
            expected_x = 0 if tile.col == 0 else tile.col * 256 - 4
            expected_y = 0 if tile.row == 0 else tile.row * 256 - 4
            assert (tile.x, tile.y) == (expected_x, expected_y)

    def test_last_tile_filename(self) -> None:
        last = list(iter_tiles(512, 512, 254, 1, level=9))[-1]
        assert (last.level, last.col, last.row) == (9, 2, 2)
        assert last.filename("jpg") == "2_2.jpg"

    def test_single_pixel_level(self) -> None:
        tiles = list(iter_tiles(1, 1, 254, 1))
        assert tiles == [Tile(level=0, col=0, row=0, x=0, y=0, width=255, height=255)]

    def test_empty_level(self) -> None:
        assert list(iter_tiles(0, 10, 254, 1)) == []

    def test_covers_level_without_gaps(self) -> None:
        width, height = 777, 333
        covered = set()
        for tile in iter_tiles(width, height, 100, 3):
            right = min(tile.x + tile.width, width)
            covered.update(range(tile.x, right))
        assert covered == set(range(width))

    @pytest.mark.parametrize(
        "tile_size, overlap",
        [(0, 0), (-1, 0), (10, -1), (10, 10), (4, 9)],
        ids=["zero-size", "negative-size", "negative-overlap", "overlap-equals-size", "overlap-exceeds-size"],
    )
    def test_invalid_options(self, tile_size: int, overlap: int) -> None:
        with pytest.raises(InvalidConfiguration):
            list(iter_tiles(100, 100, tile_size, overlap))


class TestValidateTileOptions:
    """Tests for tile option validation."""

    def test_accepts_defaults(self) -> None:
        validate_tile_options(254, 1)

    def test_accepts_zero_overlap(self) -> None:
        validate_tile_options(1, 0)

    def test_rejects_overlap_not_smaller_than_tile(self) -> None:
        with pytest.raises(InvalidConfiguration, match="smaller than tile_size"):
            validate_tile_options(8, 8)


class TestComputeLevels:
    """Tests for per-level grid summaries."""

    def test_512_image(self) -> None:
        levels = compute_levels(512, 512, 254, 1)
        assert len(levels) == 10
        assert levels[9] == LevelInfo(level=9, width=512, height=512, cols=3, rows=3, downsample=1)
        assert levels[8] == LevelInfo(level=8, width=256, height=256, cols=2, rows=2, downsample=2)
        assert levels[0] == LevelInfo(level=0, width=1, height=1, cols=1, rows=1, downsample=512)

    @pytest.mark.parametrize(
        "width, height, tile_size, overlap",
        [(512, 512, 254, 1), (1025, 768, 256, 4), (3000, 17, 100, 0), (254, 253, 254, 1)],
        ids=["512", "non-square", "no-overlap", "near-tile"],
    )
    def test_counts_match_enumeration(
        self, width: int, height: int, tile_size: int, overlap: int
    ) -> None:
        for info in compute_levels(width, height, tile_size, overlap):
            tiles = list(iter_tiles(info.width, info.height, tile_size, overlap))
            assert info.tile_count == len(tiles)
            assert info.cols == max(t.col for t in tiles) + 1
            assert info.rows == max(t.row for t in tiles) + 1
