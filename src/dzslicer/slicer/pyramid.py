"""Deep Zoom pyramid generation.

WARNING: slicing deletes and overwrites an existing descriptor and level tree
for the same image name in the output directory.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Callable

from dzslicer.config import (
    DEFAULT_OVERLAP,
    DEFAULT_QUALITY,
    DEFAULT_TILE_FORMAT,
    DEFAULT_TILE_SIZE,
    DEFAULT_TILE_WORKERS,
)
from dzslicer.core.errors import InvalidConfiguration, InvalidInput
from dzslicer.core.paths import PyramidPaths, split_filename_and_extension
from dzslicer.core.types import Tile

from .artifacts import PyramidStatus, check_pyramid_status, remove_artifacts
from .backends import get_backend
from .metadata import DeepZoomDescriptor, write_descriptor
from .tiler import compute_levels, iter_tiles, max_level, validate_tile_options

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


def normalize_quality(quality: float) -> int:
    """Convert a 0-1 fraction or a 0-100 value to an integer quality.

    Values below 1 are treated as fractions and scaled by 100.

    Raises:
        InvalidConfiguration: If the result is outside 0-100
    """
    if quality < 1:
        quality = quality * 100
    value = int(round(quality))
    if not 0 <= value <= 100:
        raise InvalidConfiguration(f"quality must be within 0-100, got {quality}")
    return value


def normalize_format(tile_format: str | None, source_extension: str) -> str:
    """Resolve the tile extension; ``None`` or empty reuses the source extension.

    Raises:
        InvalidConfiguration: If no extension can be determined
    """
    fmt = (tile_format or source_extension or "").lstrip(".")
    if not fmt:
        raise InvalidConfiguration("tile format is empty and the source has no extension")
    return fmt


class DeepZoomSlicer:
    """Slices one image into a Deep Zoom tile pyramid plus descriptor.

    Construction validates the source path and resolves the output layout::

        <output_dir>/<name>.xml
        <output_dir>/<name>_files/<level>/<col>_<row>.<format>

    Args:
        image_path: Path to the source image
        output_dir: Directory for the artifacts (default: the image's directory)
        tile_format: Tile extension/encoding; None reuses the source extension
        quality: Encode quality as 0-1 fraction or 0-100

    Raises:
        InvalidInput: If image_path is not an existing file
        InvalidConfiguration: If format or quality are unusable
    """

    def __init__(
        self,
        image_path: Path,
        output_dir: Path | None = None,
        tile_format: str | None = DEFAULT_TILE_FORMAT,
        quality: float = DEFAULT_QUALITY,
    ) -> None:
        self.image_path = Path(image_path)
        if not self.image_path.is_file():
            raise InvalidInput(f"Source image not found: {self.image_path}")

        _name, source_extension = split_filename_and_extension(self.image_path.name)
        self.tile_format = normalize_format(tile_format, source_extension)
        self.quality = normalize_quality(quality)
        self.paths = PyramidPaths.for_image(self.image_path, output_dir)

    @property
    def descriptor_path(self) -> Path:
        return self.paths.descriptor_path

    @property
    def levels_root_dir(self) -> Path:
        return self.paths.levels_root_dir

    def remove_artifacts(self) -> bool:
        """Remove the descriptor and level tree a slice would create.

        Returns:
            True if anything existed before the call
        """
        return remove_artifacts(self.descriptor_path, self.levels_root_dir)

    def expected_descriptor(
        self, tile_size: int = DEFAULT_TILE_SIZE, overlap: int = DEFAULT_OVERLAP
    ) -> DeepZoomDescriptor:
        """Descriptor a slice with these options would write, from the source header."""
        image = get_backend().load(self.image_path)
        return DeepZoomDescriptor(
            tile_size=tile_size,
            overlap=overlap,
            tile_format=self.tile_format,
            width=image.width,
            height=image.height,
        )

    def status(
        self, tile_size: int = DEFAULT_TILE_SIZE, overlap: int = DEFAULT_OVERLAP
    ) -> PyramidStatus:
        """Status of the existing pyramid measured against these slicing options."""
        return check_pyramid_status(
            self.descriptor_path,
            self.levels_root_dir,
            expected=self.expected_descriptor(tile_size, overlap),
        )

    def slice(
        self,
        tile_size: int = DEFAULT_TILE_SIZE,
        overlap: int = DEFAULT_OVERLAP,
        workers: int = DEFAULT_TILE_WORKERS,
        progress_callback: ProgressCallback | None = None,
    ) -> DeepZoomDescriptor:
        """Generate every level from full resolution down to 1x1, then the descriptor.

        Levels are strictly sequential: each level raster is the previous one
        halved. Tiles within a level are independent and are written by up to
        ``workers`` threads; all of them finish before the next level is built.

        Args:
            tile_size: Tile core size in pixels
            overlap: Overlap halo per tile side in pixels
            workers: Threads writing tiles within a level (<= 1 is sequential)
            progress_callback: Optional callback(stage, current, total)

        Returns:
            The descriptor that was written

        Raises:
            InvalidConfiguration: If the geometry cannot be sliced
            OSError: On directory or file write failures
        """
        validate_tile_options(tile_size, overlap)
        backend = get_backend()

        if progress_callback:
            progress_callback("load", 0, 1)
        image = backend.strip_metadata(backend.load(self.image_path))
        orig_width, orig_height = image.width, image.height
        if orig_width <= 0 or orig_height <= 0:
            raise InvalidConfiguration(
                f"{self.image_path.name} has a zero dimension ({orig_width}x{orig_height})"
            )
        logger.info("Loaded %s: %d x %d px", self.image_path.name, orig_width, orig_height)

        self.remove_artifacts()

        top_level = max_level(orig_width, orig_height)
        total_tiles = sum(
            info.tile_count for info in compute_levels(orig_width, orig_height, tile_size, overlap)
        )
        done = 0

        image = backend.materialize(image)
        for level in range(top_level, -1, -1):
            tiles = list(iter_tiles(image.width, image.height, tile_size, overlap, level))
            logger.info(
                "Level %d is %d x %d (%d tiles)", level, image.width, image.height, len(tiles)
            )

            level_dir = self.paths.level_dir(level)
            level_dir.mkdir(parents=True, exist_ok=True)

            for _tile in self._write_level(backend, image, tiles, workers):
                done += 1
                if progress_callback:
                    progress_callback("tiles", done, total_tiles)

            if level > 0:
                image = backend.materialize(backend.resize_by_factor(image, 0.5))

        descriptor = DeepZoomDescriptor(
            tile_size=tile_size,
            overlap=overlap,
            tile_format=self.tile_format,
            width=orig_width,
            height=orig_height,
        )
        if progress_callback:
            progress_callback("descriptor", 0, 1)
        write_descriptor(self.descriptor_path, descriptor)

        logger.info(
            "Generated %d levels (%d tiles) for %s", top_level + 1, done, self.image_path.name
        )
        return descriptor

    def _write_level(self, backend: Any, image: Any, tiles: list[Tile], workers: int):
        """Write all tiles of one level, yielding each tile once it is on disk.

        The executor is shut down before this generator finishes, which is the
        barrier between levels.
        """
        if workers <= 1 or len(tiles) <= 1:
            for tile in tiles:
                self._write_tile(backend, image, tile)
                yield tile
            return

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._write_tile, backend, image, tile): tile
                for tile in tiles
            }
            for future in as_completed(futures):
                future.result()
                yield futures[future]

    def _write_tile(self, backend: Any, image: Any, tile: Tile) -> Path:
        """Crop one tile from the level raster and encode it."""
        dest_path = self.paths.tile_path(tile, self.tile_format)
        cropped = backend.crop(image, tile.x, tile.y, tile.width, tile.height)
        backend.save(cropped, dest_path, quality=self.quality)
        logger.debug("Wrote %s (%d x %d)", dest_path, cropped.width, cropped.height)
        return dest_path


def slice_image(
    image_path: Path,
    output_dir: Path | None = None,
    tile_size: int = DEFAULT_TILE_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    tile_format: str | None = DEFAULT_TILE_FORMAT,
    quality: float = DEFAULT_QUALITY,
    workers: int = DEFAULT_TILE_WORKERS,
    progress_callback: ProgressCallback | None = None,
) -> DeepZoomDescriptor:
    """Slice an image into a Deep Zoom pyramid using DeepZoomSlicer.

    Args:
        image_path: Path to the source image
        output_dir: Output directory (default: the image's directory)
        tile_size: Tile core size in pixels
        overlap: Overlap halo per tile side in pixels
        tile_format: Tile extension; None reuses the source extension
        quality: Encode quality as 0-1 fraction or 0-100
        workers: Threads writing tiles within a level
        progress_callback: Progress callback function

    Returns:
        The descriptor that was written
    """
    slicer = DeepZoomSlicer(
        image_path, output_dir=output_dir, tile_format=tile_format, quality=quality
    )
    return slicer.slice(
        tile_size=tile_size,
        overlap=overlap,
        workers=workers,
        progress_callback=progress_callback,
    )
