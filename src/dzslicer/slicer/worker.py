"""Worker function for parallel batch slicing.

This module exists separately from __main__.py to support Windows multiprocessing,
which requires worker functions to be importable (not defined in __main__).
"""

from __future__ import annotations

import logging
from pathlib import Path

from .artifacts import PyramidStatus
from .pyramid import DeepZoomSlicer

logger = logging.getLogger(__name__)


def process_single_image(
    image_path: Path,
    output_dir: Path | None,
    tile_size: int,
    overlap: int,
    tile_format: str | None,
    quality: float,
    workers: int,
    skip_complete: bool = False,
) -> tuple[Path | None, str | None, bool]:
    """Slice a single image.

    Args:
        image_path: Path to the source image
        output_dir: Output directory (None = next to the image)
        tile_size: Tile core size in pixels
        overlap: Overlap halo per tile side in pixels
        tile_format: Tile extension; None reuses the source extension
        quality: Encode quality as 0-1 fraction or 0-100
        workers: Threads writing tiles within a level
        skip_complete: Skip images whose pyramid is complete and was built
            with the same tile size, overlap, format and source dimensions

    Returns:
        Tuple of (descriptor_path, error_message, was_skipped)
        - descriptor_path: Path to the written descriptor, or None if skipped/error
        - error_message: Error string if failed, None otherwise
        - was_skipped: True if the image was skipped (already complete)
    """
    logger.info("Processing %s", image_path.name)
    try:
        slicer = DeepZoomSlicer(
            image_path, output_dir=output_dir, tile_format=tile_format, quality=quality
        )
        if skip_complete and slicer.status(tile_size, overlap) == PyramidStatus.COMPLETE:
            logger.info("Skipping %s: pyramid already complete", image_path.name)
            return None, None, True

        slicer.slice(tile_size=tile_size, overlap=overlap, workers=workers)
        return slicer.descriptor_path, None, False
    except Exception as e:
        logger.error("Failed to process %s: %s", image_path.name, e)
        return None, str(e), False
