"""Centralized configuration for dzslicer.

All tunable parameters are defined here with sensible defaults.
Values can be overridden via environment variables.

Environment Variables:
    DZSLICER_TILE_SIZE: Tile edge length without overlap (default: 254)
    DZSLICER_OVERLAP: Overlap halo per tile side in pixels (default: 1)
    DZSLICER_TILE_FORMAT: Tile file format/extension (default: jpg)
    DZSLICER_QUALITY: Encode quality, 0-100 (default: 75)
    DZSLICER_TILE_WORKERS: Threads writing tiles within a level (default: 4)
    DZSLICER_PARALLEL_IMAGES: Images sliced in parallel by the CLI (default: 2)
    DZSLICER_VIPS_CONCURRENCY: VIPS internal thread count (default: 4)
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    """Get a string from environment variable with fallback."""
    return os.environ.get(name, default)


# =============================================================================
# Tile Generation Defaults
# =============================================================================

#: Width/height of each tile's non-overlapping core
DEFAULT_TILE_SIZE: int = _get_env_int("DZSLICER_TILE_SIZE", 254)

#: Pixels of halo added per tile side (0-10 expected)
DEFAULT_OVERLAP: int = _get_env_int("DZSLICER_OVERLAP", 1)

#: Tile format (file extension); None at call sites reuses the source extension
DEFAULT_TILE_FORMAT: str = _get_env_str("DZSLICER_TILE_FORMAT", "jpg")

#: Encode quality for lossy tile formats
DEFAULT_QUALITY: int = _get_env_int("DZSLICER_QUALITY", 75)

#: Background color used when flattening alpha for JPEG tiles (white)
BACKGROUND_COLOR: tuple[int, int, int] = (255, 255, 255)

#: Tile formats that accept a quality setting
LOSSY_FORMATS: frozenset[str] = frozenset({
    "jpg", "jpeg", "webp", "heic", "heif", "avif", "jxl"
})


# =============================================================================
# Descriptor
# =============================================================================

#: XML namespace of the Deep Zoom descriptor (wire contract, do not change)
DEEPZOOM_XMLNS: str = "http://schemas.microsoft.com/deepzoom/2008"

#: Descriptor file extension
DESCRIPTOR_EXTENSION: str = ".xml"

#: Suffix of the directory holding the level tree
LEVELS_DIR_SUFFIX: str = "_files"


# =============================================================================
# Processing Configuration
# =============================================================================

#: Threads writing tiles within one level
DEFAULT_TILE_WORKERS: int = _get_env_int("DZSLICER_TILE_WORKERS", 4)

#: Images sliced in parallel for batch runs
DEFAULT_PARALLEL_IMAGES: int = _get_env_int("DZSLICER_PARALLEL_IMAGES", 2)

#: VIPS internal concurrency (threads)
VIPS_CONCURRENCY: int = _get_env_int("DZSLICER_VIPS_CONCURRENCY", 4)

#: Source image extensions picked up when slicing a directory
IMAGE_EXTENSIONS: frozenset[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".tif", ".tiff", ".webp", ".gif"
})


# =============================================================================
# Validation
# =============================================================================


def _validate_config() -> None:
    """Validate configuration values and log warnings for out-of-range settings."""
    global DEFAULT_TILE_WORKERS, DEFAULT_PARALLEL_IMAGES, DEFAULT_QUALITY, VIPS_CONCURRENCY

    if DEFAULT_TILE_WORKERS < 1:
        logger.warning(
            "DEFAULT_TILE_WORKERS=%d is too low, clamping to 1", DEFAULT_TILE_WORKERS
        )
        DEFAULT_TILE_WORKERS = 1

    if DEFAULT_PARALLEL_IMAGES < 1:
        logger.warning(
            "DEFAULT_PARALLEL_IMAGES=%d is too low, clamping to 1",
            DEFAULT_PARALLEL_IMAGES,
        )
        DEFAULT_PARALLEL_IMAGES = 1

    if VIPS_CONCURRENCY < 1:
        logger.warning("VIPS_CONCURRENCY=%d is too low, clamping to 1", VIPS_CONCURRENCY)
        VIPS_CONCURRENCY = 1

    if not 0 <= DEFAULT_QUALITY <= 100:
        clamped = min(max(DEFAULT_QUALITY, 0), 100)
        logger.warning(
            "DEFAULT_QUALITY=%d is out of range, clamping to %d", DEFAULT_QUALITY, clamped
        )
        DEFAULT_QUALITY = clamped


_validate_config()
