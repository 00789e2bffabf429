"""Removal and status checks for previously generated pyramid artifacts."""

from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path

from .metadata import DeepZoomDescriptor, read_descriptor
from .tiler import max_level

logger = logging.getLogger(__name__)


class PyramidStatus(Enum):
    """Status of an existing pyramid on disk."""

    NOT_EXISTS = "not_exists"  # Neither descriptor nor level tree
    COMPLETE = "complete"  # Descriptor valid, every level has tiles
    INCOMPLETE = "incomplete"  # Missing descriptor, levels or tiles
    CORRUPTED = "corrupted"  # Descriptor cannot be parsed


def remove_artifacts(descriptor_path: Path, levels_root_dir: Path) -> bool:
    """Delete the descriptor file and the level tree.

    Safe to call repeatedly; missing artifacts are skipped.

    Args:
        descriptor_path: Path to ``<name>.xml``
        levels_root_dir: Path to ``<name>_files``

    Returns:
        True if either artifact existed before the call
    """
    descriptor_path = Path(descriptor_path)
    levels_root_dir = Path(levels_root_dir)

    had_descriptor = descriptor_path.is_file()
    had_levels = levels_root_dir.is_dir()

    if had_descriptor:
        descriptor_path.unlink()
    if had_levels:
        shutil.rmtree(levels_root_dir)

    if had_descriptor or had_levels:
        logger.info("Removed existing artifacts for %s", descriptor_path.stem)
    return had_descriptor or had_levels


def check_pyramid_status(
    descriptor_path: Path,
    levels_root_dir: Path,
    expected: DeepZoomDescriptor | None = None,
) -> PyramidStatus:
    """Check the status of an existing pyramid.

    Args:
        descriptor_path: Path to ``<name>.xml``
        levels_root_dir: Path to ``<name>_files``
        expected: Descriptor the caller would write now; a pyramid built
            with a different geometry, format or source size is INCOMPLETE

    Returns:
        PyramidStatus indicating the state
    """
    descriptor_path = Path(descriptor_path)
    levels_root_dir = Path(levels_root_dir)

    if not descriptor_path.exists():
        if levels_root_dir.exists():
            return PyramidStatus.INCOMPLETE
        return PyramidStatus.NOT_EXISTS

    try:
        descriptor = read_descriptor(descriptor_path)
    except (OSError, ValueError):
        return PyramidStatus.CORRUPTED

    if expected is not None and descriptor != expected:
        logger.debug("Existing descriptor %s does not match %s", descriptor, expected)
        return PyramidStatus.INCOMPLETE

    if not levels_root_dir.is_dir():
        return PyramidStatus.INCOMPLETE

    # Verify each level directory exists and has tiles
    for level in range(max_level(descriptor.width, descriptor.height) + 1):
        level_dir = levels_root_dir / str(level)
        if not level_dir.is_dir():
            return PyramidStatus.INCOMPLETE
        if next(level_dir.glob(f"*.{descriptor.tile_format}"), None) is None:
            return PyramidStatus.INCOMPLETE

    return PyramidStatus.COMPLETE
