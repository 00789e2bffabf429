"""Test fixtures for dzslicer tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import numpy as np
import pytest

from dzslicer.slicer.backends import VIPSBackend


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_rgb_array() -> np.ndarray:
    """Create a simple RGB test image as numpy array with some patterns."""
    # Create 512x512 image with colored quadrants
    img = np.full((512, 512, 3), 255, dtype=np.uint8)

    # Top-left: red
    img[0:256, 0:256] = [200, 50, 50]

    # Top-right: green
    img[0:256, 256:512] = [50, 200, 50]

    # Bottom-left: blue
    img[256:512, 0:256] = [50, 50, 200]

    # Bottom-right: purple
    img[256:512, 256:512] = [150, 50, 150]

    return img


@pytest.fixture
def sample_image(temp_dir: Path, sample_rgb_array: np.ndarray) -> Path:
    """Write the 512x512 quadrant image as a PNG source file."""
    path = temp_dir / "source" / "sample.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    VIPSBackend.save(VIPSBackend.from_numpy(sample_rgb_array), path)
    return path


@pytest.fixture
def image_factory(temp_dir: Path):
    """Return a function writing a gradient PNG of a given size."""

    def make_image(name: str, width: int, height: int) -> Path:
        path = temp_dir / "source" / name
        xs = np.linspace(0, 255, width, dtype=np.uint8)
        arr = np.empty((height, width, 3), dtype=np.uint8)
        arr[:, :, 0] = xs[np.newaxis, :]
        arr[:, :, 1] = 128
        arr[:, :, 2] = 255 - xs[np.newaxis, :]
        path.parent.mkdir(parents=True, exist_ok=True)
        VIPSBackend.save(VIPSBackend.from_numpy(arr), path)
        return path

    return make_image
