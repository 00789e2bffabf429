"""Image processing backend using PyVIPS.

This module is the only place that touches pixels. The slicer asks it to
load a source image, strip embedded metadata, crop tile regions, halve a
level raster and encode tiles; it never manipulates raw pixel data itself.

Usage:
    from dzslicer.slicer.backends import VIPSBackend

    img = VIPSBackend.strip_metadata(VIPSBackend.load(Path("input.jpg")))
    tile = VIPSBackend.crop(img, 0, 0, 255, 255)
    VIPSBackend.save(tile, Path("0_0.jpg"), quality=75)
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import numpy as np

from dzslicer.config import BACKGROUND_COLOR, LOSSY_FORMATS

# pyvips is imported quietly in dzslicer/__init__.py
# This ensures warnings are suppressed before any module imports pyvips
_HAS_VIPS = False
_vips_import_error: str | None = None
pyvips: Any = None

try:
    import pyvips
    _HAS_VIPS = True
except (ImportError, OSError) as e:
    _vips_import_error = str(e)

logger = logging.getLogger(__name__)

#: Metadata field prefixes removed by strip_metadata
_METADATA_PREFIXES: tuple[str, ...] = (
    "exif-",
    "xmp-",
    "iptc-",
    "icc-profile-",
    "jpeg-thumbnail-",
    "png-comment-",
    "gif-comment",
    "orientation",
)


def is_vips_available() -> bool:
    """Check if PyVIPS is available.

    Returns:
        True if pyvips is installed and working
    """
    return _HAS_VIPS


def png_compression(quality: int) -> int:
    """Map a 0-100 quality to a zlib level 0-9 (tens digit, 100 caps at 9)."""
    return min(9, max(0, int(quality)) // 10)


def _require_vips() -> None:
    if not _HAS_VIPS:
        raise RuntimeError(f"PyVIPS is not available: {_vips_import_error}")


_vips_concurrency_declared = False


def _ensure_vips_concurrency_cffi() -> None:
    """Declare vips_concurrency_get/set in pyvips cffi if not already present."""
    global _vips_concurrency_declared
    if _vips_concurrency_declared:
        return
    if not hasattr(pyvips.vips_lib, "vips_concurrency_set"):
        pyvips.ffi.cdef("int vips_concurrency_get(void);")
        pyvips.ffi.cdef("void vips_concurrency_set(int concurrency);")
    _vips_concurrency_declared = True


def set_vips_concurrency(n: int) -> None:
    """Set the libvips worker thread count for this process at runtime.

    ``VIPS_CONCURRENCY`` in the environment is only read when libvips
    initializes, which has already happened once pyvips is imported.
    """
    _require_vips()
    _ensure_vips_concurrency_cffi()
    n = max(1, int(n))
    pyvips.vips_lib.vips_concurrency_set(n)
    logger.debug("VIPS concurrency set to %d", n)


def get_vips_concurrency() -> int:
    _require_vips()
    _ensure_vips_concurrency_cffi()
    return pyvips.vips_lib.vips_concurrency_get()


class VIPSBackend:
    """PyVIPS-based image processing backend.

    Every method returns a new image; inputs are never modified, so a level
    raster can be shared read-only by several tile-writing threads.

    Requires pyvips to be installed: pip install pyvips
    """

    @staticmethod
    def from_numpy(arr: np.ndarray) -> "pyvips.Image":
        """Convert a numpy array to pyvips format.

        Args:
            arr: numpy array (H, W, bands) or (H, W), uint8

        Returns:
            pyvips.Image
        """
        _require_vips()

        height, width = arr.shape[:2]
        bands = arr.shape[2] if arr.ndim == 3 else 1

        # Ensure contiguous array
        arr = np.ascontiguousarray(arr, dtype=np.uint8)

        # libvips must own the pixels: derived images outlive the temporary bytes
        return pyvips.Image.new_from_memory(
            arr.tobytes(),
            width,
            height,
            bands,
            "uchar"
        ).copy_memory()

    @staticmethod
    def to_numpy(img: "pyvips.Image") -> np.ndarray:
        """Convert a pyvips image to numpy array.

        Args:
            img: pyvips.Image

        Returns:
            numpy array (H, W, 3) RGB uint8
        """
        # Ensure RGB format (3 bands)
        if img.bands == 4:
            img = img.extract_band(0, n=3)
        elif img.bands == 1:
            # Grayscale to RGB: bandjoin joins self + list, so [img, img] gives 3 bands
            img = img.bandjoin([img, img])

        data = img.cast("uchar").write_to_memory()
        return np.ndarray(
            buffer=data,
            dtype=np.uint8,
            shape=(img.height, img.width, img.bands)
        )

    @staticmethod
    def load(path: Path) -> "pyvips.Image":
        """Load an image with random access.

        Tiles are cropped in arbitrary order, so sequential access cannot be used.

        Args:
            path: Path to the source image

        Returns:
            pyvips.Image
        """
        _require_vips()
        return pyvips.Image.new_from_file(str(path))

    @staticmethod
    def strip_metadata(img: "pyvips.Image") -> "pyvips.Image":
        """Return a copy without embedded EXIF/XMP/IPTC/ICC/comment fields.

        Args:
            img: pyvips.Image

        Returns:
            pyvips.Image with none of the metadata fields attached
        """
        names = [name for name in img.get_fields() if name.startswith(_METADATA_PREFIXES)]
        if not names:
            return img

        stripped = img.copy()
        for name in names:
            stripped.remove(name)
        return stripped

    @staticmethod
    def crop(
        img: "pyvips.Image", x: int, y: int, width: int, height: int
    ) -> "pyvips.Image":
        """Crop a region, clipped to the raster bounds.

        The returned image has its x/y offset reset to 0, so repeated crops
        from the same raster never carry positional metadata.

        Args:
            img: pyvips.Image to crop
            x, y: Offset from the upper left corner
            width, height: Requested size; clipped to the available pixels

        Returns:
            Cropped pyvips.Image

        Raises:
            ValueError: If the origin lies outside the raster
        """
        width = min(width, img.width - x)
        height = min(height, img.height - y)
        if x < 0 or y < 0 or width <= 0 or height <= 0:
            raise ValueError(
                f"Crop origin ({x}, {y}) is outside the {img.width}x{img.height} raster"
            )
        return img.crop(x, y, width, height).copy(xoffset=0, yoffset=0)

    @staticmethod
    def resize(img: "pyvips.Image", size: tuple[int, int]) -> "pyvips.Image":
        """Resize an image using Lanczos3 resampling.

        Args:
            img: pyvips.Image to resize
            size: Target size as (width, height)

        Returns:
            Resized pyvips.Image
        """
        target_width, target_height = size
        h_scale = target_width / img.width
        v_scale = target_height / img.height

        return img.resize(h_scale, vscale=v_scale, kernel="lanczos3")

    @staticmethod
    def resize_by_factor(img: "pyvips.Image", factor: float) -> "pyvips.Image":
        """Resize by ``factor``, rounding each dimension up (minimum 1 px).

        With ``factor=0.5`` a 5x3 raster becomes 3x2.
        """
        size = (
            max(1, math.ceil(img.width * factor)),
            max(1, math.ceil(img.height * factor)),
        )
        if size == (img.width, img.height):
            return img
        return VIPSBackend.resize(img, size)

    @staticmethod
    def materialize(img: "pyvips.Image") -> "pyvips.Image":
        """Render the lazy pipeline into a memory image."""
        return img.copy_memory()

    @staticmethod
    def save(img: "pyvips.Image", path: Path, quality: int = 75) -> None:
        """Encode an image; the format follows the path suffix.

        Args:
            img: pyvips.Image to save
            path: Output path
            quality: Encode quality (0-100). Lossy formats use it as Q; PNG maps
                its tens digit to the zlib level (75 gives 7). Other lossless
                formats ignore it.
        """
        fmt = Path(path).suffix.lstrip(".").lower()
        if fmt in ("jpg", "jpeg") and img.hasalpha():
            img = img.flatten(background=list(BACKGROUND_COLOR))

        if fmt in LOSSY_FORMATS:
            # libvips encoders reject Q=0
            img.write_to_file(str(path), Q=max(1, quality))
        elif fmt == "png":
            img.write_to_file(str(path), compression=png_compression(quality))
        else:
            img.write_to_file(str(path))


def get_backend() -> type[VIPSBackend]:
    """Get the image processing backend.

    Returns:
        VIPSBackend class

    Raises:
        RuntimeError: If PyVIPS is not available
    """
    if not _HAS_VIPS:
        raise RuntimeError(
            f"PyVIPS is required but not available: {_vips_import_error}\n"
            "Install pyvips and libvips: pip install pyvips"
        )
    return VIPSBackend
