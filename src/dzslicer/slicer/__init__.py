"""Deep Zoom slicing: level planning, tile grids, tile writing and descriptors."""

from .artifacts import (
    PyramidStatus,
    check_pyramid_status,
    remove_artifacts,
)
from .backends import (
    VIPSBackend,
    get_backend,
    is_vips_available,
)
from .metadata import (
    DeepZoomDescriptor,
    read_descriptor,
    write_descriptor,
)
from .pyramid import (
    DeepZoomSlicer,
    normalize_format,
    normalize_quality,
    slice_image,
)
from .tiler import (
    compute_levels,
    iter_tiles,
    level_dimensions,
    max_level,
    tile_dimensions,
    validate_tile_options,
)

__all__ = [
    "PyramidStatus",
    "check_pyramid_status",
    "remove_artifacts",
    "VIPSBackend",
    "get_backend",
    "is_vips_available",
    "DeepZoomDescriptor",
    "read_descriptor",
    "write_descriptor",
    "DeepZoomSlicer",
    "normalize_format",
    "normalize_quality",
    "slice_image",
    "compute_levels",
    "iter_tiles",
    "level_dimensions",
    "max_level",
    "tile_dimensions",
    "validate_tile_options",
]
