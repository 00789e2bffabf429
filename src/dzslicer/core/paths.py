"""Path helpers for the Deep Zoom output layout.

Layout::

    <root>/<name>.xml
    <root>/<name>_files/<level>/<col>_<row>.<ext>
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from dzslicer.config import DESCRIPTOR_EXTENSION, LEVELS_DIR_SUFFIX

from .types import Tile


def split_filename_and_extension(filename: str) -> tuple[str, str]:
    """Split ``"path/to/file.txt"`` into ``("file", "txt")``.

    The extension is returned without its dot and is empty if there is none.
    """
    path = Path(filename)
    return path.stem, path.suffix.lstrip(".")


@dataclass(frozen=True)
class PyramidPaths:
    """Resolved artifact locations for one source image."""

    root_dir: Path
    name: str

    @property
    def descriptor_path(self) -> Path:
        return self.root_dir / f"{self.name}{DESCRIPTOR_EXTENSION}"

    @property
    def levels_root_dir(self) -> Path:
        return self.root_dir / f"{self.name}{LEVELS_DIR_SUFFIX}"

    def level_dir(self, level: int) -> Path:
        return self.levels_root_dir / str(level)

    def tile_path(self, tile: Tile, extension: str) -> Path:
        return self.level_dir(tile.level) / tile.filename(extension)

    @classmethod
    def for_image(cls, image_path: Path, output_dir: Path | None = None) -> PyramidPaths:
        """Paths for ``image_path``; ``output_dir`` defaults to the image's directory."""
        image_path = Path(image_path)
        name, _ext = split_filename_and_extension(image_path.name)
        root_dir = Path(output_dir) if output_dir is not None else image_path.parent
        return cls(root_dir=root_dir, name=name)


def atomic_text_save(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Atomically write text to a file, replacing any existing file.

    Writes to a temp file in the same directory, then replaces the target.
    ``os.replace()`` is atomic on both POSIX and Windows (same filesystem).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent, suffix=".tmp", prefix=path.stem
    )
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="\n") as f:
            f.write(text)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
