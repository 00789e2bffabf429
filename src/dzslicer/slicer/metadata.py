"""Deep Zoom descriptor document (``<name>.xml``)."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from dzslicer.config import DEEPZOOM_XMLNS
from dzslicer.core.paths import atomic_text_save

logger = logging.getLogger(__name__)

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


@dataclass(frozen=True)
class DeepZoomDescriptor:
    """Parameters a viewer needs to rebuild the tile grid of a pyramid."""

    tile_size: int
    overlap: int
    tile_format: str
    width: int
    height: int

    def to_xml(self) -> str:
        """Serialize to the single-line descriptor document, newline-terminated.

        Attribute names, their order and the namespace are fixed by the viewer
        protocol.
        """
        return (
            f"{_XML_DECLARATION}"
            f'<Image TileSize="{self.tile_size}" Overlap="{self.overlap}" '
            f'Format="{self.tile_format}" xmlns="{DEEPZOOM_XMLNS}">'
            f'<Size Width="{self.width}" Height="{self.height}"/>'
            f"</Image>\n"
        )

    @classmethod
    def from_xml(cls, text: str | bytes) -> DeepZoomDescriptor:
        """Parse a descriptor document.

        Raises:
            ValueError: If the document is not a Deep Zoom descriptor
        """
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise ValueError(f"Malformed descriptor: {e}") from e

        ns = f"{{{DEEPZOOM_XMLNS}}}"
        if root.tag != f"{ns}Image":
            raise ValueError(f"Unexpected root element {root.tag!r}")
        size = root.find(f"{ns}Size")
        if size is None:
            raise ValueError("Descriptor has no Size element")

        try:
            return cls(
                tile_size=int(root.attrib["TileSize"]),
                overlap=int(root.attrib["Overlap"]),
                tile_format=root.attrib["Format"],
                width=int(size.attrib["Width"]),
                height=int(size.attrib["Height"]),
            )
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid descriptor attributes: {e}") from e


def write_descriptor(path: Path, descriptor: DeepZoomDescriptor) -> None:
    """Write the descriptor to ``path``, replacing any existing file."""
    atomic_text_save(Path(path), descriptor.to_xml())
    logger.debug("Wrote descriptor %s", path)


def read_descriptor(path: Path) -> DeepZoomDescriptor:
    """Read and parse a descriptor file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not a valid descriptor
    """
    return DeepZoomDescriptor.from_xml(Path(path).read_bytes())
