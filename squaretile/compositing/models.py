from __future__ import annotations

from dataclasses import dataclass, field

from PIL import Image

from squaretile.compositing.formats import PNG_MIME

# Decoded bitmap. Always RGBA once it leaves the loader.
RasterImage = Image.Image


@dataclass(frozen=True)
class ImageFile:
    """Raw upload: bytes plus the name and MIME type they arrived with."""
    name: str
    mime_type: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class TileSpec:
    """Decoded tile, shared read-only by every source in a batch."""
    image: RasterImage
    name: str
    mime_type: str


@dataclass(frozen=True)
class SourceSpec:
    image: RasterImage
    name: str
    mime_type: str


@dataclass(frozen=True)
class OutputImage:
    image: RasterImage
    name: str
    data: bytes = field(repr=False)
    mime_type: str = PNG_MIME

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size
