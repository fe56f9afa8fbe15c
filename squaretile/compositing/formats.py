# squaretile/compositing/formats.py
from __future__ import annotations

from enum import Enum
from pathlib import PurePath
from types import MappingProxyType
from typing import Mapping

from squaretile.compositing.errors import UnsupportedFormatError


class ImageFormat(str, Enum):
    """Supported decoders. Values are Pillow plugin format names."""

    PNG = "PNG"
    JPEG = "JPEG"
    GIF = "GIF"
    WEBP = "WEBP"
    TIFF = "TIFF"
    BMP = "BMP"
    ICO = "ICO"
    TGA = "TGA"
    PNM = "PPM"
    DDS = "DDS"
    QOI = "QOI"


OCTET_STREAM = "application/octet-stream"
PNG_MIME = "image/png"

MIME_TO_FORMAT: Mapping[str, ImageFormat] = MappingProxyType({
    "image/png": ImageFormat.PNG,
    "image/jpeg": ImageFormat.JPEG,
    "image/jpg": ImageFormat.JPEG,
    "image/pjpeg": ImageFormat.JPEG,
    "image/gif": ImageFormat.GIF,
    "image/webp": ImageFormat.WEBP,
    "image/tiff": ImageFormat.TIFF,
    "image/bmp": ImageFormat.BMP,
    "image/x-bmp": ImageFormat.BMP,
    "image/x-icon": ImageFormat.ICO,
    "image/vnd.microsoft.icon": ImageFormat.ICO,
    "image/x-tga": ImageFormat.TGA,
    "image/x-targa": ImageFormat.TGA,
    "image/x-portable-anymap": ImageFormat.PNM,
    "image/x-portable-bitmap": ImageFormat.PNM,
    "image/x-portable-graymap": ImageFormat.PNM,
    "image/x-portable-pixmap": ImageFormat.PNM,
    "image/vnd-ms.dds": ImageFormat.DDS,
    "image/x-qoi": ImageFormat.QOI,
})

# extension (lowercase, no dot) -> canonical MIME
EXTENSION_TO_MIME: Mapping[str, str] = MappingProxyType({
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "jpe": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "bmp": "image/bmp",
    "ico": "image/x-icon",
    "tga": "image/x-tga",
    "pnm": "image/x-portable-anymap",
    "pbm": "image/x-portable-bitmap",
    "pgm": "image/x-portable-graymap",
    "ppm": "image/x-portable-pixmap",
    "dds": "image/vnd-ms.dds",
    "qoi": "image/x-qoi",
})


def _normalize_mime(mime_type: str) -> str:
    # "Image/PNG; charset=binary" -> "image/png"
    return mime_type.split(";", 1)[0].strip().lower()


def format_from_mime(mime_type: str) -> ImageFormat:
    key = _normalize_mime(mime_type or "")
    try:
        return MIME_TO_FORMAT[key]
    except KeyError:
        raise UnsupportedFormatError(f"Unsupported image type: {mime_type!r}") from None


def is_supported_mime(mime_type: str) -> bool:
    return _normalize_mime(mime_type or "") in MIME_TO_FORMAT


def mime_from_filename(name: str | PurePath) -> str:
    """
    Guess a MIME type from a filename extension.

    Browsers hand us the MIME type with each upload; files read from disk
    do not carry one, so the CLI and the session infer it here. Unknown
    extensions map to application/octet-stream, which the loader rejects.
    """
    suffix = PurePath(name).suffix.lower().lstrip(".")
    return EXTENSION_TO_MIME.get(suffix, OCTET_STREAM)
