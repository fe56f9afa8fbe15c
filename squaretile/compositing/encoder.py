# squaretile/compositing/encoder.py
from __future__ import annotations

import io
import logging

from PIL import Image

from squaretile.compositing.errors import EncodeError
from squaretile.compositing.models import RasterImage

log = logging.getLogger(__name__)

RGBA_BANDS = 4


def _check_buffer(width: int, height: int, nbytes: int) -> None:
    if width <= 0 or height <= 0:
        raise EncodeError(f"Cannot encode image with zero area: {width}×{height}")
    expected = width * height * RGBA_BANDS
    if nbytes != expected:
        raise EncodeError(
            f"Pixel buffer length {nbytes} does not match {width}×{height} RGBA ({expected} bytes)"
        )


def raster_from_rgba(width: int, height: int, pixels: bytes) -> RasterImage:
    """Wrap a raw RGBA buffer (row-major, 4 bytes per pixel) as a RasterImage."""
    _check_buffer(width, height, len(pixels))
    return Image.frombytes("RGBA", (width, height), bytes(pixels))


def encode_png(img: RasterImage) -> bytes:
    """
    Deterministic PNG encoder. Lossless: decoding the result gives back the
    same RGBA pixels.
    """
    rgba = img if img.mode == "RGBA" else img.convert("RGBA")
    w, h = rgba.size
    if w <= 0 or h <= 0:
        raise EncodeError(f"Cannot encode image with zero area: {w}×{h}")
    _check_buffer(w, h, len(rgba.tobytes()))

    buf = io.BytesIO()
    try:
        rgba.save(buf, format="PNG")
    except (OSError, ValueError) as e:
        raise EncodeError(f"PNG encoding failed for {w}×{h} image: {e}") from e

    data = buf.getvalue()
    log.debug("encoded %d×%d image to %d PNG bytes", w, h, len(data))
    return data
