# squaretile/compositing/loader.py
from __future__ import annotations

import io
import logging

from PIL import Image

from squaretile.compositing.errors import DecodeError
from squaretile.compositing.formats import format_from_mime
from squaretile.compositing.models import ImageFile, RasterImage

log = logging.getLogger(__name__)

# Everything Pillow raises for bad or hostile input.
_PIL_DECODE_ERRORS = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


def decode_image(data: bytes, mime_type: str) -> RasterImage:
    """
    Decode `data` with the decoder mapped from `mime_type` and return an RGBA image.

    Only the declared format is tried: a PNG labelled image/jpeg is rejected
    rather than sniffed. Raises DecodeError (UnsupportedFormatError for an
    unknown MIME type).
    """
    fmt = format_from_mime(mime_type)

    try:
        with Image.open(io.BytesIO(data), formats=[fmt.value]) as img:
            img.load()  # force full decode, Image.open is lazy
            rgba = img.convert("RGBA")
    except _PIL_DECODE_ERRORS as e:
        raise DecodeError(f"Could not decode {len(data)} bytes as {fmt.value}: {e}") from e

    w, h = rgba.size
    if w == 0 or h == 0:
        raise DecodeError(f"Decoded image has zero area: {w}×{h}")

    log.debug("decoded %s image %d×%d", fmt.value, w, h)
    return rgba


def load_image_file(file: ImageFile) -> RasterImage:
    log.debug("loading %s (%s)", file.name, file.mime_type)
    return decode_image(file.data, file.mime_type)
