# squaretile/compositing/compositor.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from squaretile.compositing.errors import PreconditionError
from squaretile.compositing.models import RasterImage

log = logging.getLogger(__name__)

# Tile edge the desktop app used to normalise uploaded tiles to.
DEFAULT_TILE_PX = 256


def _require_rgba(img: Image.Image) -> Image.Image:
    return img if img.mode == "RGBA" else img.convert("RGBA")


def center_offset(side: int, width: int, height: int) -> Tuple[int, int]:
    """
    Top-left corner of a width×height image centred on a side×side canvas.
    Truncating division: an odd remainder leaves the extra pixel bottom/right.
    """
    return (side - width) // 2, (side - height) // 2


def tile_background(side: int, tile: RasterImage) -> RasterImage:
    """
    Fill a side×side RGBA canvas by repeating `tile` from the origin.

    canvas[x, y] == tile[x % tw, y % th]; partial tiles on the right and
    bottom edges are cropped, never scaled.
    """
    tile = _require_rgba(tile)
    tw, th = tile.size
    if tw <= 0 or th <= 0:
        raise PreconditionError(f"Tile must have nonzero dimensions, got {tw}×{th}")
    if side <= 0:
        raise PreconditionError(f"Canvas side must be positive, got {side}")

    arr = np.asarray(tile)  # (th, tw, 4)
    reps_y = -(-side // th)
    reps_x = -(-side // tw)
    filled = np.tile(arr, (reps_y, reps_x, 1))[:side, :side]
    return Image.fromarray(np.ascontiguousarray(filled))


def composite_square(source: RasterImage, tile: RasterImage) -> RasterImage:
    """
    Square canvas sized to the larger source dimension, tiled with `tile`,
    with `source` copied centred on top.

    The overlay is a straight overwrite of the covered region (no alpha
    blending). Inputs are left untouched; a new image is returned.
    """
    source = _require_rgba(source)
    w, h = source.size
    if w <= 0 or h <= 0:
        raise PreconditionError(f"Source must have nonzero dimensions, got {w}×{h}")

    side = max(w, h)
    log.debug("tiling %d×%d background from %d×%d tile", side, side, *tile.size)
    canvas = tile_background(side, tile)

    dx, dy = center_offset(side, w, h)
    log.debug("overlaying %d×%d source at (%d, %d)", w, h, dx, dy)
    canvas.paste(source, (dx, dy))  # no mask -> exact overwrite
    return canvas


def fit_within(width: int, height: int, box_px: int) -> Tuple[int, int]:
    """
    Largest size with the same aspect ratio that fits in a box_px square.
    Scales up as well as down; each side is rounded half-up and at least 1.
    """
    ratio = min(box_px / width, box_px / height)
    return max(1, int(width * ratio + 0.5)), max(1, int(height * ratio + 0.5))


def normalize_tile(tile: RasterImage, tile_px: Optional[int]) -> RasterImage:
    """
    Scale the tile to fit inside tile_px×tile_px, keeping its aspect ratio,
    with nearest-neighbour sampling. A 4×2 tile at 256 becomes 256×128.
    `None` keeps the tile as uploaded.
    """
    tile = _require_rgba(tile)
    if tile_px is None:
        return tile
    if tile_px <= 0:
        raise PreconditionError(f"tile_px must be positive, got {tile_px}")
    tw, th = tile.size
    if tw <= 0 or th <= 0:
        raise PreconditionError(f"Tile must have nonzero dimensions, got {tw}×{th}")
    size = fit_within(tw, th, tile_px)
    if size == (tw, th):
        return tile
    return tile.resize(size, resample=Image.NEAREST)
