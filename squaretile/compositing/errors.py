from __future__ import annotations


class CompositeError(RuntimeError):
    """Base class for every failure raised while producing a square image."""


class DecodeError(CompositeError):
    """Bytes are not a valid encoding of the declared format."""


class UnsupportedFormatError(DecodeError):
    """The declared MIME type maps to no decoder."""


class EncodeError(CompositeError):
    """A raster could not be serialised (malformed pixel buffer, writer failure)."""


class PreconditionError(CompositeError):
    """Degenerate input geometry, e.g. a tile with a zero dimension."""


class TileUnavailableError(CompositeError):
    """No usable tile image. Fatal for the whole batch."""
