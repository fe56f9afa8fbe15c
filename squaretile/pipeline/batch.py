# squaretile/pipeline/batch.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from squaretile.compositing.compositor import composite_square, normalize_tile
from squaretile.compositing.encoder import encode_png
from squaretile.compositing.errors import CompositeError, TileUnavailableError
from squaretile.compositing.formats import PNG_MIME
from squaretile.compositing.loader import load_image_file
from squaretile.compositing.models import ImageFile, OutputImage, SourceSpec, TileSpec
from squaretile.io.reader import PathLike, read_image_file

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemFailure:
    name: str
    error: BaseException = field(repr=False)

    @property
    def reason(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


BatchItem = Union[OutputImage, ItemFailure]

# A source slot: the bytes that were read, or why reading them failed.
SourceItem = Union[ImageFile, ItemFailure]


@dataclass(frozen=True)
class BatchResult:
    """One entry per source, in the order the caller supplied them."""
    tile: TileSpec
    items: List[BatchItem]

    @property
    def outputs(self) -> List[OutputImage]:
        return [it for it in self.items if isinstance(it, OutputImage)]

    @property
    def failures(self) -> List[ItemFailure]:
        return [it for it in self.items if isinstance(it, ItemFailure)]

    @property
    def ok(self) -> bool:
        return not self.failures


def load_tile(file: Optional[ImageFile], *, tile_px: Optional[int] = None) -> TileSpec:
    """
    Decode the tile once for a whole batch.

    Any failure here is fatal for the batch and surfaces as TileUnavailableError.
    """
    if file is None:
        raise TileUnavailableError("No tile image provided")

    try:
        image = normalize_tile(load_image_file(file), tile_px)
    except CompositeError as e:
        raise TileUnavailableError(f"Tile {file.name!r} is unusable: {e}") from e

    log.info("tile %s loaded (%d×%d)", file.name, *image.size)
    return TileSpec(image=image, name=file.name, mime_type=file.mime_type)


def load_source(file: ImageFile) -> SourceSpec:
    image = load_image_file(file)
    log.debug("%s: %d×%d", file.name, *image.size)
    return SourceSpec(image=image, name=file.name, mime_type=file.mime_type)


def convert_one(file: ImageFile, tile: TileSpec) -> OutputImage:
    """Decode, composite and encode one source. Raises CompositeError subclasses."""
    source = load_source(file)
    squared = composite_square(source.image, tile.image)
    data = encode_png(squared)
    return OutputImage(image=squared, name=source.name, data=data, mime_type=PNG_MIME)


def read_sources(paths: Iterable[PathLike]) -> List[SourceItem]:
    """Read each path on its own; an unreadable file becomes an ItemFailure in its slot."""
    items: List[SourceItem] = []
    for path in paths:
        try:
            items.append(read_image_file(path))
        except OSError as e:
            log.warning("skipping %s: %s", path, e)
            items.append(ItemFailure(name=Path(path).name, error=e))
    return items


def _convert_isolated(file: SourceItem, tile: TileSpec) -> BatchItem:
    if isinstance(file, ItemFailure):
        return file
    try:
        out = convert_one(file, tile)
    except CompositeError as e:
        log.warning("skipping %s: %s", file.name, e)
        return ItemFailure(name=file.name, error=e)
    except Exception as e:
        log.exception("unexpected failure converting %s", file.name)
        return ItemFailure(name=file.name, error=e)

    log.info("converted %s -> %d×%d", file.name, *out.size)
    return out


def convert_sources(
    tile: TileSpec,
    source_files: Sequence[SourceItem],
    *,
    workers: int = 1,
) -> BatchResult:
    """
    Convert every source against an already-loaded tile.

    Sources are independent: a failure becomes an ItemFailure in that slot and
    the rest carry on. Slots that already hold an ItemFailure (a failed read)
    pass through unchanged. With workers > 1 they run on a thread pool sharing the
    read-only tile; results still come back in input order.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    files = list(source_files)
    if workers == 1 or len(files) <= 1:
        items = [_convert_isolated(f, tile) for f in files]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="squaretile") as pool:
            items = list(pool.map(lambda f: _convert_isolated(f, tile), files))

    return BatchResult(tile=tile, items=items)


def convert_batch(
    tile_file: Optional[ImageFile],
    source_files: Sequence[SourceItem],
    *,
    tile_px: Optional[int] = None,
    workers: int = 1,
) -> BatchResult:
    tile = load_tile(tile_file, tile_px=tile_px)
    return convert_sources(tile, source_files, workers=workers)
