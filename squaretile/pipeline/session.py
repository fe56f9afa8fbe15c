# squaretile/pipeline/session.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Optional, Sequence

from squaretile.compositing.errors import TileUnavailableError
from squaretile.compositing.models import ImageFile, OutputImage
from squaretile.io.reader import PathLike, read_file_async
from squaretile.pipeline.batch import BatchResult, ItemFailure, SourceItem, convert_batch

log = logging.getLogger(__name__)

Slot = Literal["tile", "original"]


@dataclass(frozen=True)
class _PendingRead:
    key: str
    name: str
    slot: Slot
    # tile: generation counter; original: position in upload order
    ordinal: int
    future: "Future[ImageFile]"


def select_tile(paths: Sequence[PathLike]) -> Optional[PathLike]:
    """
    Only one tile per session: the first of the dropped/selected files wins,
    the rest are ignored.
    """
    paths = list(paths)
    if len(paths) > 1:
        log.info("tile upload: keeping %s, ignoring %d other file(s)", paths[0], len(paths) - 1)
    return paths[0] if paths else None


class ConversionSession:
    """
    State behind the upload UI: one tile slot, the originals in upload order,
    and the processed outputs.

    Reads are asynchronous. Each in-flight read lives in `_pending` keyed by
    its request id and is removed as soon as it settles, so `loading` is
    simply "the map is non-empty".
    """

    def __init__(self, executor: Optional[Executor] = None, *, max_workers: int = 4) -> None:
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="squaretile-read"
        )
        self._lock = threading.RLock()
        self._pending: Dict[str, _PendingRead] = {}
        self._tile_error: Optional[BaseException] = None
        self._next_request = 0
        self._tile_generation = 0
        self._original_slots: Dict[int, SourceItem] = {}
        self._next_original = 0

        self.tile: Optional[ImageFile] = None
        self.processed: List[OutputImage] = []

    # ------------------------
    # uploads

    def upload_tile(self, paths: Sequence[PathLike]) -> Optional[str]:
        path = select_tile(paths)
        if path is None:
            return None
        with self._lock:
            self._tile_generation += 1
            generation = self._tile_generation
        return self._submit(path, "tile", generation)

    def upload_originals(self, paths: Iterable[PathLike]) -> List[str]:
        keys = []
        for path in paths:
            with self._lock:
                ordinal = self._next_original
                self._next_original += 1
            keys.append(self._submit(path, "original", ordinal))
        return keys

    def _submit(self, path: PathLike, slot: Slot, ordinal: int) -> str:
        with self._lock:
            key = f"{slot}-{self._next_request:04d}-{path}"
            self._next_request += 1
            fut = read_file_async(path, self._executor)
            self._pending[key] = _PendingRead(
                key=key, name=Path(path).name, slot=slot, ordinal=ordinal, future=fut
            )
        # outside the lock: the callback may run inline if the read already finished
        fut.add_done_callback(lambda _f, k=key: self._settle(k))
        log.debug("reading %s into %s slot", path, slot)
        return key

    def _settle(self, key: str) -> None:
        with self._lock:
            pending = self._pending.pop(key, None)
            if pending is None:
                return  # already settled by the other path (callback or wait)

            exc = pending.future.exception()
            if exc is not None:
                log.error("read failed for %s: %s", key, exc)

            if pending.slot == "tile":
                # a newer tile upload supersedes this one
                if pending.ordinal == self._tile_generation:
                    self.tile = None if exc is not None else pending.future.result()
                    self._tile_error = exc
            elif exc is not None:
                self._original_slots[pending.ordinal] = ItemFailure(name=pending.name, error=exc)
            else:
                self._original_slots[pending.ordinal] = pending.future.result()

    # ------------------------
    # state

    @property
    def loading(self) -> bool:
        with self._lock:
            return bool(self._pending)

    @property
    def pending_keys(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def _ordered_slots(self) -> List[SourceItem]:
        with self._lock:
            return [self._original_slots[i] for i in sorted(self._original_slots)]

    @property
    def originals(self) -> List[ImageFile]:
        return [s for s in self._ordered_slots() if isinstance(s, ImageFile)]

    @property
    def read_failures(self) -> List[ItemFailure]:
        return [s for s in self._ordered_slots() if isinstance(s, ItemFailure)]

    def wait(self) -> None:
        """
        Block until every pending read has settled.

        Read errors are not raised here: a failed original is kept as an
        ItemFailure in its slot, a failed tile read leaves the tile slot empty.
        """
        while True:
            with self._lock:
                pending = list(self._pending.values())
            if not pending:
                break
            wait_futures([p.future for p in pending])
            for p in pending:
                self._settle(p.key)

    # ------------------------
    # conversion

    def convert(self, *, tile_px: Optional[int] = None, workers: int = 1) -> BatchResult:
        self.wait()
        if self.tile is None:
            if self._tile_error is not None:
                err = self._tile_error
                raise TileUnavailableError(f"Tile could not be read: {err}") from err
            raise TileUnavailableError("Upload a tile image before converting")

        result = convert_batch(self.tile, self._ordered_slots(), tile_px=tile_px, workers=workers)
        self.processed.extend(result.outputs)
        log.info(
            "session convert: %d converted, %d failed", len(result.outputs), len(result.failures)
        )
        return result

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "ConversionSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
