from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _sync_parent(dst: Path) -> None:
    # Directory fsync makes the rename durable; not every platform allows it.
    try:
        fd = os.open(dst.parent, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        log.debug("directory fsync unsupported for %s", dst.parent)
    finally:
        os.close(fd)


def atomic_write_bytes(path: PathLike, data: bytes) -> Path:
    """
    Write `data` to `path` so the file either keeps its old content or holds
    all of `data`, never a partial PNG.

    The bytes go to a sibling temp file first and are renamed over `path`.
    On any failure the temp file is removed and the error propagates.
    """
    dst = Path(path)
    dst.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=dst.parent, prefix=f".{dst.name}.", suffix=".part")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as out:
            out.write(data)
            out.flush()
            os.fsync(out.fileno())
        os.replace(tmp, dst)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    _sync_parent(dst)
    log.debug("wrote %d bytes to %s", len(data), dst)
    return dst
