from __future__ import annotations

from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Union

from squaretile.compositing.formats import mime_from_filename
from squaretile.compositing.models import ImageFile

PathLike = Union[str, Path]


def read_image_file(path: PathLike) -> ImageFile:
    """Read raw bytes from disk. The MIME type comes from the file extension."""
    p = Path(path)
    return ImageFile(name=p.name, mime_type=mime_from_filename(p), data=p.read_bytes())


def read_file_async(path: PathLike, executor: Executor) -> "Future[ImageFile]":
    return executor.submit(read_image_file, path)
