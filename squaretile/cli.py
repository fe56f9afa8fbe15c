#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Set

from squaretile.compositing.compositor import DEFAULT_TILE_PX
from squaretile.compositing.errors import TileUnavailableError
from squaretile.io.atomic_write import atomic_write_bytes
from squaretile.io.reader import read_image_file
from squaretile.paths import INPUT_IMAGES, OUTPUT_IMAGES, TILE_PATH, ensure_dirs
from squaretile.pipeline.batch import ItemFailure, convert_batch, read_sources


def list_sources(input_dir: Path) -> List[Path]:
    return sorted(p for p in input_dir.iterdir() if p.is_file() and not p.name.startswith("."))


def output_name(source_name: str, taken: Set[str]) -> str:
    """<stem>.png, or <stem>__<ext>.png when two sources share a stem."""
    src = Path(source_name)
    name = f"{src.stem}.png"
    if name in taken:
        name = f"{src.stem}__{src.suffix.lstrip('.').lower()}.png"
    taken.add(name)
    return name


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="python -m squaretile.cli",
        description="Square every image in a directory over a tiled background.",
    )
    ap.add_argument("--input-dir", type=Path, default=None, help=f"Originals (default {INPUT_IMAGES})")
    ap.add_argument("--tile", type=Path, default=None, help=f"Tile image (default {TILE_PATH})")
    ap.add_argument("--output-dir", type=Path, default=None, help=f"Where to write PNGs (default {OUTPUT_IMAGES})")
    ap.add_argument("--tile-px", type=int, default=None, help=f"Scale the tile to fit N×N (nearest, aspect kept) before tiling, e.g. {DEFAULT_TILE_PX}")
    ap.add_argument("--workers", type=int, default=1)
    ap.add_argument("--verbose", "-v", action="store_true")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    if args.input_dir is None or args.output_dir is None or args.tile is None:
        ensure_dirs()

    input_dir = (args.input_dir or INPUT_IMAGES).expanduser()
    tile_path = (args.tile or TILE_PATH).expanduser()
    output_dir = (args.output_dir or OUTPUT_IMAGES).expanduser()

    if args.workers < 1:
        raise SystemExit("--workers must be >= 1")
    if not input_dir.is_dir():
        raise SystemExit(f"Input directory not found: {input_dir}")
    if not tile_path.is_file():
        raise SystemExit(f"Tile image not found: {tile_path}")

    try:
        tile_file = read_image_file(tile_path)
    except OSError as e:
        raise SystemExit(f"Tile image could not be read: {e}")
    sources = read_sources(list_sources(input_dir))

    try:
        result = convert_batch(tile_file, sources, tile_px=args.tile_px, workers=args.workers)
    except TileUnavailableError as e:
        raise SystemExit(str(e))

    taken: Set[str] = set()
    for item in result.items:
        if isinstance(item, ItemFailure):
            print(f"Skipped: {item.name} ({item.reason})")
            continue
        out_path = atomic_write_bytes(output_dir / output_name(item.name, taken), item.data)
        print(f"Saved: {out_path}")

    print(f"Converted {len(result.outputs)}/{len(result.items)} image(s)")
    return 0 if result.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
