from pathlib import Path

# default batch layout is relative to where the command runs, not the install location
PROJECT_ROOT = Path.cwd()

# batch inputs
INPUT_ROOT = PROJECT_ROOT / "inputs"
INPUT_IMAGES = INPUT_ROOT / "images"
TILE_PATH = INPUT_ROOT / "tile.png"

# batch outputs
OUTPUT_ROOT = PROJECT_ROOT / "outputs"
OUTPUT_IMAGES = OUTPUT_ROOT / "images"


def ensure_dirs():
    dirs = [
        INPUT_ROOT,
        INPUT_IMAGES,
        OUTPUT_ROOT,
        OUTPUT_IMAGES,
    ]

    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)
