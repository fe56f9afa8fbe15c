import io

import pytest
from PIL import Image

from squaretile.compositing.models import ImageFile

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def solid(size, color) -> Image.Image:
    return Image.new("RGBA", size, color)


def patterned(size) -> Image.Image:
    """
    Deterministic RGBA image where every pixel is distinct for small sizes.
    """
    w, h = size
    img = Image.new("RGBA", (w, h))
    px = img.load()
    for y in range(h):
        for x in range(w):
            px[x, y] = ((x * 37 + y * 17) % 256, (x * 13 + y * 53) % 256, (x * 97 + y * 19) % 256, 255)
    return img


def as_file(name: str, img: Image.Image) -> ImageFile:
    return ImageFile(name=name, mime_type="image/png", data=png_bytes(img))


@pytest.fixture
def red_tile_file() -> ImageFile:
    return as_file("tile.png", solid((2, 2), RED))


@pytest.fixture
def image_dir(tmp_path):
    """
    inputs/tile.png, inputs/images/{wide.png, tall.jpg}
    """
    root = tmp_path / "inputs"
    images = root / "images"
    images.mkdir(parents=True)

    solid((4, 4), RED).save(root / "tile.png")
    solid((6, 2), BLUE).save(images / "wide.png")
    Image.new("RGB", (3, 9), (0, 200, 0)).save(images / "tall.jpg", format="JPEG")
    return root
