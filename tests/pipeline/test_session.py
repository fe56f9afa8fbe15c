import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import BLUE, RED, solid
from squaretile.compositing.errors import TileUnavailableError
from squaretile.compositing.models import ImageFile
from squaretile.io.reader import read_file_async, read_image_file
from squaretile.pipeline.session import ConversionSession, select_tile


def _write(path, size, color):
    solid(size, color).save(path)
    return path


def test_select_tile_keeps_first():
    assert select_tile(["a.png", "b.png", "c.png"]) == "a.png"
    assert select_tile([]) is None


def test_read_image_file_infers_mime(tmp_path):
    p = _write(tmp_path / "x.png", (2, 2), RED)
    f = read_image_file(p)
    assert f == ImageFile(name="x.png", mime_type="image/png", data=p.read_bytes())


def test_read_file_async(tmp_path):
    p = _write(tmp_path / "x.png", (2, 2), RED)
    with ThreadPoolExecutor(max_workers=1) as pool:
        fut = read_file_async(p, pool)
        assert fut.result().name == "x.png"


def test_session_convert_end_to_end(tmp_path):
    tile = _write(tmp_path / "tile.png", (2, 2), RED)
    other = _write(tmp_path / "ignored.png", (2, 2), BLUE)
    a = _write(tmp_path / "a.png", (3, 1), BLUE)
    b = _write(tmp_path / "b.png", (1, 4), BLUE)

    with ConversionSession() as sess:
        sess.upload_tile([tile, other])
        sess.upload_originals([a, b])
        sess.wait()

        assert not sess.loading
        assert sess.pending_keys == []
        assert sess.tile.name == "tile.png"
        assert [f.name for f in sess.originals] == ["a.png", "b.png"]

        result = sess.convert()

    assert result.ok
    assert [o.name for o in sess.processed] == ["a.png", "b.png"]
    assert [o.size for o in sess.processed] == [(3, 3), (4, 4)]
    assert sess.processed[0].image.getpixel((0, 1)) == BLUE
    assert sess.processed[0].image.getpixel((0, 0)) == RED


def test_convert_without_tile_raises(tmp_path):
    a = _write(tmp_path / "a.png", (3, 1), BLUE)
    with ConversionSession() as sess:
        sess.upload_originals([a])
        with pytest.raises(TileUnavailableError):
            sess.convert()


def test_empty_tile_upload_is_ignored():
    with ConversionSession() as sess:
        assert sess.upload_tile([]) is None
        assert not sess.loading
        assert sess.tile is None


def test_originals_keep_upload_order_when_reads_finish_out_of_order(tmp_path):
    paths = [_write(tmp_path / f"{n}.png", (2, 1), BLUE) for n in ("first", "second", "third")]
    gate = threading.Event()

    class GatedPool(ThreadPoolExecutor):
        def submit(self, fn, path, *args, **kwargs):
            # hold back the first read until the others have completed
            if str(path).endswith("first.png"):
                def delayed(p=path):
                    gate.wait(5)
                    return fn(p)
                return super().submit(delayed)
            return super().submit(fn, path, *args, **kwargs)

    pool = GatedPool(max_workers=3)
    with ConversionSession(executor=pool) as sess:
        keys = sess.upload_originals(paths)
        assert len(keys) == 3
        assert sess.loading
        gate.set()
        sess.wait()
        assert [f.name for f in sess.originals] == ["first.png", "second.png", "third.png"]
    pool.shutdown()


def test_newer_tile_upload_wins(tmp_path):
    t1 = _write(tmp_path / "t1.png", (2, 2), RED)
    t2 = _write(tmp_path / "t2.png", (2, 2), BLUE)
    with ConversionSession() as sess:
        sess.upload_tile([t1])
        sess.upload_tile([t2])
        sess.wait()
        assert sess.tile.name == "t2.png"


def test_unreadable_original_is_skipped_not_fatal(tmp_path):
    tile = _write(tmp_path / "tile.png", (2, 2), RED)
    good = _write(tmp_path / "a.png", (3, 1), BLUE)

    with ConversionSession() as sess:
        sess.upload_tile([tile])
        sess.upload_originals([tmp_path / "missing.png", good])
        sess.wait()

        assert not sess.loading
        assert [f.name for f in sess.originals] == ["a.png"]
        assert [f.name for f in sess.read_failures] == ["missing.png"]

        result = sess.convert()

    assert [it.name for it in result.items] == ["missing.png", "a.png"]
    assert len(result.outputs) == 1
    assert len(result.failures) == 1
    assert isinstance(result.failures[0].error, FileNotFoundError)
    assert [o.name for o in sess.processed] == ["a.png"]


def test_unreadable_tile_aborts_convert(tmp_path):
    good = _write(tmp_path / "a.png", (3, 1), BLUE)

    with ConversionSession() as sess:
        sess.upload_tile([tmp_path / "no_tile.png"])
        sess.upload_originals([good])
        with pytest.raises(TileUnavailableError) as exc:
            sess.convert()

    assert isinstance(exc.value.__cause__, FileNotFoundError)
    assert sess.processed == []


def test_convert_reports_bad_original(tmp_path):
    tile = _write(tmp_path / "tile.png", (2, 2), RED)
    good = _write(tmp_path / "good.png", (2, 3), BLUE)
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"not an image")

    with ConversionSession() as sess:
        sess.upload_tile([tile])
        sess.upload_originals([bad, good])
        result = sess.convert()

    assert [f.name for f in result.failures] == ["bad.png"]
    assert [o.name for o in sess.processed] == ["good.png"]
