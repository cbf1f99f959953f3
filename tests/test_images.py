"""Battle image fallback chain, splicing, and upload cleanup."""

import os
import time
from io import BytesIO

import httpx
import pytest
from PIL import Image

from automarkets.engine.images import (
    BattleImageCompositor,
    cleanup_old_images,
    resolve_battle_image,
    splice_halves,
)
from automarkets.errors import ImageCompositeError


def _png(color, size=(40, 40)):
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def test_fallback_chain():
    def ok(a, b):
        return "/uploads/battle.png"

    def broken(a, b):
        raise ImageCompositeError("nope")

    assert resolve_battle_image("a.png", "b.png", ok) == "/uploads/battle.png"
    assert resolve_battle_image("a.png", "b.png", broken) == "a.png"
    assert resolve_battle_image(None, "b.png", ok) == "b.png"
    assert resolve_battle_image("a.png", None, ok) == "a.png"
    assert resolve_battle_image(None, None, ok) is None
    assert resolve_battle_image("a.png", "b.png", None) == "a.png"


def test_splice_halves_left_and_right():
    red = Image.new("RGB", (40, 40), (255, 0, 0))
    blue = Image.new("RGB", (40, 40), (0, 0, 255))
    out = splice_halves(red, blue)
    assert out.size == (40, 40)
    assert out.getpixel((5, 20))[:3] == (255, 0, 0)
    assert out.getpixel((35, 20))[:3] == (0, 0, 255)


def test_splice_resizes_to_common_height():
    small = Image.new("RGB", (20, 20), (255, 0, 0))
    large = Image.new("RGB", (80, 80), (0, 0, 255))
    out = splice_halves(small, large)
    assert out.width == out.height == 80


def test_compositor_downloads_and_saves(tmp_path):
    images = {"/a.png": _png((255, 0, 0)), "/b.png": _png((0, 0, 255))}

    def handler(request):
        return httpx.Response(200, content=images[request.url.path])

    client = httpx.Client(transport=httpx.MockTransport(handler))
    compositor = BattleImageCompositor(tmp_path, http_client=client)
    url = compositor("https://img.test/a.png", "https://img.test/b.png")
    assert url.startswith("/uploads/battle-") and url.endswith(".png")
    saved = tmp_path / url.removeprefix("/uploads/")
    assert saved.exists()
    with Image.open(saved) as img:
        assert img.format == "PNG"


def test_compositor_raises_on_download_failure(tmp_path):
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    compositor = BattleImageCompositor(tmp_path, http_client=client)
    with pytest.raises(ImageCompositeError):
        compositor("https://img.test/a.png", "https://img.test/b.png")


def test_cleanup_old_images(tmp_path):
    now = time.time()
    old = tmp_path / "battle-old.png"
    old.write_bytes(b"x" * 100)
    os.utime(old, (now - 8 * 86400, now - 8 * 86400))
    fresh = tmp_path / "battle-new.png"
    fresh.write_bytes(b"y" * 10)
    hidden = tmp_path / ".gitkeep"
    hidden.write_bytes(b"")
    os.utime(hidden, (now - 30 * 86400, now - 30 * 86400))

    result = cleanup_old_images(tmp_path, max_age_days=7, now=now)
    assert result["deleted"] == 1
    assert result["bytes_freed"] == 100
    assert result["errors"] == []
    assert not old.exists()
    assert fresh.exists() and hidden.exists()


def test_cleanup_missing_directory(tmp_path):
    result = cleanup_old_images(tmp_path / "nope")
    assert result == {"deleted": 0, "bytes_freed": 0, "errors": []}


def test_oversized_image_is_composite_error(tmp_path, monkeypatch):
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=_png((1, 2, 3)))))
    compositor = BattleImageCompositor(tmp_path, http_client=client)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(ImageCompositeError):
        compositor("https://img.test/a.png", "https://img.test/b.png")
    assert list(tmp_path.iterdir()) == []


def test_splice_failure_is_composite_error(tmp_path, monkeypatch):
    from automarkets.engine import images

    def broken(left, right):
        raise ValueError("images do not match")

    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=_png((1, 2, 3)))))
    monkeypatch.setattr(images, "splice_halves", broken)
    with pytest.raises(ImageCompositeError):
        BattleImageCompositor(tmp_path, http_client=client)("https://img.test/a.png", "https://img.test/b.png")


def test_discard_removes_composite(tmp_path):
    saved = tmp_path / "battle-1-x.png"
    saved.write_bytes(_png((0, 0, 0)))
    compositor = BattleImageCompositor(tmp_path, http_client=httpx.Client())
    compositor.discard("/uploads/battle-1-x.png")
    assert not saved.exists()
    # Remote URLs and missing files are ignored
    compositor.discard("https://img.test/a.png")
    compositor.discard("/uploads/battle-1-x.png")
