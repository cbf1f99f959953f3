"""Market images: battle composites with ordered fallback, and old-upload cleanup."""

from __future__ import annotations

import time
import uuid
from io import BytesIO
from pathlib import Path
from typing import Any, Callable

import httpx
import structlog
from PIL import Image, UnidentifiedImageError

from automarkets.errors import ImageCompositeError

log = structlog.get_logger(__name__)

UPLOADS_URL_PREFIX = "/uploads/"

Compositor = Callable[[str, str], str]


def resolve_battle_image(
    image1: str | None,
    image2: str | None,
    composite: Compositor | None = None,
) -> str | None:
    """Composite of both images, else token 1's image, else token 2's, else None."""
    if image1 and image2 and composite is not None:
        try:
            return composite(image1, image2)
        except ImageCompositeError as e:
            log.warning("battle_image_fallback", error=str(e))
    return image1 or image2 or None


def splice_halves(left_source: Image.Image, right_source: Image.Image) -> Image.Image:
    """Left half of one image beside the right half of another, centre-cropped square."""
    height = max(left_source.height, right_source.height)
    left = _resize_to_height(left_source.convert("RGBA"), height)
    right = _resize_to_height(right_source.convert("RGBA"), height)

    left_w = left.width // 2
    right_w = right.width - right.width // 2
    combined = Image.new("RGBA", (left_w + right_w, height), (0, 0, 0, 0))
    combined.paste(left.crop((0, 0, left_w, height)), (0, 0))
    combined.paste(right.crop((right.width // 2, 0, right.width, height)), (left_w, 0))

    size = min(combined.width, height)
    if combined.width != height:
        x0 = (combined.width - size) // 2
        y0 = (height - size) // 2
        combined = combined.crop((x0, y0, x0 + size, y0 + size))
    return combined


def _resize_to_height(img: Image.Image, height: int) -> Image.Image:
    if img.height == height:
        return img
    width = max(1, round(img.width * height / img.height))
    return img.resize((width, height), Image.Resampling.LANCZOS)


class BattleImageCompositor:
    """Downloads two token images and writes the spliced PNG under uploads_dir."""

    def __init__(self, uploads_dir: str | Path, http_client: httpx.Client | None = None, timeout: float = 15.0) -> None:
        self.uploads_dir = Path(uploads_dir)
        self._client = http_client or httpx.Client(timeout=timeout, follow_redirects=True)

    def _load(self, source: str) -> Image.Image:
        try:
            if source.startswith(UPLOADS_URL_PREFIX):
                data = (self.uploads_dir / source[len(UPLOADS_URL_PREFIX):]).read_bytes()
            elif source.startswith(("http://", "https://")):
                resp = self._client.get(source)
                resp.raise_for_status()
                data = resp.content
            else:
                data = Path(source).read_bytes()
            img = Image.open(BytesIO(data))
            img.load()
            return img
        except (httpx.HTTPError, OSError, UnidentifiedImageError, Image.DecompressionBombError, ValueError) as e:
            raise ImageCompositeError(f"could not load image {source}: {e}") from e

    def __call__(self, image1: str, image2: str) -> str:
        first, second = self._load(image1), self._load(image2)
        try:
            spliced = splice_halves(first, second)
        except (OSError, ValueError) as e:
            raise ImageCompositeError(f"could not splice {image1} and {image2}: {e}") from e
        filename = f"battle-{int(time.time() * 1000)}-{uuid.uuid4()}.png"
        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            spliced.save(self.uploads_dir / filename, format="PNG")
        except OSError as e:
            raise ImageCompositeError(f"could not save {filename}: {e}") from e
        log.info("battle_image_created", filename=filename)
        return f"{UPLOADS_URL_PREFIX}{filename}"

    def discard(self, url: str) -> None:
        """Delete a composite this compositor wrote, when its market was never saved."""
        if not url.startswith(UPLOADS_URL_PREFIX):
            return
        path = self.uploads_dir / url[len(UPLOADS_URL_PREFIX):]
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            log.warning("battle_image_discard_failed", filename=path.name, error=str(e))
            return
        log.info("battle_image_discarded", filename=path.name)

    def close(self) -> None:
        self._client.close()


def cleanup_old_images(uploads_dir: str | Path, max_age_days: int = 7, now: float | None = None) -> dict[str, Any]:
    """Delete non-hidden files older than max_age_days. Per-file failures are collected, not raised."""
    directory = Path(uploads_dir)
    result: dict[str, Any] = {"deleted": 0, "bytes_freed": 0, "errors": []}
    if not directory.exists():
        return result
    cutoff = (now if now is not None else time.time()) - max_age_days * 86400
    for path in directory.iterdir():
        if path.name.startswith("."):
            continue
        try:
            stat = path.stat()
            if path.is_dir() or stat.st_mtime >= cutoff:
                continue
            path.unlink()
        except OSError as e:
            result["errors"].append(f"{path.name}: {e}")
            continue
        result["deleted"] += 1
        result["bytes_freed"] += stat.st_size
    log.info("image_cleanup_done", deleted=result["deleted"], bytes_freed=result["bytes_freed"])
    return result
