"""Fetching and fitting of photos, logos and background images."""

import base64
import binascii
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from typing import Dict, Iterable, Optional

import requests
from PIL import Image, UnidentifiedImageError

from idcard_studio import config
from idcard_studio.errors import ResourceUnavailable
from idcard_studio.utils.image_utils import cover_crop_box

logger = logging.getLogger(__name__)

Image.MAX_IMAGE_PIXELS = config.MAX_IMAGE_PIXELS

# Placeholder look, shared by every renderer
PLACEHOLDER_FILL = "#e5e7eb"
PLACEHOLDER_BORDER = "#9ca3af"
PLACEHOLDER_TEXT = "#6b7280"
PLACEHOLDER_FONT_SIZE = 2.0  # mm


class ImageFetcher:
    """Loads images from http(s) URLs, data: URIs or local paths.

    ``fetch`` raises ResourceUnavailable; ``fetch_many`` never raises and
    maps failed sources to None. Results are memoised per fetcher, so use a
    fresh fetcher for each batch.
    """

    def __init__(self, timeout: float = None, max_workers: int = None,
                 session: Optional[requests.Session] = None):
        self.timeout = config.FETCH_TIMEOUT if timeout is None else timeout
        self.max_workers = max_workers or config.FETCH_WORKERS
        self.session = session or requests.Session()
        self._cache: Dict[str, Optional[Image.Image]] = {}

    def _read_bytes(self, source: str) -> bytes:
        if source.startswith(("http://", "https://")):
            try:
                resp = self.session.get(source, timeout=self.timeout)
                resp.raise_for_status()
            except requests.RequestException as e:
                raise ResourceUnavailable(source, str(e)) from e
            return resp.content

        if source.startswith("data:"):
            _, _, payload = source.partition(",")
            try:
                return base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ResourceUnavailable(source[:40], "invalid data URI") from e

        path = source[len("file://"):] if source.startswith("file://") else source
        if not os.path.isfile(path):
            raise ResourceUnavailable(source, "file not found")
        with open(path, "rb") as f:
            return f.read()

    def fetch(self, source: str) -> Image.Image:
        """Decode an image as RGBA."""
        if not source:
            raise ResourceUnavailable(repr(source), "empty source")
        data = self._read_bytes(source)
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            raise ResourceUnavailable(source, f"invalid image data: {e}") from e
        return img.convert("RGBA")

    def get(self, source: str) -> Optional[Image.Image]:
        """Memoised fetch; a failure is logged and cached as None."""
        if source in self._cache:
            return self._cache[source]
        try:
            img = self.fetch(source)
        except ResourceUnavailable as e:
            logger.warning("Image unavailable, using placeholder: %s", e)
            img = None
        self._cache[source] = img
        return img

    def fetch_many(self, sources: Iterable[str]) -> Dict[str, Optional[Image.Image]]:
        """Fetch distinct sources concurrently; completion order is irrelevant."""
        sources = list(dict.fromkeys(s for s in sources if s))
        pending = [s for s in sources if s not in self._cache]
        if len(pending) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                list(pool.map(self.get, pending))
        else:
            for source in pending:
                self.get(source)
        return {s: self._cache.get(s) for s in sources}


def cover_fit(img: Image.Image, width_px: int, height_px: int) -> Image.Image:
    """Scale and crop so the image fills the box without distortion."""
    width_px, height_px = max(1, int(width_px)), max(1, int(height_px))
    crop = cover_crop_box(img.width, img.height, width_px, height_px)
    return img.crop(crop).resize((width_px, height_px), Image.LANCZOS)
