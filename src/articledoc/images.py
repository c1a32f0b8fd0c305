"""
Image Loader - fetch and decode images for embedding.

Accepts data URIs and http(s) URLs (relative ones resolved against a base
URL). Local file paths and file:// URLs are read only when the loader is
created with ``allow_local=True``.
"""

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote_to_bytes, urljoin, urlparse

import httpx
from PIL import Image

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ImageLoadError(Exception):
    """An image source could not be fetched or decoded."""


def normalize_url(src: str, base_url: str = "") -> str:
    src = str(src or "").strip()
    if not src or src.startswith("data:"):
        return src
    try:
        return urljoin(base_url, src) if base_url else src
    except ValueError:
        return src


def decode_data_uri(uri: str) -> bytes:
    header, _, payload = uri.partition(",")
    if not payload:
        raise ImageLoadError("Empty data URI")
    try:
        if header.endswith(";base64"):
            return base64.b64decode(payload)
        return unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError(f"Malformed data URI: {e}") from e


class ImageLoader:
    """Load images into RGB/RGBA PIL images."""

    def __init__(self, base_url: str = "", timeout: float = 30.0, allow_local: bool = False):
        self.base_url = base_url
        self.timeout = timeout
        self.allow_local = allow_local
        self._client: Optional[httpx.Client] = None

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "image/avif,image/webp,image/png,image/*,*/*;q=0.8",
                },
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def fetch(self, src: str) -> bytes:
        if not src:
            raise ImageLoadError("Missing image source")
        if src.startswith("data:"):
            return decode_data_uri(src)

        url = normalize_url(src, self.base_url)
        scheme = urlparse(url).scheme
        if scheme in ("http", "https"):
            try:
                response = self.client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ImageLoadError(f"Could not fetch {url}: {e}") from e
            return response.content

        if not self.allow_local:
            raise ImageLoadError(f"Local image sources are disabled: {url[:80]}")
        path = Path(unquote_to_bytes(urlparse(url).path).decode() if scheme == "file" else url)
        try:
            return path.read_bytes()
        except OSError as e:
            raise ImageLoadError(f"Could not read {path}: {e}") from e

    def load(self, src: str) -> Image.Image:
        data = self.fetch(src)
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (OSError, Image.DecompressionBombError) as e:
            raise ImageLoadError(f"Could not decode image {src[:80]}: {e}") from e

        # Keep transparency; flatten palette and exotic modes
        if img.mode in ("P", "LA"):
            img = img.convert("RGBA")
        elif img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGB")
        return img
