"""
Image loading for background photos and logos.

Sources can be raw bytes, a pathlib.Path, an already-decoded PIL image, an
http(s) URL or a data URL (as returned by the AI background endpoint).
Plain strings are only ever treated as URLs, never as file paths.
Whatever the origin, the result is a decoded PIL image or None: loading
never raises, a failed decode just leaves that layer empty.
"""

import base64
import io
import logging
from pathlib import Path
from typing import Optional, Union

import httpx
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, str, Path, Image.Image]

URL_PREFIXES = ("http://", "https://", "data:")


def is_supported_url(text: str) -> bool:
    return text.startswith(URL_PREFIXES)


def describe_source(source: ImageSource) -> str:
    """Short description for logs."""
    if isinstance(source, Image.Image):
        return f"<image {source.width}x{source.height}>"
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    text = str(source)
    return text if len(text) <= 80 else text[:77] + "..."


def _upright(img: Image.Image) -> Image.Image:
    # Camera photos carry their rotation in EXIF; browsers honour it
    img.load()
    return ImageOps.exif_transpose(img)


def _decode(data: bytes) -> Image.Image:
    return _upright(Image.open(io.BytesIO(data)))


def _decode_data_url(url: str) -> Image.Image:
    header, _, payload = url.partition(",")
    if ";base64" in header:
        return _decode(base64.b64decode(payload))
    raise ValueError("Only base64 data URLs are supported")


class ImageLoader:
    """Loads images from any supported source."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        self._client = client
        self.timeout = timeout

    async def _fetch(self, url: str) -> bytes:
        if self._client is not None:
            response = await self._client.get(url, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
        return response.content

    async def load(self, source: Optional[ImageSource]) -> Optional[Image.Image]:
        """
        Decode a source into a PIL image.

        Returns:
            The image, or None if the source is empty or fails to load
        """
        if source is None or (isinstance(source, (str, bytes)) and not source):
            return None

        try:
            if isinstance(source, Image.Image):
                return source
            if isinstance(source, bytes):
                return _decode(source)
            if isinstance(source, Path):
                return _upright(Image.open(source))

            if source.startswith("data:"):
                return _decode_data_url(source)
            if source.startswith(("http://", "https://")):
                return _decode(await self._fetch(source))

            raise ValueError("Unsupported image URL scheme")

        except Exception as e:
            logger.warning(f"Failed to load image {describe_source(source)}: {e}")
            return None
