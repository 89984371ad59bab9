"""
Image processing utilities for ReviewWeb.

Screenshots are resized and recompressed before they are sent to vision
models, which reject oversized payloads.
"""

import base64
import io
import logging
import re

import httpx
from PIL import Image

from scraping.errors import ScrapeError

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)


def resize_screenshot_if_needed(
    screenshot_bytes: bytes, max_dimension: int = 7500, max_file_size: int = 5_242_880
) -> str:
    """
    Resize and compress a screenshot to fit vision model limits.

    Uses JPEG compression with quality reduction until under max_file_size.

    Args:
        screenshot_bytes: Original screenshot bytes
        max_dimension: Maximum width/height in pixels (default 7500)
        max_file_size: Maximum file size in bytes (default 5MB)

    Returns:
        Base64-encoded JPEG
    """
    image = Image.open(io.BytesIO(screenshot_bytes))
    width, height = image.size

    if width > max_dimension or height > max_dimension:
        if width > height:
            new_size = (max_dimension, int(height * (max_dimension / width)))
        else:
            new_size = (int(width * (max_dimension / height)), max_dimension)
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    # JPEG has no alpha channel
    if image.mode == "RGBA":
        flattened = Image.new("RGB", image.size, (255, 255, 255))
        flattened.paste(image, mask=image.split()[3])
        image = flattened
    elif image.mode != "RGB":
        image = image.convert("RGB")

    quality = 95
    buffer = io.BytesIO()
    while quality > 20:
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=quality, optimize=True)
        if buffer.tell() <= max_file_size:
            break
        quality -= 10

    scale = 0.8
    while buffer.tell() > max_file_size and scale > 0.3:
        resized = image.resize(
            (int(image.width * scale), int(image.height * scale)), Image.Resampling.LANCZOS
        )
        buffer = io.BytesIO()
        resized.save(buffer, format="JPEG", quality=75, optimize=True)
        scale -= 0.1

    logger.debug(f"🖼️  Screenshot compressed to {buffer.tell()} bytes (quality {quality})")
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


async def image_url_to_base64(
    client: httpx.AsyncClient, url: str, timeout: float = 30.0
) -> str:
    """
    Base64 payload of an image given as a ``data:`` URL or an http(s) URL.

    Raises:
        ScrapeError: If the image cannot be downloaded or the URL is unsupported
    """
    match = DATA_URL_PATTERN.match(url)
    if match:
        return match.group("data")

    if not url.startswith(("http://", "https://")):
        raise ScrapeError(f"Unsupported image URL: {url[:100]}")

    try:
        response = await client.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ScrapeError(f"Failed to download image {url}: {str(e)}") from e

    return base64.b64encode(response.content).decode("utf-8")
