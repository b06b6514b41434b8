"""Screenshot rendering through the capture function.

The function renders a page in a remote browser and returns a base64 PNG,
optionally with the page source. Pillow reads the image back so the stored
dimensions are the real ones, not the requested viewport.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Any

from PIL import Image, UnidentifiedImageError

from baseplate.config import settings

from .client import FunctionsClient

logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised when a render fails or returns an unusable screenshot."""
    pass


@dataclass
class Viewport:
    width: int = settings.capture.default_viewport_width
    height: int = settings.capture.default_viewport_height
    device_pixel_ratio: float = settings.capture.default_device_pixel_ratio
    user_agent: str | None = None
    is_mobile: bool = False


@dataclass
class RenderedPage:
    """Decoded render result."""
    png: bytes
    width: int
    height: int
    title: str | None = None
    final_url: str | None = None
    html: str | None = None
    css: str | None = None
    # Document size reported by the browser, before any scaling
    page_width: int | None = None
    page_height: int | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.png)

    def describe(self) -> dict:
        """Renderer facts worth keeping next to the stored screenshot."""
        facts = {"finalUrl": self.final_url, "width": self.page_width, "height": self.page_height}
        return {k: v for k, v in facts.items() if v is not None}


def measure_png(png: bytes) -> tuple[int, int]:
    """Return ``(width, height)`` of an encoded image.

    Raises:
        CaptureError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(png)) as image:
            return image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise CaptureError(f"Screenshot is not a valid image: {e}") from e


def decode_screenshot(data: Any) -> bytes:
    """Decode a base64 screenshot, tolerating a ``data:`` URL prefix."""
    if not isinstance(data, str):
        raise CaptureError(f"Screenshot must be a base64 string, got {type(data).__name__}")
    if data.startswith("data:"):
        data = data.split(",", 1)[-1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CaptureError(f"Screenshot is not valid base64: {e}") from e


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _dimension(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)
async def render_page(
    client: FunctionsClient,
    *,
    url: str,
    viewport: Viewport,
    full_page: bool = False,
    include_source: bool = False,
    block_tracking: bool = False,
) -> RenderedPage:
    """Render ``url`` and return the decoded screenshot with its metadata.

    Args:
        client: Functions client used for the call
        url: Page to render
        viewport: Viewport and emulation settings
        full_page: Capture the whole scrollable page instead of the viewport
        include_source: Also return HTML and collected CSS
        block_tracking: Ask the renderer to block analytics and ad requests

    Returns:
        RenderedPage

    Raises:
        CaptureError: If the function response has no usable screenshot
        FunctionInvocationError: If the call itself fails
    """
    payload = {
        "url": url,
        "viewport": {
            "width": viewport.width,
            "height": viewport.height,
            "deviceScaleFactor": viewport.device_pixel_ratio,
            "isMobile": viewport.is_mobile,
        },
        "userAgent": viewport.user_agent,
        "fullPage": full_page,
        "includeSource": include_source,
        "blockTracking": block_tracking,
    }
    logger.info(f"Rendering {url} at {viewport.width}x{viewport.height} (dpr {viewport.device_pixel_ratio})")
    body = await client.invoke(settings.functions.capture_function, payload)

    if not isinstance(body, dict) or not body.get("screenshot"):
        raise CaptureError("Capture function returned no screenshot")

    png = decode_screenshot(body["screenshot"])
    width, height = measure_png(png)

    return RenderedPage(
        png=png,
        width=width,
        height=height,
        title=_text(body.get("title")),
        final_url=_text(body.get("finalUrl")),
        html=_text(body.get("html")) if include_source else None,
        css=_text(body.get("css")) if include_source else None,
        page_width=_dimension(body.get("width")),
        page_height=_dimension(body.get("height")),
    )
