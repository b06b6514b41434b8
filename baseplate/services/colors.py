"""Brand colour extraction for a web page."""
from __future__ import annotations

import logging

from edge.client import FunctionInvocationError, FunctionsClient
from edge.colors import PaletteError, PaletteResult, extract_palette

from ..errors import UpstreamError, ValidationError
from ..text import is_http_url

logger = logging.getLogger(__name__)


async def extract_colors(
    client: FunctionsClient,
    *,
    starting_url: str,
    visual_style_guide_id: str | None = None,
) -> PaletteResult:
    """Extract and validate the palette of ``starting_url``.

    Raises:
        ValidationError: If the URL is not http(s)
        UpstreamError: If the colour function fails or returns no valid colours
    """
    if not is_http_url(starting_url or ""):
        raise ValidationError("starting_url must be an http(s) URL")
    try:
        result = await extract_palette(
            client,
            starting_url=starting_url.strip(),
            visual_style_guide_id=visual_style_guide_id,
        )
    except (PaletteError, FunctionInvocationError) as e:
        logger.error(f"Colour extraction for {starting_url} failed: {e}")
        raise UpstreamError(f"Colour extraction failed: {e}") from e
    logger.info(f"Extracted {len(result.colors)} colours from {starting_url}")
    return result
