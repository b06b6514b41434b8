"""Palette extraction through the colour function."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from baseplate.config import settings

from .client import FunctionsClient

logger = logging.getLogger(__name__)

USAGE_OPTIONS = ("primary", "secondary", "foreground", "background", "accent")


class PaletteError(Exception):
    """Raised when the colour function returns no usable colours."""
    pass


@dataclass
class PaletteColor:
    hex: str
    name: str
    usage_option: str
    sort_order: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PaletteResult:
    colors: list[PaletteColor]
    warnings: list[str]
    dropped: int = 0


def _valid_entry(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    hex_value = item.get("hex")
    sort_order = item.get("sort_order")
    return (
        isinstance(hex_value, str)
        and hex_value.startswith("#")
        and isinstance(item.get("name"), str)
        and bool(item["name"].strip())
        and item.get("usage_option") in USAGE_OPTIONS
        and isinstance(sort_order, (int, float))
        and not isinstance(sort_order, bool)
    )


def validate_palette(body: Any) -> PaletteResult:
    """Keep the well-formed colours of a colour function response.

    The function answers with an object or a one-element list wrapping it; the
    colours live under ``palette_colors``.

    Raises:
        PaletteError: When no valid colour remains
    """
    if isinstance(body, list):
        body = body[0] if body else {}
    raw = body.get("palette_colors") if isinstance(body, dict) else None
    if not isinstance(raw, list):
        raise PaletteError("Colour extraction returned no palette_colors")

    colors = [
        PaletteColor(
            hex=item["hex"],
            name=item["name"].strip(),
            usage_option=item["usage_option"],
            sort_order=int(item["sort_order"]),
        )
        for item in raw
        if _valid_entry(item)
    ]
    dropped = len(raw) - len(colors)
    if dropped:
        logger.warning(f"Dropped {dropped} malformed palette entries")
    if not colors:
        raise PaletteError("Colour extraction returned no valid colours")

    warnings = []
    if len(colors) < settings.capture.min_palette_colors:
        warnings.append(f"Only {len(colors)} colours extracted, expected at least {settings.capture.min_palette_colors}")
    usages = {c.usage_option for c in colors}
    for required in ("foreground", "background"):
        if required not in usages:
            warnings.append(f"No {required} colour identified")
    for warning in warnings:
        logger.warning(warning)

    colors.sort(key=lambda c: c.sort_order)
    return PaletteResult(colors=colors, warnings=warnings, dropped=dropped)


async def extract_palette(
    client: FunctionsClient,
    *,
    starting_url: str,
    visual_style_guide_id: str | None = None,
) -> PaletteResult:
    """Ask the colour function for the palette of ``starting_url``."""
    body = await client.invoke(
        settings.functions.colors_function,
        {"visual_style_guide_id": visual_style_guide_id, "starting_url": starting_url},
    )
    return validate_palette(body)
