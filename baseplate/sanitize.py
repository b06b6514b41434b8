"""HTML sanitizing for user-authored notification and article bodies."""
from __future__ import annotations

import nh3

_COMMON_ATTRIBUTES = {
    "*": {"class"},
    "a": {"href", "target"},
    "span": {"style"},
    "div": {"style"},
}

NOTIFICATION_TAGS = {
    "p", "br", "strong", "em", "u", "ol", "ul", "li",
    "h1", "h2", "h3", "h4", "a", "span", "div",
}

EDITOR_TAGS = NOTIFICATION_TAGS | {
    "h5", "h6", "blockquote", "code", "pre", "img", "hr", "s",
    "table", "thead", "tbody", "tr", "th", "td",
}

_EDITOR_ATTRIBUTES = {
    **_COMMON_ATTRIBUTES,
    "img": {"src", "alt", "title", "width", "height"},
    "td": {"colspan", "rowspan"},
    "th": {"colspan", "rowspan"},
}


def _inline_images_only(element: str, attribute: str, value: str) -> str | None:
    """``data:`` URLs survive only as ``img`` sources holding an image."""
    lowered = value.strip().lower()
    if lowered.startswith("data:") and not (
        element == "img" and attribute == "src" and lowered.startswith("data:image/")
    ):
        return None
    return value


def sanitize_notification_html(value: str) -> str:
    """Strict policy for notification messages."""
    return nh3.clean(
        value,
        tags=NOTIFICATION_TAGS,
        attributes=_COMMON_ATTRIBUTES,
        url_schemes={"http", "https", "mailto"},
        link_rel="noopener noreferrer",
    )


def sanitize_editor_html(value: str) -> str:
    """Rich-text policy for template and article bodies."""
    return nh3.clean(
        value,
        tags=EDITOR_TAGS,
        attributes=_EDITOR_ATTRIBUTES,
        url_schemes={"http", "https", "mailto", "data"},
        attribute_filter=_inline_images_only,
        link_rel="noopener noreferrer",
    )
