"""Small text normalization helpers used by validation and search."""
from __future__ import annotations

import re
from urllib.parse import urlparse


def normalize_whitespace(text: str) -> str:
    """Normalize whitespace: collapse multiple spaces, remove leading/trailing."""
    text = re.sub(r'\s+', ' ', text)
    return text.strip()


def like_pattern(term: str) -> str:
    """Wrap a search term for a case-insensitive contains match.

    LIKE wildcards in the term are escaped, use with ``escape="\\\\"``.
    """
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut."""
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 3)] + "..."


def is_http_url(value: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
