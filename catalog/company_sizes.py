"""Company size options and the helpers that turn them into employee ranges."""
from __future__ import annotations

import re

COMPANY_SIZE_OPTIONS = [
    "1-10 employees",
    "11-50 employees",
    "51-200 employees",
    "201-500 employees",
    "501-1000 employees",
    "1001-5000 employees",
    "5001-10,000 employees",
    "10,001+ employees",
]

_NUMBER = r"\d+(?:,\d{3})*"
_RANGE_RE = re.compile(rf"^({_NUMBER})\s*-\s*({_NUMBER})$")
_PLUS_RE = re.compile(rf"^({_NUMBER})\+$")
_SINGLE_RE = re.compile(rf"^({_NUMBER})$")


def _to_int(value: str) -> int:
    return int(value.replace(",", ""))


def parse_company_size_range(value: str) -> tuple[int, int | None]:
    """Parse ``"1-10 employees"`` / ``"10,001+ employees"`` into ``(min, max)``.

    ``max`` is None when the range is open-ended; unparseable input yields ``(0, None)``.
    """
    cleaned = re.sub(r"employees", "", value, flags=re.IGNORECASE).strip()

    match = _RANGE_RE.match(cleaned)
    if match:
        return _to_int(match.group(1)), _to_int(match.group(2))

    match = _PLUS_RE.match(cleaned)
    if match:
        return _to_int(match.group(1)), None

    match = _SINGLE_RE.match(cleaned)
    if match:
        number = _to_int(match.group(1))
        return number, number

    return 0, None


def format_employees_from_selections(selections: list[str]) -> str:
    """Collapse selected size options into one range label.

    ``["1-10 employees", "11-50 employees"]`` becomes ``"1-50 employees"``; any
    open-ended selection makes the result ``"<min>+ employees"``.
    """
    if not selections:
        return ""
    if len(selections) == 1:
        return selections[0]

    ranges = [parse_company_size_range(s) for s in selections if s in COMPANY_SIZE_OPTIONS]
    mins = [low for low, _ in ranges if low > 0]
    if not mins:
        return ""

    low = min(mins)
    if any(high is None for _, high in ranges):
        return f"{low:,}+ employees"
    high = max(h for _, h in ranges if h is not None)
    return f"{low:,}-{high:,} employees"
