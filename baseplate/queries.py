"""Query fragments shared by the services."""
from __future__ import annotations

from sqlalchemy import ColumnElement, String, cast, or_
from sqlalchemy.orm import InstrumentedAttribute

from .text import like_pattern


def json_array_contains(column: InstrumentedAttribute, value: str) -> ColumnElement[bool]:
    """Match rows whose JSON string array holds ``value``."""
    return cast(column, String).like(f'%"{value}"%')


def json_array_overlaps(column: InstrumentedAttribute, values: list[str]) -> ColumnElement[bool]:
    return or_(*(json_array_contains(column, v) for v in values))


def search_clause(term: str, *columns: InstrumentedAttribute) -> ColumnElement[bool]:
    """Case-insensitive contains match over any of ``columns``."""
    pattern = like_pattern(term.strip())
    return or_(*(c.ilike(pattern, escape="\\") for c in columns))
