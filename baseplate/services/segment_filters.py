"""Segment filters and their translation into company search clauses.

Clauses use the organisation search query language: one clause per
constraint, all clauses ANDed by the search function.
"""
from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from catalog.company_sizes import format_employees_from_selections


class SegmentFilters(BaseModel):
    """Filters stored on a segment."""
    country: str | None = None
    location: str | None = None
    categories: list[str] = Field(default_factory=list)
    employees: str | None = None
    technographics: list[str] = Field(default_factory=list)
    personas: list[str] = Field(default_factory=list)

    @field_validator("employees", mode="before")
    @classmethod
    def collapse_size_selections(cls, v):
        # Multi-select clients send size options; store the range they span
        if isinstance(v, list):
            return format_employees_from_selections([item for item in v if isinstance(item, str)]) or None
        return v

    @field_validator("categories", "technographics", "personas", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return v or []


def _quoted(value: str) -> str:
    return f'"{value.strip()}"'


def _parse_int(value: str) -> int | None:
    digits = value.replace(",", "").strip()
    return int(digits) if digits.isdigit() else None


def employee_clauses(employees: str | None) -> list[str]:
    """``"1000-5000"`` -> range clause, ``"10,001+"`` or ``"500"`` -> minimum clause."""
    if not employees or not employees.strip():
        return []
    value = re.sub(r"\s+employees?$", "", employees.strip(), flags=re.IGNORECASE)

    if "-" in value:
        parts = value.split("-")
        if len(parts) != 2:
            return []
        low, high = _parse_int(parts[0]), _parse_int(parts[1])
        if low is None or high is None:
            return []
        return [f"nbEmployees>={low} nbEmployees<={high}"]

    minimum = _parse_int(value.rstrip("+"))
    return [f"nbEmployees>={minimum}"] if minimum is not None else []


def build_company_query(filters: SegmentFilters) -> list[str]:
    """Render ``filters`` as company search clauses.

    Categories become one clause each (all must match); technographics become a
    single ``or(...)`` clause (any may match). Personas do not narrow the
    company search.
    """
    clauses: list[str] = []

    if filters.country and filters.country.strip():
        clauses.append(f"location.country.name:{_quoted(filters.country)}")

    if filters.location and filters.location.strip():
        clauses.append(f"location.city.name:{_quoted(filters.location)}")

    for category in filters.categories:
        if category and category.strip():
            clauses.append(f"categories.name:{_quoted(category)}")

    techs = [t for t in filters.technographics if t and t.strip()]
    if techs:
        clauses.append(f"technographics.technology.name:or({', '.join(_quoted(t) for t in techs)})")

    clauses.extend(employee_clauses(filters.employees))
    return clauses


def describe_active_filters(filters: SegmentFilters) -> str:
    """Message shown when a search finds nothing."""
    active = []
    if filters.country and filters.country.strip():
        active.append(f'Country: "{filters.country}"')
    if filters.location and filters.location.strip():
        active.append(f'Location: "{filters.location}"')
    if filters.employees and filters.employees.strip():
        active.append(f'Company Size: "{filters.employees}"')
    categories = [f'"{c}"' for c in filters.categories if c and c.strip()]
    if categories:
        active.append(f"Industry: {', '.join(categories)}")
    techs = [f'"{t}"' for t in filters.technographics if t and t.strip()]
    if techs:
        active.append(f"Technologies: {', '.join(techs)}")

    if not active:
        return "No matches found. Please select some filters to search for companies."
    return f"No matches found for: {', '.join(active)}. Try broadening your criteria."
