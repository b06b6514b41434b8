"""Company search through the organisation search function.

The function accepts search clauses (see ``baseplate.services.segment_filters``)
and returns matching organisations with a total count.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from baseplate.config import settings

from .client import FunctionInvocationError, FunctionsClient

logger = logging.getLogger(__name__)


@dataclass
class FoundCompany:
    """Normalized organisation record."""
    domain: str
    name: str
    external_id: str | None = None
    industry: str | None = None
    country: str | None = None
    city: str | None = None
    employee_count: int | None = None
    description: str | None = None
    linkedin_url: str | None = None
    raw: dict = field(default_factory=dict)


@dataclass
class CompanySearchResult:
    companies: list[FoundCompany]
    total_count: int


def normalize_domain(uri: str | None) -> str | None:
    """``https://www.Example.com/about`` -> ``example.com``."""
    if not uri:
        return None
    candidate = uri.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    host = urlparse(candidate).hostname
    if not host:
        return None
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _name_of(value: Any) -> str | None:
    """Location and category parts come as ``{"name": ...}`` objects or bare strings."""
    if isinstance(value, dict):
        value = value.get("name")
    return _text(value)


def _to_company(entity: dict[str, Any]) -> FoundCompany | None:
    uri = entity.get("homepageUri") or entity.get("domain")
    domain = normalize_domain(uri) if isinstance(uri, str) else None
    name = entity.get("name")
    if not domain or not isinstance(name, str) or not name:
        return None

    location = entity.get("location")
    if not isinstance(location, dict):
        location = {}
    categories = entity.get("categories")
    if not isinstance(categories, list):
        categories = []
    employees = entity.get("nbEmployees")

    return FoundCompany(
        domain=domain,
        name=name,
        external_id=str(entity["id"]) if entity.get("id") is not None else None,
        industry=_name_of(categories[0]) if categories else None,
        country=_name_of(location.get("country")),
        city=_name_of(location.get("city")),
        employee_count=int(employees) if isinstance(employees, (int, float)) else None,
        description=_text(entity.get("description")),
        linkedin_url=_text(entity.get("linkedInUri")),
        raw=entity,
    )


def _total_count(value: Any, default: int) -> int:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric totalCount {value!r}")
        return default


async def search_companies(
    client: FunctionsClient,
    query: list[str],
    *,
    size: int | None = None,
    offset: int = 0,
) -> CompanySearchResult:
    """Run a company search and keep the results that carry a name and a domain."""
    name = settings.functions.company_search_function
    size = size or settings.segments.max_companies
    body = await client.invoke(name, {"query": query, "size": size, "from": offset})
    if body is None:
        body = {}
    if not isinstance(body, dict):
        raise FunctionInvocationError(name, "Unexpected response shape")
    entities = body.get("data") or []
    if not isinstance(entities, list):
        raise FunctionInvocationError(name, "Unexpected response shape")

    companies = []
    skipped = 0
    for entity in entities[:size]:
        company = _to_company(entity) if isinstance(entity, dict) else None
        if company is None:
            skipped += 1
            continue
        companies.append(company)
    if skipped:
        logger.info(f"Skipped {skipped} search results without a name or domain")

    return CompanySearchResult(companies=companies, total_count=_total_count(body.get("totalCount"), len(companies)))
