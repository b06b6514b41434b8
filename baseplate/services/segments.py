"""Company segments: creation, listing and background processing.

A segment is a ``lists`` row with ``list_type='segment'``. It is created with
status ``new``; processing moves it to ``processing`` and then ``completed``
or ``failed``. Clients poll the status at a fixed interval.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from edge.client import FunctionsClient
from edge.companies import FoundCompany, search_companies
from edge.realtime import RealtimeBroadcaster

from .. import models
from ..config import settings
from ..errors import ConflictError, NotFoundError, ServiceError, ValidationError
from ..pagination import Page, PageParams, paginate
from ..queries import search_clause
from ..text import normalize_whitespace, truncate
from .notifications import create_notification
from .segment_filters import SegmentFilters, build_company_query, describe_active_filters

logger = logging.getLogger(__name__)

SEGMENT = "segment"
NEW, PROCESSING, COMPLETED, FAILED = "new", "processing", "completed", "failed"
TERMINAL_STATUSES = frozenset({COMPLETED, FAILED})
DUPLICATE_NAME = "A segment with this title already exists. Please choose a different title."

SegmentTrigger = Callable[[str], object]


class SegmentProcessingError(Exception):
    """Raised when processing a segment fails."""
    pass


@dataclass
class SegmentWithCount:
    segment: models.List
    company_count: int


@dataclass
class ProcessResult:
    segment_id: str
    status: str
    companies_added: int
    total_available: int
    message: str


def validate_segment_name(name: str) -> str:
    cleaned = normalize_whitespace(name or "")
    low, high = settings.segments.name_min_length, settings.segments.name_max_length
    if len(cleaned) < low:
        raise ValidationError(f"Segment name must be at least {low} characters")
    if len(cleaned) > high:
        raise ValidationError(f"Segment name must be at most {high} characters")
    return cleaned


async def _ensure_unique_name(
    session: AsyncSession,
    *,
    customer_id: str,
    name: str,
    exclude_id: str | None = None,
) -> None:
    stmt = select(models.List.id).where(
        models.List.customer_id == customer_id,
        models.List.list_type == SEGMENT,
        models.List.deleted_at.is_(None),
        func.lower(models.List.name) == name.lower(),
    )
    if exclude_id:
        stmt = stmt.where(models.List.id != exclude_id)
    if (await session.execute(stmt.limit(1))).first() is not None:
        raise ConflictError(DUPLICATE_NAME)


async def _notify(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    segment: models.List,
    *,
    title: str,
    message: str,
    extra: dict | None = None,
) -> None:
    """Best-effort notification to the segment owner."""
    if not segment.user_id:
        return
    try:
        await create_notification(
            session,
            broadcaster,
            user_id=segment.user_id,
            customer_id=segment.customer_id,
            title=title,
            message=message,
            channel="segment",
            type=["in_app"],
            metadata={"id": segment.id, "name": segment.name, "status": segment.status, **(extra or {})},
            generated_by="system (segment service)",
        )
    except (ServiceError, SQLAlchemyError) as e:
        logger.error(f"Failed to notify about segment {segment.id}: {e}")


async def create_segment(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    *,
    customer_id: str,
    user_id: str | None,
    name: str,
    filters: SegmentFilters,
    description: str | None = None,
    trigger: SegmentTrigger | None = None,
) -> models.List:
    """Create a segment and start processing it in the background.

    Args:
        session: Database session
        broadcaster: Realtime broadcaster for the creation notification
        customer_id: Owning customer
        user_id: Creating user, notified about progress
        name: Segment name, trimmed and unique per customer (case-insensitive)
        filters: Company filters
        description: Optional description
        trigger: Called with the new segment id to start processing

    Raises:
        ValidationError: Name too short or too long
        ConflictError: Name already used by another live segment
    """
    cleaned = validate_segment_name(name)
    await _ensure_unique_name(session, customer_id=customer_id, name=cleaned)

    segment = models.List(
        customer_id=customer_id,
        user_id=user_id,
        name=cleaned,
        description=description,
        list_type=SEGMENT,
        subtype="company",
        status=NEW,
        is_static=False,
        filters=filters.model_dump(),
    )
    session.add(segment)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to create segment {cleaned}: {e}", exc_info=True)
        await session.rollback()
        raise
    await session.refresh(segment)
    logger.info(f"Created segment {segment.id} ({cleaned}) for customer {customer_id}")

    await _notify(
        session,
        broadcaster,
        segment,
        title="Segment Created",
        message=f'Segment "{segment.name}" has been created and processing has started.',
    )

    if trigger is not None:
        trigger(segment.id)
    return segment


def _segments_of(customer_id: str):
    return select(models.List).where(
        models.List.customer_id == customer_id,
        models.List.list_type == SEGMENT,
        models.List.deleted_at.is_(None),
    )


async def company_counts(session: AsyncSession, list_ids: list[str]) -> dict[str, int]:
    if not list_ids:
        return {}
    stmt = (
        select(models.ListCompany.list_id, func.count(models.ListCompany.id))
        .where(models.ListCompany.list_id.in_(list_ids))
        .group_by(models.ListCompany.list_id)
    )
    counts = {list_id: 0 for list_id in list_ids}
    for list_id, count in (await session.execute(stmt)).all():
        counts[list_id] = count
    return counts


async def list_segments(
    session: AsyncSession,
    *,
    customer_id: str,
    params: PageParams,
    search: str | None = None,
) -> Page[SegmentWithCount]:
    """Segments of a customer, most recently updated first, with company counts."""
    stmt = _segments_of(customer_id)
    if search and search.strip():
        stmt = stmt.where(search_clause(search, models.List.name))
    stmt = stmt.order_by(models.List.updated_at.desc(), models.List.id)
    page = await paginate(session, stmt, params)

    counts = await company_counts(session, [s.id for s in page.data])
    return Page(
        data=[SegmentWithCount(segment=s, company_count=counts.get(s.id, 0)) for s in page.data],
        meta=page.meta,
    )


async def get_segment(session: AsyncSession, segment_id: str, *, customer_id: str) -> models.List:
    stmt = _segments_of(customer_id).where(models.List.id == segment_id)
    segment = (await session.execute(stmt)).scalar_one_or_none()
    if segment is None:
        raise NotFoundError("Segment not found")
    return segment


async def get_segment_status(session: AsyncSession, segment_id: str, *, customer_id: str) -> str:
    stmt = select(models.List.status).where(
        models.List.id == segment_id,
        models.List.customer_id == customer_id,
        models.List.deleted_at.is_(None),
    )
    status = (await session.execute(stmt)).scalar_one_or_none()
    if status is None:
        raise NotFoundError("Segment not found")
    return status


async def wait_for_segment(
    session_factory: async_sessionmaker[AsyncSession],
    segment_id: str,
    *,
    customer_id: str,
    interval: float | None = None,
    timeout: float | None = None,
) -> str:
    """Poll the segment status at a fixed interval until it is terminal or time runs out.

    Returns:
        The last observed status
    """
    interval = interval or settings.segments.poll_interval_seconds
    timeout = timeout or settings.segments.poll_timeout_seconds
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        async with session_factory() as session:
            status = await get_segment_status(session, segment_id, customer_id=customer_id)
        if status in TERMINAL_STATUSES:
            return status
        if loop.time() + interval > deadline:
            logger.warning(f"Stopped polling segment {segment_id} in status {status}")
            return status
        await asyncio.sleep(interval)


async def update_segment(
    session: AsyncSession,
    segment_id: str,
    *,
    customer_id: str,
    name: str | None = None,
    description: str | None = None,
    filters: SegmentFilters | None = None,
    trigger: SegmentTrigger | None = None,
) -> models.List:
    """Rename or re-filter a segment. New filters clear its companies and reprocess it."""
    segment = await get_segment(session, segment_id, customer_id=customer_id)

    if name is not None:
        cleaned = validate_segment_name(name)
        await _ensure_unique_name(session, customer_id=customer_id, name=cleaned, exclude_id=segment.id)
        segment.name = cleaned
    if description is not None:
        segment.description = description

    reprocess = filters is not None and filters.model_dump() != (segment.filters or {})
    if reprocess:
        segment.filters = filters.model_dump()
        segment.status = NEW
        segment.error_message = None
        segment.processed_at = None
        await session.execute(delete(models.ListCompany).where(models.ListCompany.list_id == segment.id))

    await session.commit()
    await session.refresh(segment)

    if reprocess and trigger is not None:
        trigger(segment.id)
    return segment


async def delete_segment(session: AsyncSession, segment_id: str, *, customer_id: str) -> None:
    """Soft delete."""
    segment = await get_segment(session, segment_id, customer_id=customer_id)
    segment.deleted_at = models.utcnow()
    await session.commit()
    logger.info(f"Deleted segment {segment_id}")


async def list_segment_companies(
    session: AsyncSession,
    segment_id: str,
    *,
    customer_id: str,
    params: PageParams,
    search: str | None = None,
) -> Page[models.Company]:
    await get_segment(session, segment_id, customer_id=customer_id)
    stmt = (
        select(models.Company)
        .join(models.ListCompany, models.ListCompany.company_id == models.Company.id)
        .where(models.ListCompany.list_id == segment_id)
    )
    if search and search.strip():
        stmt = stmt.where(search_clause(search, models.Company.name, models.Company.domain))
    stmt = stmt.order_by(models.Company.name, models.Company.id)
    return await paginate(session, stmt, params)


async def upsert_companies(session: AsyncSession, found: list[FoundCompany]) -> list[str]:
    """Insert or refresh companies by domain; returns their ids in input order, deduplicated."""
    by_domain: dict[str, FoundCompany] = {}
    for company in found:
        by_domain.setdefault(company.domain, company)
    if not by_domain:
        return []

    stmt = select(models.Company).where(models.Company.domain.in_(list(by_domain)))
    existing = {c.domain: c for c in (await session.execute(stmt)).scalars().all()}

    rows = []
    for domain, company in by_domain.items():
        row = existing.get(domain) or models.Company(domain=domain)
        row.name = company.name
        row.external_id = company.external_id
        row.industry = company.industry
        row.country = company.country
        row.city = company.city
        row.employee_count = company.employee_count
        row.description = company.description
        row.linkedin_url = company.linkedin_url
        row.raw = company.raw
        if domain not in existing:
            session.add(row)
        rows.append(row)
    await session.flush()
    return [row.id for row in rows]


async def attach_companies(session: AsyncSession, list_id: str, company_ids: list[str]) -> int:
    """Link companies to a list, skipping existing links; returns how many were added."""
    if not company_ids:
        return 0
    stmt = select(models.ListCompany.company_id).where(
        models.ListCompany.list_id == list_id,
        models.ListCompany.company_id.in_(company_ids),
    )
    linked = set((await session.execute(stmt)).scalars().all())
    new_links = [models.ListCompany(list_id=list_id, company_id=cid) for cid in company_ids if cid not in linked]
    session.add_all(new_links)
    await session.flush()
    return len(new_links)


async def process_segment(
    session: AsyncSession,
    client: FunctionsClient,
    broadcaster: RealtimeBroadcaster,
    segment_id: str,
) -> ProcessResult:
    """Search companies for a ``new`` segment and attach them.

    Steps:
    1. Claim the segment (``new`` -> ``processing``)
    2. Translate filters into search clauses
    3. Search companies (capped at the configured maximum)
    4. Upsert companies and link them to the segment
    5. Mark ``completed``; any failure marks ``failed``

    Raises:
        NotFoundError: Unknown or deleted segment
        SegmentProcessingError: If processing fails
    """
    segment = await session.get(models.List, segment_id)
    if segment is None or segment.deleted_at is not None:
        raise NotFoundError("Segment not found")
    if segment.status != NEW:
        logger.info(f"Segment {segment_id} already processed ({segment.status})")
        return ProcessResult(segment_id, segment.status, 0, 0, "Segment already processed")

    segment.status = PROCESSING
    await session.commit()
    await _notify(
        session,
        broadcaster,
        segment,
        title="Segment Processing Started",
        message=f'Segment "{segment.name}" is being processed.',
    )

    try:
        filters = SegmentFilters.model_validate(segment.filters or {})
        query = build_company_query(filters)
        if not query:
            raise ValidationError("No valid search clauses generated from filters")

        logger.info(f"Searching companies for segment {segment_id}: {query}")
        result = await search_companies(client, query, size=settings.segments.max_companies)

        company_ids = await upsert_companies(session, result.companies)
        added = await attach_companies(session, segment.id, company_ids)

        segment.status = COMPLETED
        segment.error_message = None
        segment.processed_at = models.utcnow()
        await session.commit()

    except Exception as e:
        logger.error(f"Segment {segment_id} processing failed: {e}", exc_info=True)
        await session.rollback()
        segment = await session.get(models.List, segment_id)
        segment.status = FAILED
        segment.error_message = truncate(str(e), 1000)
        segment.processed_at = models.utcnow()
        await session.commit()
        await _notify(
            session,
            broadcaster,
            segment,
            title="Segment Processing Failed",
            message=f'Segment "{segment.name}" could not be processed.',
            extra={"error": segment.error_message},
        )
        raise SegmentProcessingError(f"Processing failed: {e}") from e

    message = (
        "Segment processed successfully" if company_ids else describe_active_filters(filters)
    )
    await _notify(
        session,
        broadcaster,
        segment,
        title="Segment Ready",
        message=f'Segment "{segment.name}" is ready with {len(company_ids)} companies.',
        extra={"companies_added": len(company_ids)},
    )
    logger.info(f"Segment {segment_id} completed with {len(company_ids)} companies ({added} new links)")
    return ProcessResult(segment_id, COMPLETED, len(company_ids), result.total_count, message)


class SegmentWorker:
    """Runs segment processing in the background, one fresh session per segment."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: FunctionsClient,
        broadcaster: RealtimeBroadcaster,
    ) -> None:
        self.session_factory = session_factory
        self.client = client
        self.broadcaster = broadcaster
        self._tasks: set[asyncio.Task] = set()

    async def run(self, segment_id: str) -> ProcessResult | None:
        async with self.session_factory() as session:
            try:
                return await process_segment(session, self.client, self.broadcaster, segment_id)
            except (SegmentProcessingError, NotFoundError) as e:
                logger.error(f"Background processing of segment {segment_id} failed: {e}")
                return None
            except Exception as e:
                logger.error(f"Background processing of segment {segment_id} crashed: {e}", exc_info=True)
                return None

    def trigger(self, segment_id: str) -> asyncio.Task:
        """Fire and forget."""
        task = asyncio.get_running_loop().create_task(self.run(segment_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
