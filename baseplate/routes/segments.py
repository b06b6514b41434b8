"""Company segment endpoints plus the industry and company size catalogs."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog.company_sizes import COMPANY_SIZE_OPTIONS, parse_company_size_range
from edge.client import FunctionsClient
from edge.realtime import RealtimeBroadcaster

from .. import models
from ..access import UserContext
from ..auth import get_current_user
from ..config import settings
from ..db import get_session, get_session_factory
from ..deps import active_customer, get_broadcaster, get_functions_client, get_segment_trigger
from ..pagination import PageParams
from ..schemas import (
    CompanyOut,
    CompanySizeOut,
    CreateSegmentRequest,
    IndustryMatchOut,
    PageOut,
    ProcessSegmentResponse,
    SearchPreviewResponse,
    SegmentOut,
    SegmentStatusResponse,
    UpdateSegmentRequest,
    page_out,
)
from ..services import segments as service
from ..services.industries import search_industries
from ..services.segment_filters import SegmentFilters, build_company_query, describe_active_filters
from ..services.segments import SegmentTrigger

router = APIRouter(prefix="/segments", tags=["segments"])
industries_router = APIRouter(prefix="/industries", tags=["segments"])


def _segment_out(segment: models.List, company_count: int) -> SegmentOut:
    return SegmentOut.model_validate(segment).model_copy(update={"company_count": company_count})


def segment_page_params(
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None, ge=1),
) -> PageParams:
    return PageParams.of(page, per_page, default_per_page=settings.segments.default_per_page)


@router.get("", response_model=PageOut[SegmentOut])
async def list_segments(
    search: str | None = None,
    params: PageParams = Depends(segment_page_params),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
):
    page = await service.list_segments(session, customer_id=customer_id, params=params, search=search)
    return page_out(page, lambda item: _segment_out(item.segment, item.company_count))


@router.post("", response_model=SegmentOut, status_code=status.HTTP_201_CREATED)
async def create_segment(
    request: CreateSegmentRequest,
    ctx: UserContext = Depends(get_current_user),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
    trigger: SegmentTrigger = Depends(get_segment_trigger),
) -> SegmentOut:
    segment = await service.create_segment(
        session,
        broadcaster,
        customer_id=customer_id,
        user_id=ctx.user_id,
        name=request.name,
        filters=request.filters,
        description=request.description,
        trigger=trigger,
    )
    return _segment_out(segment, 0)


@router.get("/company-sizes", response_model=list[CompanySizeOut])
async def company_sizes() -> list[CompanySizeOut]:
    sizes = []
    for label in COMPANY_SIZE_OPTIONS:
        low, high = parse_company_size_range(label)
        sizes.append(CompanySizeOut(label=label, min=low, max=high))
    return sizes


@router.post("/preview-query", response_model=SearchPreviewResponse)
async def preview_query(
    filters: SegmentFilters,
    ctx: UserContext = Depends(get_current_user),
) -> SearchPreviewResponse:
    """Show the search clauses a set of filters produces without saving anything."""
    return SearchPreviewResponse(query=build_company_query(filters), message=describe_active_filters(filters))


@router.get("/{segment_id}", response_model=SegmentOut)
async def get_segment(
    segment_id: str,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> SegmentOut:
    segment = await service.get_segment(session, segment_id, customer_id=customer_id)
    counts = await service.company_counts(session, [segment.id])
    return _segment_out(segment, counts.get(segment.id, 0))


@router.get("/{segment_id}/status", response_model=SegmentStatusResponse)
async def get_segment_status(
    segment_id: str,
    wait: bool = False,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SegmentStatusResponse:
    """Current status; with ``wait=true`` poll until processing finishes or times out."""
    if wait:
        current = await service.wait_for_segment(session_factory, segment_id, customer_id=customer_id)
    else:
        current = await service.get_segment_status(session, segment_id, customer_id=customer_id)
    return SegmentStatusResponse(id=segment_id, status=current)


@router.patch("/{segment_id}", response_model=SegmentOut)
async def update_segment(
    segment_id: str,
    request: UpdateSegmentRequest,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
    trigger: SegmentTrigger = Depends(get_segment_trigger),
) -> SegmentOut:
    segment = await service.update_segment(
        session,
        segment_id,
        customer_id=customer_id,
        name=request.name,
        description=request.description,
        filters=request.filters,
        trigger=trigger,
    )
    counts = await service.company_counts(session, [segment.id])
    return _segment_out(segment, counts.get(segment.id, 0))


@router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_segment(
    segment_id: str,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await service.delete_segment(session, segment_id, customer_id=customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{segment_id}/companies", response_model=PageOut[CompanyOut])
async def list_segment_companies(
    segment_id: str,
    search: str | None = None,
    params: PageParams = Depends(segment_page_params),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
):
    page = await service.list_segment_companies(
        session,
        segment_id,
        customer_id=customer_id,
        params=params,
        search=search,
    )
    return page_out(page, CompanyOut.model_validate)


@router.post("/{segment_id}/process", response_model=ProcessSegmentResponse)
async def process_segment(
    segment_id: str,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
    client: FunctionsClient = Depends(get_functions_client),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> ProcessSegmentResponse:
    """Process a ``new`` segment inline instead of waiting for the worker."""
    await service.get_segment(session, segment_id, customer_id=customer_id)
    result = await service.process_segment(session, client, broadcaster, segment_id)
    return ProcessSegmentResponse(
        segment_id=result.segment_id,
        status=result.status,
        companies_added=result.companies_added,
        total_available=result.total_available,
        message=result.message,
    )


@industries_router.get("", response_model=list[IndustryMatchOut])
async def search_industry_catalog(
    q: str = Query(min_length=1),
    limit: int | None = Query(default=None, ge=1, le=50),
    ctx: UserContext = Depends(get_current_user),
) -> list[IndustryMatchOut]:
    matches = search_industries(q, limit=limit)
    return [
        IndustryMatchOut(name=m.name, sector=m.sector, score=m.score, matched_on=m.matched_on)
        for m in matches
    ]
