"""Web capture requests, stored captures, and running a capture.

A request is queued by a user, rendered through the capture function, and
finishes ``completed`` (with a stored capture) or ``failed`` (with an error
message). Every read and write is checked against ``can_access_customer``.
"""
from __future__ import annotations

import logging
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from edge.capture import Viewport, render_page
from edge.client import FunctionsClient

from .. import models
from ..access import UserContext, can_access_customer, ensure_customer_access
from ..config import settings
from ..errors import ConflictError, ForbiddenError, NotFoundError, UpstreamError, ValidationError
from ..pagination import Page, PageParams, paginate
from ..queries import search_clause
from ..storage import LocalStorage
from ..text import is_http_url, truncate
from .device_profiles import get_device_profile

logger = logging.getLogger(__name__)

QUEUED, IN_PROGRESS, COMPLETED, FAILED, CANCELED = "queued", "in_progress", "completed", "failed", "canceled"
REQUEST_STATUSES = (QUEUED, IN_PROGRESS, COMPLETED, FAILED, CANCELED)
# Passing this as the device profile filter selects requests without a profile
NO_DEVICE_PROFILE = "none"
REQUEST_ORDER_COLUMNS = ("queued_at", "started_at", "finished_at", "status", "requested_url")

REQUEST_FIELDS = (
    "requested_url",
    "device_profile_id",
    "full_page",
    "include_source",
    "block_tracking",
    "status",
    "started_at",
    "finished_at",
    "error_message",
)
CAPTURE_FIELDS = (
    "options_device_profile_id",
    "page_title",
    "screenshot_storage_path",
    "screenshot_width",
    "screenshot_height",
    "screenshot_size_bytes",
    "raw_html",
    "html_size_bytes",
    "raw_css",
    "css_size_bytes",
    "capture_meta",
    "captured_at",
    "web_screenshot_capture_request_id",
)


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValidationError("Requested URL is required")
    if not is_http_url(url):
        raise ValidationError("Requested URL must be an http(s) URL")
    return url


# ---------------------------------------------------------------------------
# Capture requests
# ---------------------------------------------------------------------------


async def list_capture_requests(
    session: AsyncSession,
    *,
    customer_id: str,
    params: PageParams,
    status: str | None = None,
    device_profile_id: str | None = None,
    requested_by_user_id: str | None = None,
    search: str | None = None,
    order_by: str = "queued_at",
    direction: str = "desc",
) -> Page[models.CaptureRequest]:
    """Requests of one customer with filters, ordering and paging."""
    R = models.CaptureRequest
    if order_by not in REQUEST_ORDER_COLUMNS:
        raise ValidationError(f"Cannot order by {order_by}")
    if direction not in ("asc", "desc"):
        raise ValidationError("direction must be 'asc' or 'desc'")

    stmt = select(R).where(R.customer_id == customer_id)
    if status:
        stmt = stmt.where(R.status == status)
    if device_profile_id == NO_DEVICE_PROFILE:
        stmt = stmt.where(R.device_profile_id.is_(None))
    elif device_profile_id:
        stmt = stmt.where(R.device_profile_id == device_profile_id)
    if requested_by_user_id:
        stmt = stmt.where(R.requested_by_user_id == requested_by_user_id)
    if search and search.strip():
        stmt = stmt.where(search_clause(search, R.requested_url))

    column = getattr(R, order_by)
    stmt = stmt.order_by(column.asc() if direction == "asc" else column.desc(), R.id)
    return await paginate(session, stmt, params)


async def get_capture_request(session: AsyncSession, ctx: UserContext, request_id: str) -> models.CaptureRequest:
    request = await session.get(models.CaptureRequest, request_id)
    if request is None:
        raise NotFoundError("Capture request not found")
    if not await can_access_customer(session, ctx, request.customer_id):
        raise ForbiddenError("You do not have permission to access this capture request")
    return request


async def create_capture_request(
    session: AsyncSession,
    ctx: UserContext,
    *,
    customer_id: str,
    requested_url: str,
    device_profile_id: str | None = None,
    full_page: bool = False,
    include_source: bool = False,
    block_tracking: bool = False,
) -> models.CaptureRequest:
    await ensure_customer_access(session, ctx, customer_id)
    url = _validate_url(requested_url)
    if device_profile_id:
        profile = await get_device_profile(session, device_profile_id)
        if not profile.is_active:
            raise ValidationError("Device profile is not active")

    request = models.CaptureRequest(
        customer_id=customer_id,
        requested_by_user_id=ctx.user_id,
        requested_url=url,
        device_profile_id=device_profile_id,
        full_page=full_page,
        include_source=include_source,
        block_tracking=block_tracking,
        status=QUEUED,
        queued_at=models.utcnow(),
    )
    session.add(request)
    await session.commit()
    await session.refresh(request)
    logger.info(f"Queued capture request {request.id} for {url}")
    return request


async def update_capture_request(
    session: AsyncSession,
    ctx: UserContext,
    request_id: str,
    changes: dict,
) -> models.CaptureRequest:
    """Partial update; only keys present in ``changes`` are written."""
    request = await get_capture_request(session, ctx, request_id)
    for key in REQUEST_FIELDS:
        if key not in changes:
            continue
        value = changes[key]
        if key == "requested_url":
            value = _validate_url(value)
        elif key == "status" and value not in REQUEST_STATUSES:
            raise ValidationError(f"Invalid status: {value}")
        elif key == "device_profile_id" and value:
            await get_device_profile(session, value)
        setattr(request, key, value)
    await session.commit()
    await session.refresh(request)
    return request


async def delete_capture_request(session: AsyncSession, ctx: UserContext, request_id: str) -> None:
    request = await get_capture_request(session, ctx, request_id)
    await session.delete(request)
    await session.commit()
    logger.info(f"Deleted capture request {request_id}")


async def cancel_capture_request(session: AsyncSession, ctx: UserContext, request_id: str) -> models.CaptureRequest:
    request = await get_capture_request(session, ctx, request_id)
    if request.status != QUEUED:
        raise ConflictError("Only queued capture requests can be canceled")
    request.status = CANCELED
    request.finished_at = models.utcnow()
    await session.commit()
    await session.refresh(request)
    return request


# ---------------------------------------------------------------------------
# Captures
# ---------------------------------------------------------------------------


async def list_captures(
    session: AsyncSession,
    *,
    customer_id: str,
    params: PageParams,
    request_id: str | None = None,
    device_profile_id: str | None = None,
    search: str | None = None,
) -> Page[models.Capture]:
    C = models.Capture
    stmt = select(C).where(C.customer_id == customer_id)
    if request_id:
        stmt = stmt.where(C.web_screenshot_capture_request_id == request_id)
    if device_profile_id:
        stmt = stmt.where(C.options_device_profile_id == device_profile_id)
    if search and search.strip():
        stmt = stmt.where(search_clause(search, C.page_title))
    stmt = stmt.order_by(C.captured_at.desc(), C.id)
    return await paginate(session, stmt, params)


async def get_capture(session: AsyncSession, ctx: UserContext, capture_id: str) -> models.Capture:
    capture = await session.get(models.Capture, capture_id)
    if capture is None:
        raise NotFoundError("Capture not found")
    if not await can_access_customer(session, ctx, capture.customer_id):
        raise ForbiddenError("You do not have permission to access this capture")
    return capture


async def create_capture(
    session: AsyncSession,
    ctx: UserContext,
    *,
    customer_id: str,
    fields: dict,
) -> models.Capture:
    await ensure_customer_access(session, ctx, customer_id)
    if not fields.get("screenshot_storage_path"):
        raise ValidationError("screenshot_storage_path is required")
    if fields.get("web_screenshot_capture_request_id"):
        request = await get_capture_request(session, ctx, fields["web_screenshot_capture_request_id"])
        if request.customer_id != customer_id:
            raise ValidationError("Capture request belongs to another customer")
    capture = models.Capture(customer_id=customer_id, **{k: v for k, v in fields.items() if k in CAPTURE_FIELDS})
    session.add(capture)
    await session.commit()
    await session.refresh(capture)
    return capture


async def update_capture(session: AsyncSession, ctx: UserContext, capture_id: str, changes: dict) -> models.Capture:
    capture = await get_capture(session, ctx, capture_id)
    for key in CAPTURE_FIELDS:
        if key in changes:
            setattr(capture, key, changes[key])
    await session.commit()
    await session.refresh(capture)
    return capture


async def delete_capture(session: AsyncSession, ctx: UserContext, capture_id: str) -> None:
    capture = await get_capture(session, ctx, capture_id)
    await session.delete(capture)
    await session.commit()


# ---------------------------------------------------------------------------
# Running a capture
# ---------------------------------------------------------------------------


def storage_key(customer_id: str, request_id: str) -> str:
    return f"{customer_id}/{request_id}-{int(time.time() * 1000)}.png"


async def _viewport_for(session: AsyncSession, request: models.CaptureRequest) -> Viewport:
    if not request.device_profile_id:
        return Viewport()
    profile = await session.get(models.DeviceProfile, request.device_profile_id)
    if profile is None:
        logger.warning(f"Device profile {request.device_profile_id} missing, using defaults")
        return Viewport()
    return Viewport(
        width=profile.viewport_width,
        height=profile.viewport_height,
        device_pixel_ratio=profile.device_pixel_ratio,
        user_agent=profile.user_agent,
        is_mobile=profile.is_mobile,
    )


def _byte_size(text: str | None) -> int | None:
    return len(text.encode("utf-8")) if text is not None else None


async def run_capture(
    session: AsyncSession,
    ctx: UserContext,
    client: FunctionsClient,
    storage: LocalStorage,
    request_id: str,
) -> models.Capture:
    """Render a queued request and store the result.

    Steps:
    1. Mark the request ``in_progress``
    2. Resolve the viewport from its device profile
    3. Render through the capture function
    4. Store the PNG and persist the capture row
    5. Mark the request ``completed``

    Raises:
        ConflictError: If the request is not queued
        UpstreamError: If rendering or storing fails; the request is marked ``failed``
    """
    request = await get_capture_request(session, ctx, request_id)
    if request.status != QUEUED:
        raise ConflictError(f"Capture request is {request.status}, only queued requests can run")

    request.status = IN_PROGRESS
    request.started_at = models.utcnow()
    await session.commit()

    try:
        viewport = await _viewport_for(session, request)
        page = await render_page(
            client,
            url=request.requested_url,
            viewport=viewport,
            full_page=request.full_page,
            include_source=request.include_source,
            block_tracking=request.block_tracking,
        )
        key = await storage.put(storage_key(request.customer_id, request.id), page.png)

        capture = models.Capture(
            customer_id=request.customer_id,
            web_screenshot_capture_request_id=request.id,
            options_device_profile_id=request.device_profile_id,
            page_title=page.title,
            screenshot_storage_path=key,
            screenshot_width=page.width,
            screenshot_height=page.height,
            screenshot_size_bytes=page.size_bytes,
            raw_html=page.html,
            html_size_bytes=_byte_size(page.html),
            raw_css=page.css,
            css_size_bytes=_byte_size(page.css),
            capture_meta={
                **page.describe(),
                "viewport": {
                    "width": viewport.width,
                    "height": viewport.height,
                    "device_pixel_ratio": viewport.device_pixel_ratio,
                    "is_mobile": viewport.is_mobile,
                },
                "full_page": request.full_page,
                "block_tracking": request.block_tracking,
            },
            captured_at=models.utcnow(),
        )
        session.add(capture)
        request.status = COMPLETED
        request.finished_at = models.utcnow()
        request.error_message = None
        await session.commit()

    except Exception as e:
        logger.error(f"Capture {request_id} failed: {e}", exc_info=True)
        await session.rollback()
        request = await session.get(models.CaptureRequest, request_id)
        request.status = FAILED
        request.error_message = truncate(str(e), settings.capture.max_error_length)
        request.finished_at = models.utcnow()
        await session.commit()
        raise UpstreamError(f"Capture failed: {e}") from e

    await session.refresh(capture)
    logger.info(f"Capture {capture.id} stored at {key} ({page.width}x{page.height}, {page.size_bytes} bytes)")
    return capture
