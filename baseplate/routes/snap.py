"""Web screenshot endpoints: device profiles, capture requests, captures and colours."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from edge.client import FunctionsClient

from ..access import UserContext, is_system_admin
from ..auth import get_current_user
from ..db import get_session
from ..deps import active_customer, get_functions_client, get_storage, page_params
from ..pagination import PageParams
from ..schemas import (
    CaptureDetailOut,
    CaptureOut,
    CaptureRequestOut,
    ColorExtractionRequest,
    CreateCaptureBody,
    CreateCaptureRequestBody,
    CreateDeviceProfileRequest,
    DeviceProfileOut,
    PageOut,
    PaletteOut,
    UpdateCaptureBody,
    UpdateCaptureRequestBody,
    UpdateDeviceProfileRequest,
    page_out,
)
from ..services import captures, device_profiles
from ..services.colors import extract_colors
from ..storage import LocalStorage

device_profiles_router = APIRouter(prefix="/device-profiles", tags=["source-and-snap"])
capture_requests_router = APIRouter(prefix="/capture-requests", tags=["source-and-snap"])
captures_router = APIRouter(prefix="/captures", tags=["source-and-snap"])
colors_router = APIRouter(prefix="/colors", tags=["source-and-snap"])


# ---------------------------------------------------------------------------
# Device profiles
# ---------------------------------------------------------------------------


@device_profiles_router.get("", response_model=list[DeviceProfileOut])
async def list_device_profiles(
    include_inactive: bool = False,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[DeviceProfileOut]:
    """Active profiles; admins may ask for inactive ones too."""
    profiles = await device_profiles.list_device_profiles(
        session,
        include_inactive=include_inactive and is_system_admin(ctx),
    )
    return [DeviceProfileOut.model_validate(p) for p in profiles]


@device_profiles_router.post("", response_model=DeviceProfileOut, status_code=status.HTTP_201_CREATED)
async def create_device_profile(
    request: CreateDeviceProfileRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DeviceProfileOut:
    profile = await device_profiles.create_device_profile(session, ctx, request.model_dump())
    return DeviceProfileOut.model_validate(profile)


@device_profiles_router.get("/{profile_id}", response_model=DeviceProfileOut)
async def get_device_profile(
    profile_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DeviceProfileOut:
    return DeviceProfileOut.model_validate(await device_profiles.get_device_profile(session, profile_id))


@device_profiles_router.patch("/{profile_id}", response_model=DeviceProfileOut)
async def update_device_profile(
    profile_id: str,
    request: UpdateDeviceProfileRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> DeviceProfileOut:
    profile = await device_profiles.update_device_profile(
        session,
        ctx,
        profile_id,
        request.model_dump(exclude_unset=True),
    )
    return DeviceProfileOut.model_validate(profile)


@device_profiles_router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device_profile(
    profile_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await device_profiles.delete_device_profile(session, ctx, profile_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Capture requests
# ---------------------------------------------------------------------------


@capture_requests_router.get("", response_model=PageOut[CaptureRequestOut])
async def list_capture_requests(
    status_filter: str | None = Query(default=None, alias="status"),
    device_profile_id: str | None = None,
    requested_by_user_id: str | None = None,
    search: str | None = None,
    order_by: str = "queued_at",
    direction: str = "desc",
    params: PageParams = Depends(page_params),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
):
    page = await captures.list_capture_requests(
        session,
        customer_id=customer_id,
        params=params,
        status=status_filter,
        device_profile_id=device_profile_id,
        requested_by_user_id=requested_by_user_id,
        search=search,
        order_by=order_by,
        direction=direction,
    )
    return page_out(page, CaptureRequestOut.model_validate)


@capture_requests_router.post("", response_model=CaptureRequestOut, status_code=status.HTTP_201_CREATED)
async def create_capture_request(
    request: CreateCaptureRequestBody,
    ctx: UserContext = Depends(get_current_user),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> CaptureRequestOut:
    created = await captures.create_capture_request(
        session,
        ctx,
        customer_id=customer_id,
        requested_url=request.requested_url,
        device_profile_id=request.device_profile_id,
        full_page=request.full_page,
        include_source=request.include_source,
        block_tracking=request.block_tracking,
    )
    return CaptureRequestOut.model_validate(created)


@capture_requests_router.get("/{request_id}", response_model=CaptureRequestOut)
async def get_capture_request(
    request_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CaptureRequestOut:
    return CaptureRequestOut.model_validate(await captures.get_capture_request(session, ctx, request_id))


@capture_requests_router.patch("/{request_id}", response_model=CaptureRequestOut)
async def update_capture_request(
    request_id: str,
    request: UpdateCaptureRequestBody,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CaptureRequestOut:
    updated = await captures.update_capture_request(session, ctx, request_id, request.model_dump(exclude_unset=True))
    return CaptureRequestOut.model_validate(updated)


@capture_requests_router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_capture_request(
    request_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await captures.delete_capture_request(session, ctx, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@capture_requests_router.post("/{request_id}/cancel", response_model=CaptureRequestOut)
async def cancel_capture_request(
    request_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CaptureRequestOut:
    return CaptureRequestOut.model_validate(await captures.cancel_capture_request(session, ctx, request_id))


@capture_requests_router.post("/{request_id}/run", response_model=CaptureDetailOut)
async def run_capture(
    request_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    client: FunctionsClient = Depends(get_functions_client),
    storage: LocalStorage = Depends(get_storage),
) -> CaptureDetailOut:
    """Render the page now and store the screenshot."""
    capture = await captures.run_capture(session, ctx, client, storage, request_id)
    return CaptureDetailOut.model_validate(capture)


# ---------------------------------------------------------------------------
# Captures
# ---------------------------------------------------------------------------


@captures_router.get("", response_model=PageOut[CaptureOut])
async def list_captures(
    request_id: str | None = None,
    device_profile_id: str | None = None,
    search: str | None = None,
    params: PageParams = Depends(page_params),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
):
    page = await captures.list_captures(
        session,
        customer_id=customer_id,
        params=params,
        request_id=request_id,
        device_profile_id=device_profile_id,
        search=search,
    )
    return page_out(page, CaptureOut.model_validate)


@captures_router.post("", response_model=CaptureDetailOut, status_code=status.HTTP_201_CREATED)
async def create_capture(
    request: CreateCaptureBody,
    ctx: UserContext = Depends(get_current_user),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> CaptureDetailOut:
    capture = await captures.create_capture(session, ctx, customer_id=customer_id, fields=request.model_dump())
    return CaptureDetailOut.model_validate(capture)


@captures_router.get("/{capture_id}", response_model=CaptureDetailOut)
async def get_capture(
    capture_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CaptureDetailOut:
    return CaptureDetailOut.model_validate(await captures.get_capture(session, ctx, capture_id))


@captures_router.patch("/{capture_id}", response_model=CaptureDetailOut)
async def update_capture(
    capture_id: str,
    request: UpdateCaptureBody,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CaptureDetailOut:
    capture = await captures.update_capture(session, ctx, capture_id, request.model_dump(exclude_unset=True))
    return CaptureDetailOut.model_validate(capture)


@captures_router.delete("/{capture_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_capture(
    capture_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await captures.delete_capture(session, ctx, capture_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Colours
# ---------------------------------------------------------------------------


@colors_router.post("/extract", response_model=PaletteOut)
async def extract_palette(
    request: ColorExtractionRequest,
    ctx: UserContext = Depends(get_current_user),
    client: FunctionsClient = Depends(get_functions_client),
) -> PaletteOut:
    result = await extract_colors(
        client,
        starting_url=request.starting_url,
        visual_style_guide_id=request.visual_style_guide_id,
    )
    return PaletteOut(
        colors=[c.to_dict() for c in result.colors],
        warnings=result.warnings,
        dropped=result.dropped,
    )
