"""Customer endpoints. Reads are scoped to the caller; writes belong to system admins."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..access import UserContext, ensure_system_admin
from ..auth import get_current_user
from ..db import get_session
from ..deps import page_params
from ..pagination import PageParams
from ..schemas import CreateCustomerRequest, CustomerOut, PageOut, UpdateCustomerRequest, page_out
from ..services import customers as service

router = APIRouter(prefix="/customers", tags=["customers"])

ADMIN_ONLY = "Only system administrators can manage customers"


@router.get("", response_model=PageOut[CustomerOut])
async def list_customers(
    search: str | None = None,
    params: PageParams = Depends(page_params),
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    page = await service.list_customers(session, ctx, params=params, search=search)
    return page_out(page, CustomerOut.model_validate)


@router.post("", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
async def create_customer(
    request: CreateCustomerRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CustomerOut:
    ensure_system_admin(ctx, ADMIN_ONLY)
    customer = await service.create_customer(
        session,
        name=request.name,
        owner_user_id=request.owner_user_id,
        customer_success_ids=request.customer_success_ids,
    )
    return CustomerOut.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerOut)
async def get_customer(
    customer_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CustomerOut:
    return CustomerOut.model_validate(await service.get_visible_customer(session, ctx, customer_id))


@router.patch("/{customer_id}", response_model=CustomerOut)
async def update_customer(
    customer_id: str,
    request: UpdateCustomerRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> CustomerOut:
    ensure_system_admin(ctx, ADMIN_ONLY)
    customer = await service.update_customer(session, customer_id, request.model_dump(exclude_unset=True))
    return CustomerOut.model_validate(customer)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer(
    customer_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    ensure_system_admin(ctx, ADMIN_ONLY)
    await service.delete_customer(session, customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
