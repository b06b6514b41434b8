"""User management endpoints and the caller's own profile."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.system_modules import USER_MANAGEMENT

from .. import models
from ..access import UserContext, is_system_admin
from ..auth import get_current_user, requires_permission
from ..db import get_session
from ..deps import page_params
from ..errors import ForbiddenError
from ..pagination import PageParams
from ..schemas import (
    CreateUserRequest,
    MeOut,
    PageOut,
    UpdateProfileRequest,
    UpdateUserRequest,
    UserOut,
    UserSummary,
    page_out,
)
from ..services import users as service

router = APIRouter(prefix="/users", tags=["users"])


def _user_out(user: models.User, model: type[UserOut] = UserOut) -> UserOut:
    return model.model_validate(user).model_copy(update={"role_name": user.role.name if user.role else None})


async def _me_out(session: AsyncSession, ctx: UserContext, user: models.User) -> MeOut:
    me = _user_out(user, MeOut)
    if ctx.is_impersonating:
        actor = await session.get(models.User, ctx.actor_id)
        me = me.model_copy(
            update={
                "is_impersonating": True,
                "impersonated_by": UserSummary.model_validate(actor) if actor else None,
            }
        )
    return me


def _managed_customer(ctx: UserContext, requested: str | None, message: str) -> str | None:
    """System admins pick any customer; everyone else works on their own."""
    if is_system_admin(ctx):
        return requested
    customer_id = ctx.effective_customer_id
    if not customer_id:
        raise ForbiddenError(message)
    if requested and requested != customer_id:
        raise ForbiddenError("You can only access users from your own customer.")
    return customer_id


@router.get("/me", response_model=MeOut)
async def get_me(
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MeOut:
    """The effective user, with the real caller when impersonating."""
    return await _me_out(session, ctx, await service.get_user(session, ctx.user_id))


@router.patch("/me", response_model=MeOut)
async def update_me(
    request: UpdateProfileRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MeOut:
    user = await service.update_profile(session, ctx.user_id, request.model_dump(exclude_unset=True))
    return await _me_out(session, ctx, user)


@router.get("", response_model=PageOut[UserOut])
async def list_users(
    customer_id: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    params: PageParams = Depends(page_params),
    ctx: UserContext = Depends(requires_permission(f"{USER_MANAGEMENT}:viewUsers")),
    session: AsyncSession = Depends(get_session),
):
    customer_id = _managed_customer(ctx, customer_id, "You have no access to list users.")
    page = await service.list_users(
        session, params=params, customer_id=customer_id, search=search, is_active=is_active
    )
    return page_out(page, _user_out)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    ctx: UserContext = Depends(requires_permission(f"{USER_MANAGEMENT}:createUser")),
    session: AsyncSession = Depends(get_session),
) -> UserOut:
    customer_id = _managed_customer(ctx, request.customer_id, "You have no access to create users.")
    user = await service.create_user(
        session,
        ctx,
        email=request.email,
        customer_id=customer_id,
        role_id=request.role_id,
        first_name=request.first_name,
        last_name=request.last_name,
        auth_user_id=request.auth_user_id,
    )
    return _user_out(user)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: str,
    ctx: UserContext = Depends(requires_permission(f"{USER_MANAGEMENT}:viewUsers")),
    session: AsyncSession = Depends(get_session),
) -> UserOut:
    return _user_out(await service.get_scoped_user(session, ctx, user_id))


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    request: UpdateUserRequest,
    ctx: UserContext = Depends(requires_permission(f"{USER_MANAGEMENT}:editUser")),
    session: AsyncSession = Depends(get_session),
) -> UserOut:
    user = await service.update_user(session, ctx, user_id, request.model_dump(exclude_unset=True))
    return _user_out(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    ctx: UserContext = Depends(requires_permission(f"{USER_MANAGEMENT}:deleteUser")),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await service.soft_delete_user(session, ctx, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
