"""Roles, the permission catalog and the system module catalog.

Roles are global, so customer ownership does not stand in for the role
management permissions here.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.system_modules import ROLE_MANAGEMENT, SYSTEM_MODULES

from ..access import UserContext, require_permission
from ..auth import get_current_user
from ..db import get_session
from ..schemas import (
    CreateRoleRequest,
    MessageResponse,
    PermissionOut,
    RoleOut,
    RolePermissionsRequest,
    SystemModuleOut,
    UpdateRoleRequest,
)
from ..services import roles as service

router = APIRouter(prefix="/roles", tags=["roles"])
permissions_router = APIRouter(prefix="/permissions", tags=["roles"])
system_modules_router = APIRouter(prefix="/system-modules", tags=["roles"])

VIEW, CREATE, EDIT, DELETE = (
    f"{ROLE_MANAGEMENT}:viewRoles",
    f"{ROLE_MANAGEMENT}:createRoles",
    f"{ROLE_MANAGEMENT}:editRoles",
    f"{ROLE_MANAGEMENT}:deleteRoles",
)


@system_modules_router.get("", response_model=list[SystemModuleOut])
async def list_system_modules(ctx: UserContext = Depends(get_current_user)) -> list[SystemModuleOut]:
    """Every module with its permissions, enabled or not."""
    return [SystemModuleOut.model_validate(module) for module in SYSTEM_MODULES]


@permissions_router.get("", response_model=list[PermissionOut])
async def list_permissions(
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[PermissionOut]:
    require_permission(ctx, VIEW)
    return [PermissionOut.model_validate(p) for p in await service.list_permissions(session)]


@router.get("", response_model=list[RoleOut])
async def list_roles(
    search: str | None = None,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[RoleOut]:
    require_permission(ctx, VIEW)
    return [RoleOut.model_validate(r) for r in await service.list_roles(session, search=search)]


@router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
async def create_role(
    request: CreateRoleRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RoleOut:
    require_permission(ctx, CREATE)
    role = await service.create_role(
        session, name=request.name, description=request.description, permissions=request.permissions
    )
    return RoleOut.model_validate(role)


@router.get("/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RoleOut:
    require_permission(ctx, VIEW)
    return RoleOut.model_validate(await service.get_role(session, role_id))


@router.patch("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: str,
    request: UpdateRoleRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> RoleOut:
    require_permission(ctx, EDIT)
    role = await service.update_role(session, role_id, request.model_dump(exclude_unset=True))
    return RoleOut.model_validate(role)


@router.put("/{role_id}/permissions", response_model=MessageResponse)
async def set_role_permissions(
    role_id: str,
    request: RolePermissionsRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> MessageResponse:
    require_permission(ctx, EDIT)
    await service.set_role_permissions(session, role_id, request.permissions)
    return MessageResponse(message=f"Permissions updated for role ID {role_id}")


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    require_permission(ctx, DELETE)
    await service.delete_role(session, role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
