"""Customer success assignment endpoints. Managed by system admins."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..access import UserContext, ensure_system_admin, is_system_admin
from ..auth import get_current_user
from ..db import get_session
from ..errors import ForbiddenError
from ..schemas import AssignmentOut, CreateAssignmentRequest, IsAssignedResponse
from ..services import customer_success as service

router = APIRouter(prefix="/customer-success", tags=["customer-success"])

ADMIN_ONLY = "Only system administrators can manage customer success assignments"


@router.get("", response_model=list[AssignmentOut])
async def list_assignments(
    user_id: str | None = None,
    customer_id: str | None = None,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[AssignmentOut]:
    """System admins see every assignment; a CS rep only their own."""
    if not is_system_admin(ctx):
        user_id = ctx.user_id
    assignments = await service.list_assignments(session, user_id=user_id, customer_id=customer_id)
    return [AssignmentOut.model_validate(a) for a in assignments]


@router.get("/check", response_model=IsAssignedResponse)
async def is_assigned(
    user_id: str,
    customer_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> IsAssignedResponse:
    if not is_system_admin(ctx) and user_id != ctx.user_id:
        raise ForbiddenError(ADMIN_ONLY)
    return IsAssignedResponse(assigned=await service.is_assigned(session, user_id=user_id, customer_id=customer_id))


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    request: CreateAssignmentRequest,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> AssignmentOut:
    ensure_system_admin(ctx, ADMIN_ONLY)
    assignment = await service.create_assignment(session, user_id=request.user_id, customer_id=request.customer_id)
    return AssignmentOut.model_validate(assignment)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def remove_assignment_for(
    user_id: str,
    customer_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    ensure_system_admin(ctx, ADMIN_ONLY)
    await service.remove_assignment_for(session, user_id=user_id, customer_id=customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{assignment_id}", response_model=AssignmentOut)
async def get_assignment(
    assignment_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> AssignmentOut:
    assignment = await service.get_assignment(session, assignment_id)
    if not is_system_admin(ctx) and assignment.user_id != ctx.user_id:
        raise ForbiddenError(ADMIN_ONLY)
    return AssignmentOut.model_validate(assignment)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_assignment(
    assignment_id: str,
    ctx: UserContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    ensure_system_admin(ctx, ADMIN_ONLY)
    await service.remove_assignment(session, assignment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
