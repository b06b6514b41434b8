"""Request-scoped dependencies shared by the routers.

Long-lived clients live on ``app.state`` (see ``api.lifespan``); tests swap
them through ``app.dependency_overrides``.
"""
from __future__ import annotations

from fastapi import Depends, Query, Request

from edge.client import FunctionsClient
from edge.realtime import RealtimeBroadcaster

from .access import UserContext, require_customer
from .auth import get_current_user
from .pagination import PageParams
from .services.segments import SegmentTrigger
from .storage import LocalStorage


def get_broadcaster(request: Request) -> RealtimeBroadcaster:
    return request.app.state.broadcaster


def get_functions_client(request: Request) -> FunctionsClient:
    return request.app.state.functions_client


def get_storage(request: Request) -> LocalStorage:
    return request.app.state.storage


def get_segment_trigger(request: Request) -> SegmentTrigger:
    return request.app.state.segment_worker.trigger


def page_params(
    page: int = Query(default=1, ge=1),
    per_page: int | None = Query(default=None, ge=1),
) -> PageParams:
    return PageParams.of(page, per_page)


def active_customer(ctx: UserContext = Depends(get_current_user)) -> str:
    """The customer id the caller is working on (own or picked through the header)."""
    return require_customer(ctx)
