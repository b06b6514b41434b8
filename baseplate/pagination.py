"""Page arithmetic shared by every list endpoint."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings

T = TypeVar("T")


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    per_page: int = settings.pagination.default_per_page

    @classmethod
    def of(cls, page: int | None, per_page: int | None, *, default_per_page: int | None = None) -> PageParams:
        """Clamp raw query values into a usable page request."""
        size = per_page or default_per_page or settings.pagination.default_per_page
        size = max(1, min(size, settings.pagination.max_per_page))
        return cls(page=max(1, page or 1), per_page=size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


@dataclass(frozen=True)
class PageMeta:
    total: int
    last_page: int
    current_page: int
    per_page: int
    prev: int | None
    next: int | None

    @classmethod
    def build(cls, total: int, params: PageParams) -> PageMeta:
        last_page = math.ceil(total / params.per_page) if total else 0
        return cls(
            total=total,
            last_page=last_page,
            current_page=params.page,
            per_page=params.per_page,
            prev=params.page - 1 if params.page > 1 else None,
            next=params.page + 1 if params.page < last_page else None,
        )


@dataclass
class Page(Generic[T]):
    data: Sequence[T]
    meta: PageMeta


async def paginate(session: AsyncSession, stmt: Select[Any], params: PageParams) -> Page[Any]:
    """Run ``stmt`` for one page and a matching count query.

    ``stmt`` must select ORM entities; ordering is applied by the caller.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()
    rows = (await session.execute(stmt.offset(params.offset).limit(params.limit))).scalars().unique().all()
    return Page(data=rows, meta=PageMeta.build(total, params))
