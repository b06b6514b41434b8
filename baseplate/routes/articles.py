"""Documentation articles and their categories.

Reads are open to every member of the customer; writes need
``help_articles:manage``.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from ..access import UserContext
from ..auth import requires_permission
from ..db import get_session
from ..deps import active_customer, get_broadcaster, page_params
from ..pagination import PageParams
from ..schemas import (
    ArticleOut,
    CategoryOut,
    CreateArticleRequest,
    CreateCategoryRequest,
    PageOut,
    UpdateArticleRequest,
    UpdateCategoryRequest,
    page_out,
)
from ..services import article_categories, articles

categories_router = APIRouter(prefix="/article-categories", tags=["articles"])
articles_router = APIRouter(prefix="/articles", tags=["articles"])

manage_articles = requires_permission("help_articles:manage")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


@categories_router.get("", response_model=list[CategoryOut])
async def list_categories(
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> list[CategoryOut]:
    categories = await article_categories.list_categories(session, customer_id=customer_id)
    return [CategoryOut.model_validate(c) for c in categories]


@categories_router.get("/subcategories", response_model=list[str])
async def list_subcategories(
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> list[str]:
    return await article_categories.list_subcategories(session, customer_id=customer_id)


@categories_router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    request: CreateCategoryRequest,
    ctx: UserContext = Depends(manage_articles),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> CategoryOut:
    category = await article_categories.create_category(
        session,
        customer_id=customer_id,
        name=request.name,
        subcategory=request.subcategory,
        about=request.about,
        icon=request.icon,
        created_by=ctx.user_id,
    )
    return CategoryOut.model_validate(category)


@categories_router.get("/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: int,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> CategoryOut:
    category = await article_categories.get_category(session, category_id, customer_id=customer_id)
    return CategoryOut.model_validate(category)


@categories_router.patch("/{category_id}", response_model=CategoryOut)
async def update_category(
    category_id: int,
    request: UpdateCategoryRequest,
    ctx: UserContext = Depends(manage_articles),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> CategoryOut:
    category = await article_categories.update_category(
        session,
        category_id,
        request.model_dump(exclude_unset=True),
        customer_id=customer_id,
    )
    return CategoryOut.model_validate(category)


@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    ctx: UserContext = Depends(manage_articles),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await article_categories.delete_category(session, category_id, customer_id=customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------


@articles_router.get("", response_model=PageOut[ArticleOut])
async def list_articles(
    category_ids: list[int] | None = Query(default=None),
    statuses: list[str] | None = Query(default=None),
    search: str | None = None,
    params: PageParams = Depends(page_params),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
):
    page = await articles.list_articles(
        session,
        customer_id=customer_id,
        params=params,
        category_ids=category_ids,
        statuses=statuses,
        search=search,
    )
    return page_out(page, ArticleOut.model_validate)


@articles_router.post("", response_model=ArticleOut, status_code=status.HTTP_201_CREATED)
async def create_article(
    request: CreateArticleRequest,
    ctx: UserContext = Depends(manage_articles),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> ArticleOut:
    article = await articles.create_article(
        session,
        broadcaster,
        customer_id=customer_id,
        title=request.title,
        content=request.content,
        category_id=request.category_id,
        subcategory=request.subcategory,
        status=request.status,
        video_url=request.video_url,
        created_by=ctx.user_id,
    )
    return ArticleOut.model_validate(article)


@articles_router.get("/{article_id}", response_model=ArticleOut)
async def get_article(
    article_id: int,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> ArticleOut:
    article = await articles.get_article(session, article_id, customer_id=customer_id)
    return ArticleOut.model_validate(article)


@articles_router.post("/{article_id}/views", response_model=ArticleOut)
async def record_view(
    article_id: int,
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> ArticleOut:
    article = await articles.record_view(session, article_id, customer_id=customer_id)
    return ArticleOut.model_validate(article)


@articles_router.patch("/{article_id}", response_model=ArticleOut)
async def update_article(
    article_id: int,
    request: UpdateArticleRequest,
    ctx: UserContext = Depends(manage_articles),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
    broadcaster: RealtimeBroadcaster = Depends(get_broadcaster),
) -> ArticleOut:
    article = await articles.update_article(
        session,
        broadcaster,
        article_id,
        request.model_dump(exclude_unset=True),
        customer_id=customer_id,
    )
    return ArticleOut.model_validate(article)


@articles_router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(
    article_id: int,
    ctx: UserContext = Depends(manage_articles),
    customer_id: str = Depends(active_customer),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await articles.delete_article(session, article_id, customer_id=customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
