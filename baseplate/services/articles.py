"""Documentation articles.

Publishing an article (on create, or by moving an existing one to
``published``) notifies every user of the customer.
"""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from edge.realtime import RealtimeBroadcaster

from .. import models
from ..errors import ConflictError, NotFoundError
from ..pagination import Page, PageParams, paginate
from ..queries import search_clause
from ..sanitize import sanitize_editor_html
from .article_categories import get_category
from .notifications import create_notification

logger = logging.getLogger(__name__)

PUBLISHED = "published"
EDITABLE_FIELDS = ("title", "category_id", "subcategory", "content", "status", "video_url")


async def _notify_published(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    article: models.Article,
) -> None:
    try:
        await create_notification(
            session,
            broadcaster,
            customer_id=article.customer_id,
            title="New Article Published",
            message=f'A new article "{article.title}" has been published.',
            channel="article",
            type=["in_app"],
            generated_by="system (article service)",
        )
    except ConflictError as e:
        logger.warning(f"Article {article.id} published without notification: {e.detail}")


async def create_article(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    *,
    customer_id: str,
    title: str,
    content: str = "",
    category_id: int | None = None,
    subcategory: str | None = None,
    status: str = "draft",
    video_url: str | None = None,
    created_by: str | None = None,
) -> models.Article:
    """Create an article; a published one triggers the customer notification.

    Raises:
        NotFoundError: If ``category_id`` belongs to another customer
        ConflictError: If the row cannot be stored
    """
    logger.info(f"Create article with title {title}")
    if category_id is not None:
        await get_category(session, category_id, customer_id=customer_id)

    article = models.Article(
        customer_id=customer_id,
        title=title,
        content=sanitize_editor_html(content),
        category_id=category_id,
        subcategory=subcategory,
        status=status,
        video_url=video_url,
        created_by=created_by,
        published_at=models.utcnow() if status == PUBLISHED else None,
    )
    session.add(article)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error creating article: {e}")
        await session.rollback()
        raise ConflictError("Article cannot be created.") from e
    await session.refresh(article)

    if article.status == PUBLISHED:
        await _notify_published(session, broadcaster, article)
    return article


async def list_articles(
    session: AsyncSession,
    *,
    customer_id: str,
    params: PageParams,
    category_ids: list[int] | None = None,
    statuses: list[str] | None = None,
    search: str | None = None,
) -> Page[models.Article]:
    A = models.Article
    stmt = select(A).where(A.customer_id == customer_id)
    if category_ids:
        stmt = stmt.where(A.category_id.in_(category_ids))
    if statuses:
        stmt = stmt.where(A.status.in_(statuses))
    if search and search.strip():
        stmt = stmt.where(search_clause(search, A.title, A.subcategory, A.content))
    stmt = stmt.order_by(A.id.desc())
    return await paginate(session, stmt, params)


async def get_article(session: AsyncSession, article_id: int, *, customer_id: str) -> models.Article:
    stmt = select(models.Article).where(
        models.Article.id == article_id,
        models.Article.customer_id == customer_id,
    )
    article = (await session.execute(stmt)).unique().scalar_one_or_none()
    if article is None:
        raise NotFoundError(f"Article with ID {article_id} not found")
    return article


async def update_article(
    session: AsyncSession,
    broadcaster: RealtimeBroadcaster,
    article_id: int,
    changes: dict,
    *,
    customer_id: str,
) -> models.Article:
    """Partial update; moving into ``published`` notifies the customer."""
    article = await get_article(session, article_id, customer_id=customer_id)
    previous_status = article.status

    if changes.get("category_id") is not None:
        await get_category(session, changes["category_id"], customer_id=customer_id)

    for key in EDITABLE_FIELDS:
        if key not in changes:
            continue
        value = changes[key]
        if key == "content" and value is not None:
            value = sanitize_editor_html(value)
        setattr(article, key, value)

    newly_published = previous_status != PUBLISHED and article.status == PUBLISHED
    if newly_published:
        article.published_at = models.utcnow()

    await session.commit()
    await session.refresh(article)

    if newly_published:
        await _notify_published(session, broadcaster, article)
    return article


async def record_view(session: AsyncSession, article_id: int, *, customer_id: str) -> models.Article:
    article = await get_article(session, article_id, customer_id=customer_id)
    article.views_number = (article.views_number or 0) + 1
    await session.commit()
    await session.refresh(article)
    return article


async def delete_article(session: AsyncSession, article_id: int, *, customer_id: str) -> None:
    article = await get_article(session, article_id, customer_id=customer_id)
    await session.delete(article)
    await session.commit()
    logger.info(f"Deleted article {article_id} for customer {customer_id}")
