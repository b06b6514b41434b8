"""Article categories, scoped to a customer."""
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "subcategory", "about", "icon")


async def create_category(
    session: AsyncSession,
    *,
    customer_id: str,
    name: str,
    subcategory: str | None = None,
    about: str | None = None,
    icon: str | None = None,
    created_by: str | None = None,
) -> models.ArticleCategory:
    logger.info(f"Create category with name {name}")
    category = models.ArticleCategory(
        customer_id=customer_id,
        name=name,
        subcategory=subcategory,
        about=about,
        icon=icon,
        created_by=created_by,
    )
    session.add(category)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error creating category: {e}")
        await session.rollback()
        raise ConflictError("Category cannot be created.") from e
    await session.refresh(category)
    return category


async def list_categories(session: AsyncSession, *, customer_id: str) -> list[models.ArticleCategory]:
    stmt = (
        select(models.ArticleCategory)
        .where(models.ArticleCategory.customer_id == customer_id)
        .order_by(models.ArticleCategory.name, models.ArticleCategory.id)
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_subcategories(session: AsyncSession, *, customer_id: str) -> list[str]:
    """Distinct non-empty subcategories, alphabetically."""
    stmt = (
        select(models.ArticleCategory.subcategory)
        .where(
            models.ArticleCategory.customer_id == customer_id,
            models.ArticleCategory.subcategory.is_not(None),
        )
        .distinct()
        .order_by(models.ArticleCategory.subcategory)
    )
    return [s for s in (await session.execute(stmt)).scalars().all() if s]


async def get_category(session: AsyncSession, category_id: int, *, customer_id: str) -> models.ArticleCategory:
    stmt = select(models.ArticleCategory).where(
        models.ArticleCategory.id == category_id,
        models.ArticleCategory.customer_id == customer_id,
    )
    category = (await session.execute(stmt)).scalar_one_or_none()
    if category is None:
        raise NotFoundError(f"Category with ID {category_id} not found")
    return category


async def update_category(
    session: AsyncSession,
    category_id: int,
    changes: dict,
    *,
    customer_id: str,
) -> models.ArticleCategory:
    category = await get_category(session, category_id, customer_id=customer_id)
    for key in EDITABLE_FIELDS:
        if key in changes:
            setattr(category, key, changes[key])
    try:
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error updating category: {e}")
        await session.rollback()
        raise ConflictError("Category cannot be updated.") from e
    await session.refresh(category)
    return category


async def delete_category(session: AsyncSession, category_id: int, *, customer_id: str) -> None:
    logger.info(f"Delete category {category_id} for customer {customer_id}")
    await get_category(session, category_id, customer_id=customer_id)
    try:
        await session.execute(
            delete(models.ArticleCategory).where(
                models.ArticleCategory.id == category_id,
                models.ArticleCategory.customer_id == customer_id,
            )
        )
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error deleting category: {e}")
        await session.rollback()
        raise ConflictError("Category cannot be deleted.") from e
