"""Tests for page arithmetic and the paginate helper."""

from sqlalchemy import select

from baseplate import models
from baseplate.config import settings
from baseplate.pagination import PageMeta, PageParams, paginate


def test_page_meta_middle_page():
    meta = PageMeta.build(25, PageParams(page=2, per_page=10))
    assert (meta.total, meta.last_page, meta.current_page, meta.per_page) == (25, 3, 2, 10)
    assert meta.prev == 1
    assert meta.next == 3


def test_page_meta_edges():
    first = PageMeta.build(5, PageParams(page=1, per_page=10))
    assert first.prev is None and first.next is None and first.last_page == 1

    empty = PageMeta.build(0, PageParams(page=1, per_page=10))
    assert empty.last_page == 0
    assert empty.next is None


def test_params_are_clamped():
    params = PageParams.of(0, 10_000)
    assert params.page == 1
    assert params.per_page == settings.pagination.max_per_page

    params = PageParams.of(3, None, default_per_page=12)
    assert params.per_page == 12
    assert params.offset == 24
    assert params.limit == 12


async def test_paginate_counts_and_slices(session, world):
    for i in range(7):
        session.add(models.ArticleCategory(customer_id=world.acme.id, name=f"Category {i}"))
    await session.commit()

    stmt = select(models.ArticleCategory).order_by(models.ArticleCategory.id)
    page = await paginate(session, stmt, PageParams(page=2, per_page=3))

    assert [c.name for c in page.data] == ["Category 3", "Category 4", "Category 5"]
    assert page.meta.total == 7
    assert page.meta.last_page == 3
    assert page.meta.next == 3
