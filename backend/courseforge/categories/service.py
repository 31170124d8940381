"""Category queries and default seeding."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from courseforge.categories.models import Category


logger = logging.getLogger(__name__)


async def list_categories(session: AsyncSession) -> list[Category]:
    """Return every category ordered by name."""
    result = await session.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def seed_categories(session: AsyncSession, names: list[str]) -> int:
    """Insert ``names`` when the categories table is empty.

    Returns
    -------
        Number of categories inserted
    """
    existing = await session.scalar(select(func.count()).select_from(Category)) or 0
    if existing:
        return 0

    session.add_all([Category(name=name) for name in names])
    await session.commit()
    logger.info("Seeded %d default categories", len(names))
    return len(names)
