"""Schema creation and lookup-row seeding run at application startup."""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

# Models must be imported so their tables are on Base.metadata
from courseforge.categories import models as _category_models  # noqa: F401
from courseforge.categories.service import seed_categories
from courseforge.chapters import models as _chapter_models  # noqa: F401
from courseforge.config.settings import get_settings
from courseforge.courses import models as _course_models  # noqa: F401

from .base import Base
from .session import session_scope


logger = logging.getLogger(__name__)


async def init_database(db_engine: AsyncEngine) -> None:
    """Create missing tables and seed the default categories.

    ``create_all`` never alters existing tables; schema changes go through Alembic.
    """
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready: %s", ", ".join(sorted(Base.metadata.tables)))

    async with session_scope(async_sessionmaker(db_engine, expire_on_commit=False)) as session:
        await seed_categories(session, get_settings().DEFAULT_CATEGORIES)
