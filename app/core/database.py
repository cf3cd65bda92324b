"""
Async database setup using SQLModel with aiosqlite.
"""

import logging

from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from typing import AsyncGenerator
from app.models import *

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
)


AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    class_=AsyncSession
)


async def init_db() -> None:
    """Initialize database tables and the moderation settings row."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    from app.handlers.moderation import ensure_moderation_setting

    async with AsyncSessionLocal() as session:
        await ensure_moderation_setting(session, settings.default_moderation_mode)

    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session."""
    async with AsyncSessionLocal() as session:
        yield session
