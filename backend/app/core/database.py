"""
Database engine and session management
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

Base = declarative_base()

# The engine is only created when a database is configured so that the
# in-memory backend and the test suite can import the models without one.
engine = (
    create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
    )
    if settings.DATABASE_URL
    else None
)

AsyncSessionLocal = (
    async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    if engine is not None
    else None
)


async def init_db() -> None:
    """Create tables that do not exist yet"""
    if engine is None:
        raise StorageError("DATABASE_URL is not configured")

    # Import models so they register with Base.metadata
    from app import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def close_db() -> None:
    if engine is not None:
        await engine.dispose()
