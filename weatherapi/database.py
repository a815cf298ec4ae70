"""Async database engine and session management.

Uses SQLAlchemy 2.0 async (aiosqlite by default, any async driver via
DATABASE_URL). Graceful degradation: if the database is unavailable, the app
continues and the durable cache layer always misses.
"""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from weatherapi.config import settings

logger = logging.getLogger(__name__)


def create_engine(database_url: str | None = None, **kwargs) -> AsyncEngine:
    """Build an async engine. Pool sizing only applies to server databases."""
    url = database_url or settings.database_url
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 5)
        kwargs.setdefault("max_overflow", 10)
    return create_async_engine(url, echo=False, pool_pre_ping=True, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> bool:
    """Create tables if they don't exist. Returns True on success."""
    from weatherapi.models import Base

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
        return True
    except Exception as e:
        logger.warning("Database unavailable — continuing without persistence: %s", str(e)[:200])
        return False


async def close_db(engine: AsyncEngine):
    """Dispose engine connections on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
