"""Database engine and session factory management."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from trackhub.config import Settings
from trackhub.db.base import Base


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database URL."""
    if settings.is_sqlite:
        # SQLite drivers do not accept pool sizing arguments
        return create_async_engine(settings.database_url, echo=settings.debug)

    return create_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_pre_ping=True,
        echo=settings.debug,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used by the repositories."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Verify connectivity and create missing tables."""
    # Import models so every table is registered on the metadata
    import trackhub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Close database connection pool."""
    await engine.dispose()
