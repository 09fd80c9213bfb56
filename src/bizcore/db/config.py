"""Database configuration and session management.

There is no module-level engine. The application (or a batch job) builds one
from settings and owns its lifetime; services receive an ``AsyncSession``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from bizcore.config.settings import Settings
from bizcore.db.models.base import Base


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create an async engine for ``settings.DATABASE_URL``.

    Pool sizing only applies to server databases; SQLite and the test
    environment use their dialect defaults or no pooling at all.
    """
    kwargs: dict = {"echo": settings.DEBUG}
    if settings.ENVIRONMENT == "test":
        kwargs["poolclass"] = NullPool
    elif not settings.DATABASE_URL.startswith("sqlite"):
        kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
        kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return create_async_engine(settings.DATABASE_URL, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``; objects stay usable after commit."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Verify connectivity before accepting requests."""
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables. Used for SQLite development databases and tests;
    PostgreSQL deployments run the Alembic migrations instead."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    """Release all pooled connections."""
    await engine.dispose()


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for obtaining a session outside FastAPI dependency injection.

    Usage:
        async with session_scope(factory) as session:
            await ConsolidationEngine(session).run()
    """
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
