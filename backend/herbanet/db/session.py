# backend/herbanet/db/session.py
from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from herbanet.core.config import settings


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE CASCADE / SET NULL unless the pragma is on per connection."""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str) -> AsyncEngine:
    """Async engine with pre-ping on checkout; SQLite connections get foreign keys enforced."""
    async_engine = create_async_engine(url, echo=False, pool_pre_ping=True)
    enable_sqlite_foreign_keys(async_engine)
    return async_engine


# asyncpg rejects sslmode and channel_binding, so the stripped URL is used here.
engine: AsyncEngine = build_engine(settings.DATABASE_URL_ASYNC_CLEAN)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; units of work inside commit through db.unit_of_work.atomic."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
