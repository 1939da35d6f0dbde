# backend/app/db/session.py
"""
Async database session management for the record store.

- asyncpg for PostgreSQL, aiosqlite for local SQLite
- SQLite connections get PRAGMA foreign_keys=ON so wallet rows cannot
  outlive their user
- Sessions never auto-commit; services commit explicitly so a failed
  uniqueness check leaves nothing half-written
"""
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from backend.app.core.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_async_engine() -> AsyncEngine:
    """
    Create the async engine.

    SQLite: NullPool, one connection per checkout, foreign keys enforced.
    PostgreSQL: small queue pool with pre-ping and periodic recycling.
    """
    if settings.is_sqlite:
        sqlite_engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )
        event.listen(sqlite_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine

    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )


engine: AsyncEngine = _create_async_engine()

# expire_on_commit=False: attributes stay readable after commit
# autoflush=False: writes happen only when a service flushes/commits
AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Usage:
        async def endpoint(db: AsyncSession = Depends(get_db)): ...

    The session is closed after the request, including on error. It does
    NOT commit.
    """
    async with AsyncSessionLocal() as session:
        yield session
