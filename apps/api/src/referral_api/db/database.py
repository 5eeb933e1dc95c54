"""Database connection and session management.

Provides async SQLAlchemy engine and session factory.
"""

from collections.abc import AsyncGenerator
from uuid import uuid4

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool

from referral_api.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores foreign keys unless asked per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


_MEMORY_URLS = ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:")


def create_engine_for_url(database_url: str, **engine_kwargs) -> AsyncEngine:
    """Create an async engine for the given URL.

    SQLite URLs are routed through aiosqlite with foreign keys enabled.
    In-memory SQLite becomes a private shared-cache database: each session
    gets its own connection and transaction, and the data lives as long as
    the pool holds a connection.
    Extra keyword arguments are passed to ``create_async_engine``.
    """
    if database_url.startswith("sqlite"):
        # SQLite async requires aiosqlite
        if not database_url.startswith("sqlite+aiosqlite"):
            database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)

        if database_url in _MEMORY_URLS:
            database_url = (
                f"sqlite+aiosqlite:///file:referrals-{uuid4().hex}"
                "?mode=memory&cache=shared&uri=true"
            )
        if "mode=memory" in database_url:
            # One connection per session; StaticPool would share a transaction
            engine_kwargs.setdefault("poolclass", AsyncAdaptedQueuePool)

        engine = create_async_engine(database_url, echo=False, **engine_kwargs)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    # PostgreSQL with asyncpg
    engine_kwargs.setdefault("pool_pre_ping", True)
    engine_kwargs.setdefault("pool_size", 5)
    engine_kwargs.setdefault("max_overflow", 10)
    return create_async_engine(database_url, echo=False, **engine_kwargs)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory that keeps objects usable after commit."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = create_engine_for_url(settings.database_url)

# Async session factory
async_session = create_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session.

    Usage:
        @router.get("/referrals")
        async def list_referrals(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Initialize database tables.

    Creates all tables defined in models if they don't exist.
    For production, use Alembic migrations instead.
    """
    # Register models on Base.metadata
    from referral_api.db import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
