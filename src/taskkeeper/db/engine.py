"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection
pooling, async_sessionmaker for short-lived sessions. Both are built once
by the composition root (taskkeeper.container) and passed to the stores;
nothing creates an engine lazily on first use.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskkeeper.config import Settings
from taskkeeper.db.models import Base


def build_engine(settings: Settings) -> AsyncEngine:
    # echo=True in debug mode to see SQL queries.
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=15,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet (no migrations involved)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
