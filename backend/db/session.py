"""
ShelfSignal Database Session Management

Async SQLAlchemy engine and session factory for the reference repositories.
The engine is built on first use so importing the ORM models never opens a
connection.
"""

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""

    pass


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    options = {"echo": settings.database_echo, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10)
    return create_async_engine(settings.database_url, **options)


def get_sessionmaker(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine or get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_all(engine: AsyncEngine | None = None) -> None:
    """Create every table registered on ``Base``."""
    import db.models  # noqa: F401  (registers tables)

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
