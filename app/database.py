"""
Mithaq — Async Database Engine & Session Factory

Builds a single async SQLAlchemy engine from ``DATABASE_URL`` and exposes a
session factory for the repository layer and the health probe.

The engine is constructed lazily on first use so that importing the ORM
models (tests, Alembic) never opens a connection pool.
"""

from __future__ import annotations

from functools import lru_cache

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

logger = structlog.get_logger("mithaq.database")


# ------------------------------------------------------------------ #
# Declarative base for all ORM models
# ------------------------------------------------------------------ #

class Base(DeclarativeBase):
    """Shared declarative base.

    Every SQLAlchemy model in the project should inherit from this class::

        from app.database import Base

        class CompatibilityReportRecord(Base):
            __tablename__ = "compatibility_reports"
            ...
    """
    pass


# ------------------------------------------------------------------ #
# Pool configuration
# ------------------------------------------------------------------ #

_POOL_KWARGS = {
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}


def _normalise_url(url: str) -> str:
    # Transparently upgrade a plain ``postgresql://`` scheme so that
    # developers do not need to remember the asyncpg dialect prefix.
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str | None = None) -> AsyncEngine:
    """Create an async engine for *url* (defaults to ``DATABASE_URL``).

    SQLite URLs skip the pool tuning since aiosqlite does not use a
    queue pool.
    """
    settings = get_settings()
    url = _normalise_url(url or settings.DATABASE_URL)

    kwargs: dict = {"echo": settings.LOG_LEVEL == "DEBUG"}
    if not url.startswith("sqlite"):
        kwargs.update(
            _POOL_KWARGS,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )

    engine = create_async_engine(url, **kwargs)
    logger.info("database_engine_created", dialect=engine.dialect.name)
    return engine


# ------------------------------------------------------------------ #
# Process-wide engine & session factory (lazy-initialised)
# ------------------------------------------------------------------ #

@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    return build_engine()


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_engine() -> None:
    """Close the pooled connections if the engine was ever created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_session_factory.cache_clear()
        get_engine.cache_clear()
        logger.info("database_engine_disposed")

