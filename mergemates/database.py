"""
MergeMates — Async Database Engine & Session Factory

The engine is built lazily from ``DATABASE_URL`` the first time it is needed,
so importing the ORM models never opens a connection pool.  PostgreSQL
(``asyncpg``) is the production target; ``sqlite+aiosqlite`` URLs are
accepted for local runs and tests.

``get_db`` is the async generator used for FastAPI dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import AsyncGenerator

import structlog
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from mergemates.config import get_settings

logger = structlog.get_logger("mergemates.database")


# ------------------------------------------------------------------ #
# Declarative base for all ORM models
# ------------------------------------------------------------------ #

class Base(DeclarativeBase):
    """Shared declarative base.

    Every SQLAlchemy model in the project should inherit from this class::

        from mergemates.database import Base

        class User(Base):
            __tablename__ = "users"
            ...
    """
    pass


JSONType = JSON().with_variant(JSONB(), "postgresql")


# ------------------------------------------------------------------ #
# Engine construction helpers
# ------------------------------------------------------------------ #

def normalise_database_url(url: str) -> str:
    """Upgrade a plain ``postgresql://`` scheme to the asyncpg dialect."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINT behaves.

    The sqlite3 driver issues its own implicit transactions, which breaks
    ``session.begin_nested()``; this hands transaction control back to
    SQLAlchemy.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``url`` with pool settings per backend."""
    url = normalise_database_url(url)

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo)
        enable_sqlite_savepoints(engine)
        return engine

    settings = get_settings()
    return create_async_engine(
        url,
        echo=echo,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    settings = get_settings()
    engine = build_engine(settings.DATABASE_URL, echo=(settings.LOG_LEVEL == "DEBUG"))
    logger.info("database_engine_created", dialect=engine.dialect.name)
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ------------------------------------------------------------------ #
# FastAPI dependency
# ------------------------------------------------------------------ #

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` and commit or roll back afterwards.

    Usage in a FastAPI route::

        from fastapi import Depends
        from mergemates.database import get_db

        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
