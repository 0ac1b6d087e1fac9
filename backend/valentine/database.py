"""
Valentine Backend: Database Handle
====================================

What:  Owns the async SQLAlchemy engine and session factory for the process.
Why:   An explicit handle passed through dependencies instead of module
       globals, so tests attach their own database and nothing connects
       at import time.
How:   `Database.connect()` builds the engine, pings it and creates the
       surprises table when missing; `session()` hands out a unit of work
       that commits on success and rolls back on error.
Who:   Created by the application lifespan, stored on `app.state.database`
       and injected into the storage layer through `get_database()`.
When:  Connected once before the server accepts traffic, disposed on shutdown.

Lifecycle:
    Database(url) ──connect()──▶ connected ──disconnect()──▶ closed
    Any session() call outside the connected state raises
    StorageUnavailableError instead of trying to reconnect.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from valentine.exceptions import StorageUnavailableError
from valentine.resolver import pin_database_url

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def engine_options(
    url: URL,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    connect_timeout: int = 30,
    echo: bool = False,
) -> Dict[str, Any]:
    """
    Keyword arguments for create_async_engine().

    SQLite (used by the test suite) gets no pool sizing or connect timeout;
    server databases get a bounded pool with pre-ping.
    """
    options: Dict[str, Any] = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        return options
    options.update(
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_recycle=3600,
        connect_args={"timeout": connect_timeout},
    )
    return options


class Database:
    """
    Explicitly owned connection to the surprise store.

    Args:
        url: Async SQLAlchemy URL (postgresql+asyncpg://..., sqlite+aiosqlite://...)
        dns_servers: Nameservers used to resolve the URL host; empty disables pinning
        **options: Passed through to engine_options()
    """

    def __init__(self, url: str, dns_servers: Optional[List[str]] = None, **options: Any):
        self.url = url
        self.dns_servers = list(dns_servers or [])
        self._options = options
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StorageUnavailableError()
        return self._engine

    async def connect(self) -> None:
        """
        Establish the engine, verify it with SELECT 1 and ensure the schema.

        Raises:
            StorageUnavailableError: URL is malformed, the host does not
                resolve, or the database refuses the connection.
        """
        if self._engine is not None:
            return

        try:
            url = await pin_database_url(make_url(self.url), self.dns_servers)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(
                message="Invalid database URL",
                context={"error": str(e)},
            )

        logger.info(
            "Connecting to database %s",
            url.render_as_string(hide_password=True),
        )
        try:
            engine = create_async_engine(url, **engine_options(url, **self._options))
        except SQLAlchemyError as e:
            raise StorageUnavailableError(
                message="Unsupported database URL",
                context={"error": str(e)},
            )

        try:
            async with engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                # Import registers the model on Base.metadata
                from valentine.models.surprise import Surprise  # noqa: F401
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            logger.error("Database connection failed: %s", e)
            raise StorageUnavailableError(
                message="Could not connect to the database",
                context={"error": str(e), "error_type": type(e).__name__},
            )

        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Connected to database")

    async def disconnect(self) -> None:
        """Dispose the engine and close all pooled connections."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connection closed")

    async def ping(self) -> bool:
        """Lightweight liveness check used by /health. Never raises."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database ping failed: %s", e)
            return False
        return True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Scoped unit of work.

        Commits when the block exits normally, rolls back and re-raises on
        any exception, and always returns the connection to the pool.
        """
        if self._session_factory is None:
            raise StorageUnavailableError()

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def get_database(request: Request) -> Database:
    """
    FastAPI dependency returning the process-wide database handle.

    The lifespan stores the connected handle on app.state; requests served
    without one (startup skipped or failed) get StorageUnavailableError.
    """
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise StorageUnavailableError()
    return database
