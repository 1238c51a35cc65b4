"""Async SQLAlchemy store handle and per-request sessions.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

The engine lives inside an explicitly constructed Database object rather than
a module global. The app lifespan creates it at startup and closes it at
shutdown; tests build their own and hand it to create_app().
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from matrixstore.config import Settings

logger = structlog.get_logger()


class Database:
    """Owns the connection pool and tracks sessions checked out of it."""

    def __init__(self, engine: AsyncEngine, shutdown_grace_seconds: float = 10.0):
        self.engine = engine
        self.shutdown_grace_seconds = shutdown_grace_seconds
        # Session factory — each request gets its own session.
        self.session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._in_flight = 0
        self._drained = asyncio.Event()
        self._drained.set()
        self._closing = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        kwargs: dict = {"echo": settings.debug, "pool_pre_ping": True}
        if settings.database_url.startswith("postgresql"):
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                connect_args={"command_timeout": settings.db_command_timeout},
            )
        engine = create_async_engine(settings.database_url, **kwargs)
        return cls(engine, shutdown_grace_seconds=settings.shutdown_grace_seconds)

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Check out one session; it is closed on every exit path."""
        if self._closing:
            raise RuntimeError("Database is shutting down")
        self._in_flight += 1
        self._drained.clear()
        try:
            async with self.session_factory() as session:
                yield session
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._drained.set()

    async def create_all(self) -> None:
        """Create tables straight from the models (tests and `init-db`)."""
        from matrixstore.db.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Stop new checkouts, wait for in-flight sessions, dispose the pool."""
        self._closing = True
        if self._in_flight:
            logger.info("database.draining", in_flight=self._in_flight)
            try:
                await asyncio.wait_for(
                    self._drained.wait(), timeout=self.shutdown_grace_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "database.drain_timeout",
                    in_flight=self._in_flight,
                    grace_seconds=self.shutdown_grace_seconds,
                )
        await self.engine.dispose()
        logger.info("database.closed")


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with get_database(request).session() as session:
        yield session
