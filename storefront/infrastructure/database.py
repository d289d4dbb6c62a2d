"""Database configuration and session management.

Provides the async SQLAlchemy engine and session factory, owned by a
Database object that the application opens and closes in its lifespan.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

logger = structlog.get_logger()

# Base class for models
Base = declarative_base()


class Database:
    """Async engine plus session factory.

    Example usage:
        db = Database("sqlite+aiosqlite:///:memory:")
        await db.connect()
        await db.create_all()
        async with db.session() as session:
            ...
        await db.disconnect()
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        """Initialize database.

        Args:
            url: SQLAlchemy async database URL.
            echo: Log emitted SQL.
        """
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """The connected engine."""
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    async def connect(self) -> None:
        """Create the engine and session factory."""
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database connected", url=make_url(self.url).render_as_string(hide_password=True))

    async def create_all(self) -> None:
        """Create any missing tables."""
        # Registers the mapped tables on Base.metadata.
        from storefront.infrastructure import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        """Dispose of the engine and its pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that commits on success and rolls back on error.

        Yields:
            AsyncSession for database operations.
        """
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
