"""
Database Session Factory
Creates async SQLAlchemy sessions with proper configuration
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class DatabaseSessionFactory:
    """
    Factory for creating async database sessions.

    Manages the async engine and session maker.
    Each TenantStore write runs in its own short session: the store promises
    single-document atomicity only.
    """

    def __init__(self, database_url: str, echo: bool = False, pool_size: int = 5, max_overflow: int = 10) -> None:
        """
        Initialize session factory with database connection.

        Args:
            database_url: Async connection string (postgresql+asyncpg, sqlite+aiosqlite in tests)
            echo: Whether to log SQL statements (debug mode)
            pool_size: Connection pool size
            max_overflow: Max overflow connections beyond pool_size
        """
        self.database_url = database_url
        self.echo = echo

        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,  # Verify connections before using
                pool_recycle=3600,
            )

        self.engine: AsyncEngine = create_async_engine(database_url, **engine_kwargs)

        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,
        )

        logger.info(
            "database_session_factory_initialized",
            pool_size=pool_size,
            max_overflow=max_overflow,
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """
        Async context manager for sessions.

        Usage:
            async with factory.get_session() as session:
                ...
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception as e:
                await session.rollback()
                logger.error("session_rolled_back", error=str(e))
                raise

    async def create_all(self, metadata: Any) -> None:
        """Create tables for the given metadata (local/dev and tests)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        """Close all connections and dispose of the engine."""
        await self.engine.dispose()
        logger.info("database_engine_disposed")
