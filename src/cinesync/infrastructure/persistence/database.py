"""Database session management."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cinesync.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """Database connection and session manager."""

    def __init__(self, settings: Settings) -> None:
        """Initialize database with settings."""
        self.settings = settings

        engine_kwargs: dict[str, Any] = {
            "echo": settings.database.echo,
            "pool_pre_ping": settings.database.pool_pre_ping,
        }

        # Only apply pool settings for PostgreSQL
        if "postgresql" in settings.database.url:
            engine_kwargs.update(
                {
                    "pool_size": settings.database.pool_size,
                    "max_overflow": settings.database.max_overflow,
                    "pool_timeout": settings.database.pool_timeout,
                    "pool_recycle": settings.database.pool_recycle,
                }
            )
        elif "sqlite" in settings.database.url:
            # Hey future me - the 30s timeout is what makes the sync lock work on SQLite! A second
            # acquirer blocks on the RESERVED lock taken by the first one's claim UPDATE and only
            # proceeds after that transaction commits. Lower this and concurrent syncs start
            # failing with "database is locked" instead of a clean 409.
            engine_kwargs.update(
                {
                    "connect_args": {
                        "check_same_thread": False,
                        "timeout": 30,
                    }
                }
            )

        self._engine = create_async_engine(
            settings.database.url,
            **engine_kwargs,
        )

        if "sqlite" in settings.database.url:
            self._enable_sqlite_foreign_keys()

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _enable_sqlite_foreign_keys(self) -> None:
        """Enable foreign key constraints for SQLite.

        SQLite has foreign keys disabled by default. This method enables them
        for all connections.
        """

        @event.listens_for(self._engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            logger.debug("Enabled foreign keys for SQLite connection")

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session (FastAPI dependency style)."""
        async with self.session_scope() as session:
            yield session

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations.

        Commits on clean exit, rolls back and re-raises on any exception.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self) -> None:
        """Close database connection."""
        await self._engine.dispose()

    async def create_tables(self) -> None:
        """Create all tables (tests and first start without Alembic)."""
        from cinesync.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables (for testing only)."""
        from cinesync.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
