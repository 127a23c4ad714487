# taskflow/adapters/outbound/persistence/database.py

"""
Async database client.

The engine and session factory are created explicitly at process start and
disposed at shutdown; repositories receive the session factory instead of
reaching for module globals.
"""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from taskflow.adapters.configuration.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine and the session factory."""

    def __init__(self, database_url: str, *, engine: Optional[AsyncEngine] = None, **engine_kwargs):
        self.database_url = database_url
        self.engine: AsyncEngine = engine or create_async_engine(database_url, **engine_kwargs)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        engine_kwargs = {"pool_pre_ping": True, "echo": settings.DEBUG}
        # SQLite (local runs) has no connection pool to size
        if not settings.DATABASE_URL.startswith("sqlite"):
            engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
        return cls(settings.DATABASE_URL, **engine_kwargs)

    async def create_all(self) -> None:
        """Create missing tables (tests and local development; production uses Alembic)."""
        from taskflow.adapters.outbound.persistence.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the application's Database."""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        yield session
