"""
Database handle and session management
"""

from typing import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
import structlog

logger = structlog.get_logger(__name__)


class Database:
    """Owns the async engine and session factory for one application instance"""

    def __init__(self, url: str, echo: bool = False):
        url = url.replace("postgresql://", "postgresql+asyncpg://")
        engine_kwargs = {"echo": echo, "future": True}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in url:
                # In-memory SQLite must share a single connection across sessions
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        self.url = url
        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            bind=self.engine,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create all tables straight from the SQLModel metadata (tests); deployments run alembic"""
        # Import models so their tables are registered
        import crm.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database tables created")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_maker() as session:
            yield session

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")


def get_database(request: Request) -> Database:
    """Dependency to get the database handle attached to the application"""
    return request.app.state.database


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency to get database session"""
    async with get_database(request).session() as session:
        yield session
