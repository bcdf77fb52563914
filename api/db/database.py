"""Async SQLAlchemy engine, session factory and the declarative base."""

import logging
from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


# Pool settings for managed Postgres, which drops idle connections
POSTGRES_ENGINE_OPTIONS = {
    "pool_pre_ping": True,
    "pool_recycle": 300,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
}


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, url: str, **engine_options):
        if not engine_options and url.startswith("postgresql"):
            engine_options = dict(POSTGRES_ENGINE_OPTIONS)
        self.engine: AsyncEngine = create_async_engine(url, **engine_options)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)

    async def create_all(self) -> None:
        # Import models so every table is registered on Base.metadata
        import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, closed afterwards."""
    database: Database = request.app.state.db
    async with database.sessionmaker() as session:
        yield session
