"""
Database Connection Module

Wraps the SQLAlchemy async engine and session factory in an explicit
Database handle. The application lifespan creates one handle at startup,
stores it on ``app.state`` and disposes it at shutdown; request handlers
receive sessions through the ``get_db`` dependency.
"""

import logging
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from canteen.core.config import Settings

logger = logging.getLogger(__name__)


# Base class for all our models
class Base(DeclarativeBase):
    pass


class Database:
    """
    Store handle: one async engine plus its session factory.

    SQLite URLs (used by the test-suite and local tooling) skip the pool
    sizing options; an in-memory database gets a single shared connection
    so it survives across sessions.
    """

    def __init__(self, url: str, echo: bool = False, pool_size: int = 10, max_overflow: int = 10):
        self.url = url

        if url.startswith("sqlite"):
            options = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url:
                options["poolclass"] = StaticPool
            self.engine = create_async_engine(url, echo=echo, **options)
        else:
            self.engine = create_async_engine(
                url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
            )

        self.session_maker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Objects remain accessible after commit
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )

    def session(self) -> AsyncSession:
        return self.session_maker()

    async def create_all(self) -> None:
        """
        Create all tables in database.
        Called once at application startup.
        """
        # Import models so they register on Base.metadata
        from canteen import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def ping(self) -> None:
        async with self.session_maker() as session:
            await session.execute(select(1))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        finally:
            await session.close()
