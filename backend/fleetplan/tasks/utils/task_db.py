"""Database session utilities for Dramatiq background tasks."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import fleetplan.models  # noqa: F401
from fleetplan.config import settings


@asynccontextmanager
async def task_session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession]]:
    """Context manager that provides a session factory for background tasks.

    Creates a fresh engine bound to the current event loop and disposes its
    connection pool on exit. Each asyncio.run() call creates a new event
    loop, and database connections must be bound to the loop they run on.

    Usage:
        async with task_session_maker() as session_factory:
            sweep = RecurringSweepService(session_factory, ...)
            await sweep.run()
    """
    engine = create_async_engine(
        settings.database_url,
        echo=False,  # SQL logging controlled via structlog configuration
        future=True,
        pool_size=2,
        max_overflow=3,
        pool_pre_ping=True,
        isolation_level="READ COMMITTED",
    )
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        # Dispose engine to release all connections back to PostgreSQL
        await engine.dispose()


@asynccontextmanager
async def task_db_session() -> AsyncGenerator[AsyncSession]:
    """Single session on a task-local engine; commits on success, rolls back on error."""
    async with task_session_maker() as session_factory:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise
