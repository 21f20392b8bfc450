"""PostgreSQL store with async SQLAlchemy.

Handles:
- Engine and session factory ownership (one `Database` per process)
- Liveness probe used by the connection establisher
- Table auto-creation at startup
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from item_service.stores.connection import ConnectionTarget


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class Database:
    """Engine plus session factory, passed explicitly to the SQL item store."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session context manager.

        Commits on normal exit, rolls back and re-raises on error.

        Usage:
            async with database.session() as session:
                result = await session.execute(query)
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self, timeout: float) -> None:
        """Liveness probe: SELECT 1 bounded by timeout."""
        async def _probe() -> None:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

        await asyncio.wait_for(_probe(), timeout)

    async def create_tables(self) -> None:
        """Create all tables that do not exist yet."""
        # Import models so they register on Base.metadata.
        import item_service.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables (for testing only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        await self.engine.dispose()


async def open_database(target: ConnectionTarget, *, timeout: float, echo: bool = False) -> Database:
    """Create the engine and verify it with a liveness probe.

    The engine is disposed again when the probe fails.
    """
    url = target.sqlalchemy_url()
    engine_kwargs: dict[str, object] = {
        "echo": echo,
        "connect_args": target.connect_args(timeout),
        "pool_pre_ping": True,
    }
    if target.uses_asyncpg:
        engine_kwargs.update(pool_size=5, max_overflow=10)

    database = Database(create_async_engine(url, **engine_kwargs))
    try:
        await database.ping(timeout)
    except BaseException:
        await database.close()
        raise
    return database
