"""Database configuration and session management.

Provides the async SQLAlchemy engine and session factory wrapped in a
``Database`` handle that the application entry point owns.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for models."""


def _serialize_sqlite_writers(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first DML statement, and a deferred
    transaction that later upgrades its lock can fail with "database is
    locked" instead of waiting. BEGIN IMMEDIATE waits on the busy timeout.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """Store handle: one engine and its session factory.

    Constructed at startup, passed into services, disposed on shutdown.
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        """Initialize engine and session factory.

        Args:
            url: SQLAlchemy database URL.
            echo: Whether to log SQL statements.
        """
        self.url = url
        connect_args: dict[str, object] = {}
        if url.startswith("sqlite"):
            # Concurrent writers wait for the file lock instead of failing.
            connect_args["timeout"] = 30
        self.engine: AsyncEngine = create_async_engine(
            url, echo=echo, pool_pre_ping=True, connect_args=connect_args
        )
        if url.startswith("sqlite"):
            _serialize_sqlite_writers(self.engine)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session inside a single transaction.

        Commits when the block exits normally, rolls back on any exception.

        Yields:
            AsyncSession bound to the open transaction.
        """
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a plain session for reads.

        Yields:
            AsyncSession.
        """
        async with self.session_factory() as session:
            yield session

    async def create_all(self) -> None:
        """Create all tables (development and tests; production uses alembic)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Check connectivity.

        Returns:
            True if a trivial query succeeds.
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
