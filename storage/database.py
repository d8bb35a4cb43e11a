"""
Relational store utilities for async operations.
Handles engine lifecycle, schema creation and the transactional unit of work
every service runs in.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import structlog
from sqlalchemy import event, func, select, text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from storage.models import Base, BookRecord, LoanRecord, UserRecord
from utilities.errors import TransientStoreError
from utilities.logger import AuditLogger

logger = structlog.get_logger(__name__)


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    Make SQLite take the write lock when a transaction starts.

    pysqlite/aiosqlite defer BEGIN until the first write, which lets two
    read-check-then-write transactions interleave. Emitting BEGIN IMMEDIATE
    ourselves serializes writers; the second one waits on the busy timeout.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class LibraryStore:
    """
    Async relational store for the library backend.
    Owns the engine and session factory; services receive an instance that
    is already connected.
    """

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize the store.

        Args:
            database_url: SQLAlchemy async URL (sqlite+aiosqlite or postgresql+asyncpg)
            echo: Log every SQL statement
        """
        self.database_url = database_url
        self.echo = echo
        self.audit = AuditLogger()
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    async def connect(self) -> None:
        """Create the engine, verify connectivity and create missing tables."""
        try:
            self.engine = create_async_engine(self.database_url, echo=self.echo)
            if self.is_sqlite:
                _install_sqlite_hooks(self.engine)
            self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                await conn.run_sync(Base.metadata.create_all)

            logger.info("Successfully connected to relational store", url=self._safe_url())

        except (OperationalError, InterfaceError, OSError) as e:
            logger.error("Failed to connect to relational store", url=self._safe_url(), error=str(e))
            raise TransientStoreError() from e

    async def disconnect(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine:
            await self.engine.dispose()
            logger.info("Disconnected from relational store")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Run a unit of work in a single transaction.

        Commits when the block exits normally and rolls back when it raises.
        Connection and operational failures surface as TransientStoreError;
        integrity errors propagate unchanged so callers can map them.
        """
        if self.session_factory is None:
            raise RuntimeError("LibraryStore.connect() must be awaited before use")

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except (OperationalError, InterfaceError, ConnectionError) as e:
            self.audit.log_store_error(
                "transaction",
                str(e),
                error_type=type(e).__name__,
                url=self._safe_url(),
            )
            raise TransientStoreError() from e

    async def health_check(self) -> Dict:
        """
        Perform store health check.

        Returns:
            Dictionary with health status
        """
        try:
            async with self.transaction() as session:
                users_count = await session.scalar(select(func.count()).select_from(UserRecord))
                books_count = await session.scalar(select(func.count()).select_from(BookRecord))
                loans_count = await session.scalar(select(func.count()).select_from(LoanRecord))

            return {
                "status": "healthy",
                "users_count": users_count,
                "books_count": books_count,
                "loans_count": loans_count,
            }
        except Exception as e:
            logger.error("Store health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    def _safe_url(self) -> str:
        if self.engine is not None:
            return self.engine.url.render_as_string(hide_password=True)
        return self.database_url.split("@")[-1]
