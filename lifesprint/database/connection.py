"""
Database connection and session management.

Provides an async SQLAlchemy engine and session factory. PostgreSQL (asyncpg)
is the production backend with a QueuePool; SQLite (aiosqlite) is used for
local runs and tests.

Every service operation runs inside one ``Database.session()`` block, which
is one transaction: it commits when the block exits normally and rolls back
on any exception.
"""

import logging
from typing import AsyncGenerator, Optional, Dict, Any
from contextlib import asynccontextmanager

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import NullPool, QueuePool

from config import settings
from .models import Base
from .exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str) -> str:
    """Map plain postgres:// URLs onto the asyncpg driver."""
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


class Database:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    @property
    def is_sqlite(self) -> bool:
        return bool(self.database_url) and self.database_url.startswith("sqlite")

    async def initialize(self) -> bool:
        """Initialize database connection and create tables."""
        if self._initialized:
            return True

        database_url = self.database_url or settings.database_url
        if not database_url:
            logger.warning("DATABASE_URL not configured")
            return False

        self.database_url = normalize_database_url(database_url)

        try:
            self.engine = create_async_engine(
                self.database_url,
                echo=settings.database_echo,
                **self._engine_options()
            )

            if self.is_sqlite:
                self._install_sqlite_hooks(self.engine)

            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._initialized = True
            logger.info("Database initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Database initialization failed: {e}", exc_info=True)
            return False

    def _engine_options(self) -> Dict[str, Any]:
        """Pool and driver options for the configured backend."""
        if self.is_sqlite:
            # One connection per session; writers queue on the file lock
            return {
                "poolclass": NullPool,
                "connect_args": {"timeout": settings.sqlite_busy_timeout},
            }

        if settings.environment == "test":
            logger.info("Using NullPool for test environment")
            return {"poolclass": NullPool}

        logger.info(
            f"Database pool config: size={settings.db_pool_size}, "
            f"max_overflow={settings.db_max_overflow}, "
            f"timeout={settings.db_pool_timeout}s"
        )
        return {
            "poolclass": QueuePool,
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_timeout": settings.db_pool_timeout,
            "pool_recycle": settings.db_pool_recycle,
            "pool_pre_ping": True,
            "connect_args": {
                "server_settings": {
                    "application_name": "lifesprint",
                    "jit": "off",
                }
            },
        }

    @staticmethod
    def _install_sqlite_hooks(engine: AsyncEngine) -> None:
        """
        Make SQLite transactions take the write lock up front.

        pysqlite defers BEGIN until the first DML statement, so two sessions
        that both read before writing can deadlock on lock promotion.
        Emitting BEGIN IMMEDIATE ourselves serializes writers the way a row
        lock does on PostgreSQL, and keeps SAVEPOINT working.
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

    async def close(self):
        """Close database connection."""
        if self.engine:
            await self.engine.dispose()
            self._initialized = False
            logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session (one transaction)."""
        if not self._initialized:
            await self.initialize()

        if not self.session_factory:
            raise DatabaseConnectionError("Database not initialized")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database session error: {e}")
                raise
            except Exception:
                await session.rollback()
                raise

    async def is_available(self) -> bool:
        """Check if database is available."""
        if not self._initialized:
            return await self.initialize()
        return self._initialized

    async def health_check(self) -> dict:
        """Perform health check on database."""
        try:
            if not self._initialized:
                await self.initialize()

            async with self.session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            return {
                "status": "healthy",
                "initialized": self._initialized,
                "pool": self.get_pool_status(),
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
            }

    def get_pool_status(self) -> Dict[str, Any]:
        """Get connection pool status for monitoring."""
        if not self.engine:
            return {
                "status": "not_initialized",
                "error": "Engine not created"
            }

        pool = self.engine.pool

        if isinstance(pool, NullPool):
            return {
                "pool_type": "NullPool",
                "status": "no_pooling",
            }

        size = pool.size()
        checked_out = pool.checkedout()
        max_connections = size + settings.db_max_overflow
        utilization = checked_out / max(max_connections, 1)

        if utilization > 0.9:
            health = "critical"
        elif utilization > 0.8:
            health = "warning"
        else:
            health = "healthy"

        return {
            "pool_type": "QueuePool",
            "status": health,
            "size": size,
            "checked_in": pool.checkedin(),
            "checked_out": checked_out,
            "overflow": pool.overflow(),
            "max_connections": max_connections,
            "utilization": f"{utilization:.1%}",
        }


# Singleton instance
_database: Optional[Database] = None


def get_database() -> Database:
    """Get the database singleton."""
    global _database
    if _database is None:
        _database = Database()
    return _database


def set_database(database: Optional[Database]) -> None:
    """Replace the database singleton (tests, alternate deployments)."""
    global _database
    _database = database


async def init_database() -> bool:
    """Initialize the database."""
    db = get_database()
    return await db.initialize()


async def close_database():
    """Close the database connection."""
    global _database
    if _database:
        await _database.close()
        _database = None


@asynccontextmanager
async def session_scope(
    db: Database,
    session: Optional[AsyncSession] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Use the provided session, or open (and commit) a new one on db."""
    if session is not None:
        yield session
        return

    async with db.session() as new_session:
        yield new_session
