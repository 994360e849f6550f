"""
Database Engine Configuration for FastAPI.

SQLite (aiosqlite) is the default:
- WAL mode for concurrent readers during writes
- busy_timeout instead of immediate "database is locked" failures
- Foreign key enforcement, required for ON DELETE CASCADE

Any other async driver (e.g. postgresql+asyncpg) works through DB_URL; there the
product row locks taken by variant mutations become real SELECT ... FOR UPDATE.
"""

import logging
from typing import AsyncGenerator
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from ecommerce.core.config import config as settings

logger = logging.getLogger(__name__)


def _get_engine_options(database_url: str) -> dict:
    """
    Get engine options based on database type.
    SQLite requires special handling for async and concurrency.
    """
    is_sqlite = database_url.startswith("sqlite")

    options = {
        "echo": settings.sql_echo,
        "future": True,
    }

    if is_sqlite:
        # StaticPool keeps the single in-memory database alive across sessions
        if ":memory:" in database_url:
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        else:
            options["poolclass"] = NullPool
    elif not settings.is_production:
        options["poolclass"] = NullPool

    return options


def _configure_sqlite_connection(dbapi_connection, connection_record):
    """
    Configure SQLite connection with optimal settings for concurrency.
    Called on every new connection to the database.

    Settings:
    - WAL mode: Allows concurrent reads during writes
    - busy_timeout: Wait up to 30s for locks instead of immediate failure
    - foreign_keys: Enforce referential integrity and cascades
    - synchronous=NORMAL: Good balance of safety and performance with WAL
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def register_sqlite_pragmas(async_engine: AsyncEngine) -> None:
    """Attach the SQLite connection pragmas to an engine (used by tests too)."""
    # For aiosqlite, we need to use the sync_engine's pool events
    event.listen(async_engine.sync_engine, "connect", _configure_sqlite_connection)


def build_engine(database_url: str) -> AsyncEngine:
    async_engine = create_async_engine(database_url, **_get_engine_options(database_url))
    if database_url.startswith("sqlite"):
        register_sqlite_pragmas(async_engine)
    return async_engine


database_url = settings.database_url

engine = build_engine(database_url)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,  # Manual control over flushing
)


async def get_db_util() -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency for FastAPI.

    Transaction handling:
    - One session per request
    - Commit when the endpoint returns normally
    - Rollback on any exception
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_connection() -> bool:
    """
    Verify database connection is working.
    Useful for health checks and startup validation.
    """
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception:
        logger.exception("Database connection check failed")
        return False


async def dispose_engine() -> None:
    await engine.dispose()
