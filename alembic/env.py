"""
Alembic environment configuration.

- Async migrations through the same driver the app uses
- Batch mode for SQLite (required for ALTER TABLE operations)
- Database URL taken from the application settings (DB_URL / .env)
"""

import asyncio
from pathlib import Path
from logging.config import fileConfig
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

# Importing the db package registers every model on Base.metadata
from ecommerce.core.db import Base
from ecommerce.core.config import config as settings
from ecommerce.core.db.engine import register_sqlite_pragmas

# this is the Alembic Config object
config = context.config

db_url = settings.database_url
is_sqlite = db_url.startswith("sqlite")

if is_sqlite and ":memory:" not in db_url:
    # sqlite+aiosqlite:///./data/ecommerce.db -> ./data
    Path(db_url.split("///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)

config.set_main_option("sqlalchemy.url", db_url)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    This generates SQL without connecting to the database.
    """
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode with an async engine."""
    connectable = create_async_engine(
        config.get_main_option("sqlalchemy.url"),
        poolclass=pool.NullPool,
    )
    if is_sqlite:
        register_sqlite_pragmas(connectable)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
