from __future__ import annotations

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from alembic import context
from policy_admin.core.config import get_settings
from policy_admin.models import metadata

# Autogenerate compares against the ORM tables
target_metadata = metadata

# Alembic configuration
config = context.config

# Logging from alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def get_url() -> str:
    """URL from alembic.ini / the passed Config, else the application's DATABASE_URL."""
    url = config.get_main_option("sqlalchemy.url")
    if not url:
        url = get_settings().DATABASE_URL
    if not url:
        raise RuntimeError("SQLAlchemy URL is not configured for Alembic")
    return url


def run_migrations_offline() -> None:
    """Offline mode: emit SQL without a connection."""
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online_sync() -> None:
    """Sync engine (sqlite+pysqlite, psycopg, ...)."""
    connectable = create_engine(get_url(), poolclass=pool.NullPool, future=True)
    with connectable.connect() as connection:
        do_run_migrations(connection)
    connectable.dispose()


async def run_migrations_online_async() -> None:
    """Async engine (sqlite+aiosqlite, postgresql+asyncpg, ...)."""
    connectable: AsyncEngine = create_async_engine(get_url(), poolclass=pool.NullPool)
    async with connectable.connect() as async_connection:
        await async_connection.run_sync(do_run_migrations)
    await connectable.dispose()


def run_migrations_online() -> None:
    """Pick sync/async by the driver in the URL."""
    url = get_url()
    if "+aiosqlite" in url or "+asyncpg" in url:
        asyncio.run(run_migrations_online_async())
    else:
        run_migrations_online_sync()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
