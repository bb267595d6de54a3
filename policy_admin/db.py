# policy_admin/db.py
from __future__ import annotations

import functools
import json
from collections.abc import AsyncIterator

from sqlalchemy import MetaData
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from policy_admin.core.config import get_settings
from policy_admin.models import metadata as _models_metadata


def get_metadata() -> MetaData:
    """
    Return the project's central SQLAlchemy MetaData.

    Importing `policy_admin.models` registers every ORM table on it, so
    `init_db()` and Alembic see the same schema.
    """
    return _models_metadata


json_dumps = functools.partial(json.dumps, ensure_ascii=False)

# Settings
_settings = get_settings()

# Engine / Session
engine: AsyncEngine = create_async_engine(
    _settings.DATABASE_URL,
    echo=_settings.DB_ECHO,
    # Keywords are stored as readable UTF-8, not \uXXXX escapes
    json_serializer=json_dumps,
)
SessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    engine,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Create tables if they do not exist (idempotent)."""
    async with engine.begin() as conn:

        def _create_all(sync_conn: Connection) -> None:
            get_metadata().create_all(bind=sync_conn)

        await conn.run_sync(_create_all)


async def close_db() -> None:
    """Release pooled connections on shutdown."""
    await engine.dispose()


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields an AsyncSession."""
    async with SessionLocal() as session:
        yield session
