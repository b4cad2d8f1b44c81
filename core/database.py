"""
Database Management for the local table gateway.

When the service runs without the hosted backend (`NEXIA_BACKEND=local`), the
`profiles`, `chat_history` and `contact_messages` tables live in a database
reached through SQLAlchemy's asyncio extension and SQLModel metadata.

Key Components:
- `build_engine`: creates the async engine for a `DATABASE_URL`. SQLite URLs use
  `aiosqlite` (in-memory URLs share a single connection so every session sees
  the same data); PostgreSQL URLs use `asyncpg` with a small connection pool.
- `build_session_factory`: async session factory bound to an engine.
- `create_db_and_tables`: creates all tables from the SQLModel metadata.
- `get_database_info`: connection diagnostics for the health endpoints, with
  credentials masked.
"""

import logging
from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# Table classes must be imported so their metadata is registered
from core import models  # noqa: F401

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.endswith("://"))


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine configured for the database type"""
    if _is_memory_sqlite(database_url):
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_async_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Validate connections before use
        echo=False,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_db_and_tables(engine: AsyncEngine) -> None:
    """
    Initialize the database and create all tables.
    Called during application startup in local mode.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("NEXIA database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create NEXIA database tables: {e}")
        raise


def mask_database_url(database_url: str) -> str:
    """Hide credentials in a database URL"""
    if "@" in database_url:
        scheme = database_url.split("://", 1)[0]
        return f"{scheme}://***@{database_url.split('@', 1)[1]}"
    return database_url


async def get_database_info(engine: AsyncEngine, database_url: str) -> Dict[str, Any]:
    """
    Get basic database information for health checks.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        connection_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        connection_healthy = False

    return {
        "database_url": mask_database_url(database_url),
        "connection_healthy": connection_healthy,
        "database_type": "postgresql" if "postgresql" in database_url else "sqlite",
    }
