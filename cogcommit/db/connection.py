"""Database connection factory.

Provides the singleton async SQLite connection for the local store (WAL mode)
and the singleton asyncpg pool for the hosted Postgres database.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import aiosqlite
import asyncpg

from cogcommit import config

logger = logging.getLogger("cogcommit.db")

_connection: aiosqlite.Connection | None = None
_cloud_pool: asyncpg.Pool | None = None


class CloudNotConfiguredError(RuntimeError):
    """Raised when the hosted database is used without COGCOMMIT_DATABASE_URL."""


async def open_sqlite(path: Path | str) -> aiosqlite.Connection:
    """Open a configured SQLite connection (``:memory:`` is accepted)."""
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(str(path))
    conn.row_factory = aiosqlite.Row
    # Enable WAL mode for better concurrent read performance
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA foreign_keys=ON")
    await conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def get_connection(path: Optional[Path] = None) -> aiosqlite.Connection:
    """Return the singleton local database connection, creating it if needed."""
    global _connection
    if _connection is not None:
        return _connection

    db_path = path or config.DB_PATH
    _connection = await open_sqlite(db_path)
    logger.info(f"Database connection established: {db_path}")
    return _connection


async def close_connection() -> None:
    """Close the local database connection."""
    global _connection
    if _connection is not None:
        await _connection.close()
        _connection = None
        logger.info("Database connection closed")


async def get_cloud_pool() -> asyncpg.Pool:
    """Return the singleton hosted database pool, creating it if needed."""
    global _cloud_pool
    if _cloud_pool is not None:
        return _cloud_pool

    if not config.DATABASE_URL:
        raise CloudNotConfiguredError(
            "Cloud database not configured. Set COGCOMMIT_DATABASE_URL."
        )
    logger.info("Connecting to hosted PostgreSQL")
    _cloud_pool = await asyncpg.create_pool(config.DATABASE_URL)
    return _cloud_pool


async def close_cloud_pool() -> None:
    global _cloud_pool
    if _cloud_pool is not None:
        await _cloud_pool.close()
        _cloud_pool = None
        logger.info("Cloud pool closed")
