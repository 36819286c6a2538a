"""Local database schema creation and versioning.

All CREATE TABLE statements for the local cognitive commit store.
Uses IF NOT EXISTS for idempotent runs.
"""
from __future__ import annotations

import logging

import aiosqlite

logger = logging.getLogger("cogcommit.db")

SCHEMA_VERSION = 3

_TABLES = """
-- ── Schema version tracking ────────────────────────────────────────
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied   TEXT NOT NULL DEFAULT (datetime('now'))
);

-- ── 1. Cognitive commits ───────────────────────────────────────────
CREATE TABLE IF NOT EXISTS cognitive_commits (
    id             TEXT PRIMARY KEY,
    git_hash       TEXT,
    started_at     TEXT NOT NULL,
    closed_at      TEXT NOT NULL,
    closed_by      TEXT NOT NULL DEFAULT 'session_end',
    parallel       INTEGER DEFAULT 0,
    files_read     TEXT DEFAULT '[]',
    files_changed  TEXT DEFAULT '[]',
    title          TEXT,
    project_name   TEXT,
    source         TEXT DEFAULT 'claude_code',
    hidden         INTEGER DEFAULT 0,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_commits_closed  ON cognitive_commits(closed_at DESC);
CREATE INDEX IF NOT EXISTS idx_commits_project ON cognitive_commits(project_name, closed_at DESC);

-- ── 2. Sessions ────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS sessions (
    id          TEXT PRIMARY KEY,
    commit_id   TEXT NOT NULL REFERENCES cognitive_commits(id) ON DELETE CASCADE,
    started_at  TEXT NOT NULL,
    ended_at    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sessions_commit ON sessions(commit_id, started_at);

-- ── 3. Turns ───────────────────────────────────────────────────────
CREATE TABLE IF NOT EXISTS turns (
    id               TEXT PRIMARY KEY,
    session_id       TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    role             TEXT NOT NULL,
    content          TEXT,
    timestamp        TEXT NOT NULL,
    tool_calls       TEXT,
    triggers_visual  INTEGER DEFAULT 0,
    model            TEXT
);

CREATE INDEX IF NOT EXISTS idx_turns_session ON turns(session_id, timestamp);
"""


async def _column_exists(db: aiosqlite.Connection, table: str, column: str) -> bool:
    async with db.execute(f"PRAGMA table_info({table})") as cur:
        rows = await cur.fetchall()
    return any(row[1] == column for row in rows)


async def _ensure_column(db: aiosqlite.Connection, table: str, column: str, definition: str) -> None:
    if await _column_exists(db, table, column):
        return
    await db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")


async def _ensure_index(db: aiosqlite.Connection, ddl: str) -> None:
    await db.execute(ddl)


async def run_migrations(db: aiosqlite.Connection) -> None:
    """Create all tables. Idempotent."""
    try:
        async with db.execute("SELECT MAX(version) FROM schema_version") as cur:
            row = await cur.fetchone()
            current_version = row[0] if row and row[0] else 0
    except aiosqlite.OperationalError:
        current_version = 0

    if current_version >= SCHEMA_VERSION:
        logger.info(f"Schema is up to date (version {current_version})")
        return

    logger.info(f"Running migrations: {current_version} -> {SCHEMA_VERSION}")

    await db.executescript(_TABLES)

    # v2: cloud sync bookkeeping
    await _ensure_column(db, "cognitive_commits", "sync_status", "TEXT DEFAULT 'pending'")
    await _ensure_column(db, "cognitive_commits", "synced_at", "TEXT")
    await _ensure_column(db, "cognitive_commits", "sync_error", "TEXT")
    await _ensure_column(db, "cognitive_commits", "machine_id", "TEXT")
    await _ensure_index(db, "CREATE INDEX IF NOT EXISTS idx_commits_sync ON cognitive_commits(sync_status)")

    # v3: model per turn
    await _ensure_column(db, "turns", "model", "TEXT")

    await db.execute(
        "INSERT INTO schema_version (version) VALUES (?)",
        (SCHEMA_VERSION,),
    )
    await db.commit()
    logger.info(f"Migrations complete, schema version {SCHEMA_VERSION}")
