"""Hosted database schema (Supabase Postgres).

Rows are owned per user; commits are soft-deleted through ``deleted_at``.
"""
from __future__ import annotations

import logging

import asyncpg

logger = logging.getLogger("cogcommit.db")

SCHEMA_VERSION = 1

_TABLES = """
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied   TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS user_profiles (
    id               TEXT PRIMARY KEY,
    github_username  TEXT,
    email            TEXT,
    avatar_url       TEXT,
    created_at       TEXT NOT NULL DEFAULT to_char(now() AT TIME ZONE 'utc', 'YYYY-MM-DD"T"HH24:MI:SS"Z"')
);

CREATE TABLE IF NOT EXISTS cognitive_commits (
    id             TEXT PRIMARY KEY,
    user_id        TEXT NOT NULL,
    git_hash       TEXT,
    started_at     TEXT NOT NULL,
    closed_at      TEXT NOT NULL,
    closed_by      TEXT NOT NULL DEFAULT 'session_end',
    parallel       BOOLEAN DEFAULT FALSE,
    files_read     TEXT[] DEFAULT '{}',
    files_changed  TEXT[] DEFAULT '{}',
    title          TEXT,
    project_name   TEXT,
    source         TEXT DEFAULT 'claude_code',
    hidden         BOOLEAN DEFAULT FALSE,
    machine_id     TEXT,
    deleted_at     TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_cloud_commits_user ON cognitive_commits(user_id, closed_at DESC);

CREATE TABLE IF NOT EXISTS sessions (
    id          TEXT PRIMARY KEY,
    commit_id   TEXT NOT NULL REFERENCES cognitive_commits(id) ON DELETE CASCADE,
    started_at  TEXT NOT NULL,
    ended_at    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_cloud_sessions_commit ON sessions(commit_id, started_at);

CREATE TABLE IF NOT EXISTS turns (
    id               TEXT PRIMARY KEY,
    session_id       TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
    role             TEXT NOT NULL,
    content          TEXT,
    timestamp        TEXT NOT NULL,
    tool_calls       JSONB,
    triggers_visual  BOOLEAN DEFAULT FALSE,
    model            TEXT
);

CREATE INDEX IF NOT EXISTS idx_cloud_turns_session ON turns(session_id, timestamp);
"""


async def run_migrations(db: asyncpg.Pool | asyncpg.Connection) -> None:
    """Create the hosted tables. Idempotent."""
    await db.execute(_TABLES)
    current_version = await db.fetchval("SELECT MAX(version) FROM schema_version") or 0
    if current_version >= SCHEMA_VERSION:
        logger.info(f"Hosted schema is up to date (version {current_version})")
        return
    await db.execute("INSERT INTO schema_version (version) VALUES ($1)", SCHEMA_VERSION)
    logger.info(f"Hosted migrations complete, schema version {SCHEMA_VERSION}")
