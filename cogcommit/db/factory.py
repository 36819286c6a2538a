"""Repository factory to abstract DB backend (SQLite vs Postgres)."""
from __future__ import annotations

from typing import Any

import aiosqlite

from cogcommit.db.repositories.commits import SqliteCommitRepository
from cogcommit.db.repositories.sessions import SqliteSessionRepository
from cogcommit.db.repositories.turns import SqliteTurnRepository


def get_commit_repository(db: Any):
    if isinstance(db, aiosqlite.Connection):
        return SqliteCommitRepository(db)
    from cogcommit.db.repositories.postgres.commits import PostgresCommitRepository
    return PostgresCommitRepository(db)


def get_session_repository(db: Any):
    if isinstance(db, aiosqlite.Connection):
        return SqliteSessionRepository(db)
    from cogcommit.db.repositories.postgres.sessions import PostgresSessionRepository
    return PostgresSessionRepository(db)


def get_turn_repository(db: Any):
    if isinstance(db, aiosqlite.Connection):
        return SqliteTurnRepository(db)
    from cogcommit.db.repositories.postgres.turns import PostgresTurnRepository
    return PostgresTurnRepository(db)
