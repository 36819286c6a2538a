"""SQLite implementation of SessionRepository."""
from __future__ import annotations

import aiosqlite

from cogcommit.db.repositories.turns import SqliteTurnRepository
from cogcommit.models import Session


class SqliteSessionRepository:
    """SQLite-backed session storage. Writes are committed by the caller."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db
        self.turns = SqliteTurnRepository(db)

    async def upsert(self, session: Session, commit_id: str) -> None:
        await self.db.execute(
            """INSERT INTO sessions (id, commit_id, started_at, ended_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                commit_id=excluded.commit_id,
                started_at=excluded.started_at,
                ended_at=excluded.ended_at
            """,
            (session.id, commit_id, session.startedAt, session.endedAt),
        )

    async def get_for_commit(self, commit_id: str) -> list[Session]:
        async with self.db.execute(
            "SELECT * FROM sessions WHERE commit_id = ? ORDER BY started_at", (commit_id,)
        ) as cur:
            rows = await cur.fetchall()

        sessions: list[Session] = []
        for row in rows:
            sessions.append(Session(
                id=row["id"],
                startedAt=row["started_at"],
                endedAt=row["ended_at"],
                turns=await self.turns.get_for_session(row["id"]),
            ))
        return sessions

    async def count_for_commit(self, commit_id: str) -> int:
        async with self.db.execute(
            "SELECT COUNT(*) FROM sessions WHERE commit_id = ?", (commit_id,)
        ) as cur:
            row = await cur.fetchone()
        return row[0] if row else 0
