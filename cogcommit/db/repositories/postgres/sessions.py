"""PostgreSQL implementation of SessionRepository."""
from __future__ import annotations

import asyncpg

from cogcommit.db.repositories.postgres.turns import PostgresTurnRepository
from cogcommit.models import Session


class PostgresSessionRepository:
    """PostgreSQL-backed session storage (hosted)."""

    def __init__(self, db: asyncpg.Connection):
        self.db = db
        self.turns = PostgresTurnRepository(db)

    async def upsert_many(self, commit_id: str, sessions: list[Session]) -> None:
        if not sessions:
            return
        await self.db.executemany(
            """
            INSERT INTO sessions (id, commit_id, started_at, ended_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT(id) DO UPDATE SET
                commit_id=EXCLUDED.commit_id,
                started_at=EXCLUDED.started_at, ended_at=EXCLUDED.ended_at
            """,
            [(s.id, commit_id, s.startedAt, s.endedAt) for s in sessions],
        )
        for session in sessions:
            await self.turns.upsert_many(session.id, session.turns)

    async def get_for_commits(self, commit_ids: list[str]) -> dict[str, list[Session]]:
        if not commit_ids:
            return {}
        rows = await self.db.fetch(
            "SELECT * FROM sessions WHERE commit_id = ANY($1::text[]) ORDER BY started_at",
            commit_ids,
        )
        turns = await self.turns.get_for_sessions([r["id"] for r in rows])
        grouped: dict[str, list[Session]] = {}
        for row in rows:
            grouped.setdefault(row["commit_id"], []).append(Session(
                id=row["id"],
                startedAt=row["started_at"],
                endedAt=row["ended_at"],
                turns=turns.get(row["id"], []),
            ))
        return grouped
