"""PostgreSQL implementation of CommitRepository (hosted, scoped per user)."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import asyncpg

from cogcommit.date_utils import utc_now_iso
from cogcommit.db.repositories.postgres.sessions import PostgresSessionRepository
from cogcommit.models import CognitiveCommit, CommitUpdate


class CommitOwnershipError(RuntimeError):
    """Raised when a pushed commit id is already stored for a different user."""


@asynccontextmanager
async def _acquire(db: asyncpg.Pool | asyncpg.Connection) -> AsyncIterator[asyncpg.Connection]:
    if isinstance(db, asyncpg.Pool):
        async with db.acquire() as conn:
            yield conn
    else:
        yield db


class PostgresCommitRepository:
    """PostgreSQL-backed cognitive commit storage."""

    def __init__(self, db: asyncpg.Pool | asyncpg.Connection):
        self.db = db
        self.sessions = PostgresSessionRepository(db)

    async def upsert(self, commit: CognitiveCommit, user_id: str, machine_id: Optional[str] = None) -> None:
        """Write a commit with its sessions and turns in one transaction."""
        now = utc_now_iso()
        async with _acquire(self.db) as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    """
                    INSERT INTO cognitive_commits (
                        id, user_id, git_hash, started_at, closed_at, closed_by, parallel,
                        files_read, files_changed, title, project_name, source, hidden,
                        machine_id, created_at, updated_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16)
                    ON CONFLICT(id) DO UPDATE SET
                        git_hash=EXCLUDED.git_hash,
                        started_at=EXCLUDED.started_at, closed_at=EXCLUDED.closed_at,
                        closed_by=EXCLUDED.closed_by, parallel=EXCLUDED.parallel,
                        files_read=EXCLUDED.files_read, files_changed=EXCLUDED.files_changed,
                        title=EXCLUDED.title, project_name=EXCLUDED.project_name,
                        source=EXCLUDED.source, hidden=EXCLUDED.hidden,
                        machine_id=EXCLUDED.machine_id, updated_at=EXCLUDED.updated_at
                    WHERE cognitive_commits.user_id = EXCLUDED.user_id
                    RETURNING id
                    """,
                    commit.id, user_id, commit.gitHash, commit.startedAt, commit.closedAt,
                    commit.closedBy, commit.parallel, commit.filesRead, commit.filesChanged,
                    commit.title, commit.projectName, commit.source, commit.hidden,
                    machine_id, now, now,
                )
                if row is None:
                    raise CommitOwnershipError(f"Commit {commit.id} belongs to another user")
                await PostgresSessionRepository(conn).upsert_many(commit.id, commit.sessions)

    async def list_for_user(
        self,
        user_id: str,
        project: Optional[str] = None,
        include_hidden: bool = False,
    ) -> list[CognitiveCommit]:
        query = "SELECT * FROM cognitive_commits WHERE user_id = $1 AND deleted_at IS NULL"
        params: list[Any] = [user_id]
        if not include_hidden:
            query += " AND hidden = FALSE"
        if project:
            params.append(project)
            query += f" AND project_name = ${len(params)}"
        query += " ORDER BY closed_at DESC"

        rows = await self.db.fetch(query, *params)
        return await self._hydrate(rows)

    async def get_for_user(self, commit_id: str, user_id: str) -> Optional[CognitiveCommit]:
        row = await self.db.fetchrow(
            "SELECT * FROM cognitive_commits WHERE id = $1 AND user_id = $2 AND deleted_at IS NULL",
            commit_id, user_id,
        )
        if not row:
            return None
        commits = await self._hydrate([row])
        return commits[0]

    async def update(self, commit_id: str, user_id: str, data: CommitUpdate) -> Optional[CognitiveCommit]:
        sets: list[str] = []
        params: list[Any] = []
        if data.title is not None:
            params.append(data.title.strip() or None)
            sets.append(f"title = ${len(params)}")
        if data.hidden is not None:
            params.append(data.hidden)
            sets.append(f"hidden = ${len(params)}")
        if sets:
            params.append(utc_now_iso())
            sets.append(f"updated_at = ${len(params)}")
            params.extend([commit_id, user_id])
            await self.db.execute(
                f"UPDATE cognitive_commits SET {', '.join(sets)} "
                f"WHERE id = ${len(params) - 1} AND user_id = ${len(params)} AND deleted_at IS NULL",
                *params,
            )
        return await self.get_for_user(commit_id, user_id)

    async def soft_delete(self, commit_id: str, user_id: str) -> bool:
        result = await self.db.execute(
            "UPDATE cognitive_commits SET deleted_at = $1 "
            "WHERE id = $2 AND user_id = $3 AND deleted_at IS NULL",
            utc_now_iso(), commit_id, user_id,
        )
        # asyncpg returns the command tag, e.g. "UPDATE 1"
        return result.split()[-1] != "0"

    async def count_for_user(self, user_id: str) -> int:
        val = await self.db.fetchval(
            "SELECT COUNT(*) FROM cognitive_commits WHERE user_id = $1 AND deleted_at IS NULL",
            user_id,
        )
        return val or 0

    async def usage_for_user(self, user_id: str) -> tuple[int, int]:
        """Return (commit count, bytes of stored conversation content)."""
        row = await self.db.fetchrow(
            """
            SELECT
                (SELECT COUNT(*) FROM cognitive_commits
                 WHERE user_id = $1 AND deleted_at IS NULL) AS commit_count,
                (SELECT COALESCE(SUM(octet_length(COALESCE(t.content, ''))
                                     + octet_length(COALESCE(t.tool_calls::text, ''))), 0)
                 FROM turns t
                 JOIN sessions s ON t.session_id = s.id
                 JOIN cognitive_commits c ON s.commit_id = c.id
                 WHERE c.user_id = $1 AND c.deleted_at IS NULL) AS storage_bytes
            """,
            user_id,
        )
        if not row:
            return 0, 0
        return int(row["commit_count"] or 0), int(row["storage_bytes"] or 0)

    async def list_ids_for_user(self, user_id: str) -> set[str]:
        rows = await self.db.fetch(
            "SELECT id FROM cognitive_commits WHERE user_id = $1 AND deleted_at IS NULL", user_id
        )
        return {r["id"] for r in rows}

    async def _hydrate(self, rows: list[asyncpg.Record]) -> list[CognitiveCommit]:
        sessions = await self.sessions.get_for_commits([r["id"] for r in rows])
        commits: list[CognitiveCommit] = []
        for row in rows:
            commit_sessions = sessions.get(row["id"], [])
            commits.append(CognitiveCommit(
                id=row["id"],
                gitHash=row["git_hash"],
                startedAt=row["started_at"],
                closedAt=row["closed_at"],
                closedBy=row["closed_by"] or "session_end",
                parallel=bool(row["parallel"]),
                filesRead=list(row["files_read"] or []),
                filesChanged=list(row["files_changed"] or []),
                title=row["title"],
                projectName=row["project_name"],
                source=row["source"] or "claude_code",
                hidden=bool(row["hidden"]),
                sessions=commit_sessions,
                turnCount=sum(len(s.turns) for s in commit_sessions),
                syncStatus="synced",
            ))
        return commits
