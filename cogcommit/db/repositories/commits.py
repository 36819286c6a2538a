"""SQLite implementation of CommitRepository."""
from __future__ import annotations

import json
from typing import Any, Optional

import aiosqlite

from cogcommit.date_utils import utc_now_iso
from cogcommit.db.repositories.sessions import SqliteSessionRepository
from cogcommit.models import CognitiveCommit, CommitStats, CommitUpdate, ProjectListItem

_TURN_COUNT = """
    (SELECT COUNT(*) FROM turns t JOIN sessions s ON t.session_id = s.id
     WHERE s.commit_id = c.id) AS turn_count
"""


class SqliteCommitRepository:
    """SQLite-backed cognitive commit storage (commits, sessions and turns)."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db
        self.sessions = SqliteSessionRepository(db)

    # ── Writes ──────────────────────────────────────────────────────

    async def upsert_row(
        self,
        commit: CognitiveCommit,
        machine_id: Optional[str] = None,
        keep_user_edits: bool = True,
    ) -> None:
        """Insert or refresh the commit row.

        With ``keep_user_edits`` a locally edited title and the hidden flag
        survive re-imports; otherwise both are taken from ``commit``.
        """
        if keep_user_edits:
            user_fields = "title=COALESCE(cognitive_commits.title, excluded.title),"
        else:
            user_fields = "title=excluded.title, hidden=excluded.hidden,"
        now = utc_now_iso()
        await self.db.execute(
            f"""INSERT INTO cognitive_commits (
                id, git_hash, started_at, closed_at, closed_by, parallel,
                files_read, files_changed, title, project_name, source, hidden,
                sync_status, machine_id, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                git_hash=excluded.git_hash,
                started_at=excluded.started_at, closed_at=excluded.closed_at,
                closed_by=excluded.closed_by, parallel=excluded.parallel,
                files_read=excluded.files_read, files_changed=excluded.files_changed,
                {user_fields}
                project_name=excluded.project_name, source=excluded.source,
                machine_id=COALESCE(excluded.machine_id, cognitive_commits.machine_id),
                updated_at=excluded.updated_at
            """,
            (
                commit.id, commit.gitHash, commit.startedAt, commit.closedAt,
                commit.closedBy, 1 if commit.parallel else 0,
                json.dumps(commit.filesRead), json.dumps(commit.filesChanged),
                commit.title, commit.projectName, commit.source or "claude_code",
                1 if commit.hidden else 0, commit.syncStatus or "pending",
                machine_id, now, now,
            ),
        )

    async def insert(self, commit: CognitiveCommit, machine_id: Optional[str] = None) -> None:
        """Write a commit with its sessions and turns in one transaction.

        A synced commit whose conversation changed goes back to ``pending``.
        """
        before = await self._content_marker(commit.id)
        try:
            await self.upsert_row(commit, machine_id)
            for session in commit.sessions:
                await self.sessions.upsert(session, commit.id)
                for turn in session.turns:
                    await self.sessions.turns.insert(turn, session.id)
            if before is not None and before != await self._content_marker(commit.id):
                await self.db.execute(
                    """UPDATE cognitive_commits
                    SET sync_status = 'pending', synced_at = NULL, sync_error = NULL
                    WHERE id = ? AND sync_status = 'synced'""",
                    (commit.id,),
                )
        except Exception:
            await self.db.rollback()
            raise
        await self.db.commit()

    async def set_parallel(self, commit_id: str) -> None:
        await self.db.execute("UPDATE cognitive_commits SET parallel = 1 WHERE id = ?", (commit_id,))
        await self.db.commit()

    async def update(self, commit_id: str, data: CommitUpdate) -> Optional[CognitiveCommit]:
        fields: list[str] = []
        params: list[Any] = []
        if data.title is not None:
            fields.append("title = ?")
            params.append(data.title.strip() or None)
        if data.hidden is not None:
            fields.append("hidden = ?")
            params.append(1 if data.hidden else 0)
        if fields:
            fields.append("updated_at = ?")
            params.append(utc_now_iso())
            params.append(commit_id)
            await self.db.execute(
                f"UPDATE cognitive_commits SET {', '.join(fields)} WHERE id = ?", params
            )
            await self.db.commit()
        return await self.get_by_id(commit_id)

    async def delete(self, commit_id: str) -> bool:
        cur = await self.db.execute("DELETE FROM cognitive_commits WHERE id = ?", (commit_id,))
        await self.db.commit()
        return cur.rowcount > 0

    async def delete_many(self, commit_ids: list[str]) -> int:
        deleted = 0
        for commit_id in commit_ids:
            cur = await self.db.execute("DELETE FROM cognitive_commits WHERE id = ?", (commit_id,))
            deleted += cur.rowcount
        await self.db.commit()
        return deleted

    async def clear(self, project: Optional[str] = None) -> int:
        if project:
            cur = await self.db.execute(
                "DELETE FROM cognitive_commits WHERE project_name = ?", (project,)
            )
        else:
            cur = await self.db.execute("DELETE FROM cognitive_commits")
        await self.db.commit()
        return cur.rowcount

    # ── Reads ───────────────────────────────────────────────────────

    async def get_by_id(self, commit_id: str) -> Optional[CognitiveCommit]:
        async with self.db.execute(
            f"SELECT c.*, {_TURN_COUNT} FROM cognitive_commits c WHERE c.id = ?", (commit_id,)
        ) as cur:
            row = await cur.fetchone()
        if not row:
            return None
        return await self._hydrate(row)

    async def list_all(
        self,
        project: Optional[str] = None,
        include_hidden: bool = True,
        limit: Optional[int] = None,
    ) -> list[CognitiveCommit]:
        where, params = self._filters(project, include_hidden)
        query = f"SELECT c.*, {_TURN_COUNT} FROM cognitive_commits c{where} ORDER BY c.closed_at DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        async with self.db.execute(query, params) as cur:
            rows = await cur.fetchall()
        return [await self._hydrate(r) for r in rows]

    async def get_by_project(self, project_name: str) -> list[CognitiveCommit]:
        return await self.list_all(project=project_name)

    async def get_before_date(self, before_iso: str, project: Optional[str] = None) -> list[CognitiveCommit]:
        """Commits closed before ``before_iso``, without their conversation."""
        query = f"SELECT c.*, {_TURN_COUNT} FROM cognitive_commits c WHERE c.closed_at < ?"
        params: list[Any] = [before_iso]
        if project:
            query += " AND c.project_name = ?"
            params.append(project)
        query += " ORDER BY c.closed_at DESC"
        async with self.db.execute(query, params) as cur:
            rows = await cur.fetchall()
        return [self._row_to_commit(r) for r in rows]

    async def list_spans(self, project: Optional[str]) -> list[CognitiveCommit]:
        """Commit rows of one project, without their conversation."""
        if project:
            query, params = "SELECT c.* FROM cognitive_commits c WHERE c.project_name = ?", [project]
        else:
            query, params = "SELECT c.* FROM cognitive_commits c WHERE COALESCE(c.project_name, '') = ''", []
        async with self.db.execute(query, params) as cur:
            rows = await cur.fetchall()
        return [self._row_to_commit(r) for r in rows]

    async def count(self, project: Optional[str] = None) -> int:
        where, params = self._filters(project, True)
        async with self.db.execute(f"SELECT COUNT(*) FROM cognitive_commits c{where}", params) as cur:
            row = await cur.fetchone()
        return row[0] if row else 0

    async def list_projects(self, include_hidden: bool = True) -> list[ProjectListItem]:
        where, params = self._filters(None, include_hidden)
        where = f"{where} AND" if where else " WHERE"
        async with self.db.execute(
            f"""SELECT c.project_name AS name, COUNT(*) AS count
            FROM cognitive_commits c{where} c.project_name IS NOT NULL AND c.project_name != ''
            GROUP BY c.project_name ORDER BY count DESC, name""",
            params,
        ) as cur:
            rows = await cur.fetchall()
        return [ProjectListItem(name=r["name"], count=r["count"]) for r in rows]

    async def get_stats(self, project: Optional[str] = None) -> CommitStats:
        where, params = self._filters(project, True)

        async with self.db.execute(
            f"""SELECT COUNT(*) AS total,
                COUNT(DISTINCT c.project_name) AS projects,
                MIN(c.started_at) AS first_commit,
                MAX(c.closed_at) AS last_commit
            FROM cognitive_commits c{where}""",
            params,
        ) as cur:
            totals = await cur.fetchone()

        async with self.db.execute(
            f"SELECT COUNT(*) FROM sessions s JOIN cognitive_commits c ON s.commit_id = c.id{where}",
            params,
        ) as cur:
            session_row = await cur.fetchone()

        async with self.db.execute(
            f"""SELECT COUNT(*) FROM turns t
            JOIN sessions s ON t.session_id = s.id
            JOIN cognitive_commits c ON s.commit_id = c.id{where}""",
            params,
        ) as cur:
            turn_row = await cur.fetchone()

        async with self.db.execute(
            f"SELECT COALESCE(c.source, 'claude_code') AS source, COUNT(*) AS count "
            f"FROM cognitive_commits c{where} GROUP BY COALESCE(c.source, 'claude_code') ORDER BY count DESC",
            params,
        ) as cur:
            by_source = {r["source"]: r["count"] for r in await cur.fetchall()}

        if project:
            top_projects = [ProjectListItem(name=project, count=totals["total"])] if totals["total"] else []
        else:
            top_projects = (await self.list_projects())[:5]

        return CommitStats(
            totalCommits=totals["total"] or 0,
            totalSessions=session_row[0] if session_row else 0,
            totalTurns=turn_row[0] if turn_row else 0,
            projectCount=totals["projects"] or 0,
            bySource=by_source,
            topProjects=top_projects,
            firstCommit=totals["first_commit"],
            lastCommit=totals["last_commit"],
        )

    # ── Cloud sync bookkeeping ──────────────────────────────────────

    async def list_for_push(self, include_failed: bool = False) -> list[CognitiveCommit]:
        statuses = ("pending", "failed") if include_failed else ("pending",)
        placeholders = ", ".join("?" for _ in statuses)
        async with self.db.execute(
            f"""SELECT c.*, {_TURN_COUNT} FROM cognitive_commits c
            WHERE COALESCE(c.sync_status, 'pending') IN ({placeholders})
            ORDER BY c.closed_at DESC""",
            statuses,
        ) as cur:
            rows = await cur.fetchall()
        return [await self._hydrate(r) for r in rows]

    async def mark_synced(self, commit_id: str) -> None:
        await self.db.execute(
            "UPDATE cognitive_commits SET sync_status = 'synced', synced_at = ?, sync_error = NULL WHERE id = ?",
            (utc_now_iso(), commit_id),
        )
        await self.db.commit()

    async def mark_failed(self, commit_id: str, error: str) -> None:
        await self.db.execute(
            "UPDATE cognitive_commits SET sync_status = 'failed', sync_error = ? WHERE id = ?",
            (error, commit_id),
        )
        await self.db.commit()

    async def reset_sync_status(self) -> int:
        cur = await self.db.execute(
            "UPDATE cognitive_commits SET sync_status = 'pending', synced_at = NULL, sync_error = NULL"
        )
        await self.db.commit()
        return cur.rowcount

    # ── Helpers ─────────────────────────────────────────────────────

    async def _content_marker(self, commit_id: str) -> Optional[tuple]:
        async with self.db.execute(
            """SELECT c.closed_at, c.closed_by, c.git_hash,
                COUNT(t.id), COALESCE(SUM(LENGTH(t.content)), 0)
            FROM cognitive_commits c
            LEFT JOIN sessions s ON s.commit_id = c.id
            LEFT JOIN turns t ON t.session_id = s.id
            WHERE c.id = ? GROUP BY c.id""",
            (commit_id,),
        ) as cur:
            row = await cur.fetchone()
        return tuple(row) if row else None

    def _filters(self, project: Optional[str], include_hidden: bool) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if project:
            clauses.append("c.project_name = ?")
            params.append(project)
        if not include_hidden:
            clauses.append("COALESCE(c.hidden, 0) = 0")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def _hydrate(self, row: aiosqlite.Row) -> CognitiveCommit:
        commit = self._row_to_commit(row)
        commit.sessions = await self.sessions.get_for_commit(commit.id)
        commit.turnCount = sum(len(s.turns) for s in commit.sessions)
        return commit

    def _row_to_commit(self, row: aiosqlite.Row) -> CognitiveCommit:
        keys = row.keys()
        return CognitiveCommit(
            id=row["id"],
            gitHash=row["git_hash"],
            startedAt=row["started_at"],
            closedAt=row["closed_at"],
            closedBy=row["closed_by"] or "session_end",
            parallel=bool(row["parallel"]),
            filesRead=_json_list(row["files_read"]),
            filesChanged=_json_list(row["files_changed"]),
            title=row["title"],
            projectName=row["project_name"],
            source=row["source"] or "claude_code",
            hidden=bool(row["hidden"]),
            turnCount=row["turn_count"] if "turn_count" in keys else None,
            syncStatus=row["sync_status"] or "pending",
            syncedAt=row["synced_at"],
            syncError=row["sync_error"],
        )


def _json_list(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return [str(v) for v in value] if isinstance(value, list) else []
