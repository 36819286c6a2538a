"""SQLite implementation of TurnRepository.

Writes are not committed here; the commit repository owns the transaction.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import aiosqlite

from cogcommit.models import SearchResult, ToolCall, Turn
from cogcommit.services.search import escape_like

_INSERT_TURN = """
    INSERT OR REPLACE INTO turns
    (id, session_id, role, content, timestamp, tool_calls, triggers_visual, model)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""


class SqliteTurnRepository:
    """SQLite-backed storage for conversation turns."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def insert(self, turn: Turn, session_id: str) -> None:
        tool_calls = (
            json.dumps([tc.model_dump() for tc in turn.toolCalls]) if turn.toolCalls else None
        )
        await self.db.execute(
            _INSERT_TURN,
            (
                turn.id, session_id, turn.role, turn.content, turn.timestamp,
                tool_calls, 1 if turn.triggersVisualUpdate else 0, turn.model or None,
            ),
        )

    async def upsert(self, session_id: str, turn: dict[str, Any]) -> None:
        """Upsert a turn payload as shipped by the hosted database (pull sync)."""
        tool_calls = turn.get("toolCalls")
        await self.db.execute(
            _INSERT_TURN,
            (
                turn["id"], session_id, turn["role"], turn.get("content"), turn["timestamp"],
                json.dumps(tool_calls) if tool_calls else None,
                1 if turn.get("triggersVisual") else 0,
                turn.get("model") or None,
            ),
        )

    async def get_for_session(self, session_id: str) -> list[Turn]:
        async with self.db.execute(
            "SELECT * FROM turns WHERE session_id = ? ORDER BY timestamp", (session_id,)
        ) as cur:
            rows = await cur.fetchall()
        return [self._row_to_turn(r) for r in rows]

    async def search(self, query: str, project: Optional[str] = None, limit: int = 20) -> list[SearchResult]:
        sql = """
            SELECT
                t.id, t.role, t.content, t.timestamp,
                s.id AS session_id,
                c.id AS commit_id, c.project_name
            FROM turns t
            JOIN sessions s ON t.session_id = s.id
            JOIN cognitive_commits c ON s.commit_id = c.id
            WHERE t.content LIKE ? ESCAPE '\\'
        """
        params: list[Any] = [f"%{escape_like(query)}%"]
        if project:
            sql += " AND c.project_name = ?"
            params.append(project)
        sql += " ORDER BY t.timestamp DESC LIMIT ?"
        params.append(limit or 20)

        async with self.db.execute(sql, params) as cur:
            rows = await cur.fetchall()
        return [SearchResult(**{k: r[k] for k in r.keys()}) for r in rows]

    async def count(self) -> int:
        async with self.db.execute("SELECT COUNT(*) FROM turns") as cur:
            row = await cur.fetchone()
        return row[0] if row else 0

    def _row_to_turn(self, row: aiosqlite.Row) -> Turn:
        tool_calls = None
        if row["tool_calls"]:
            try:
                tool_calls = [ToolCall(**tc) for tc in json.loads(row["tool_calls"])]
            except (json.JSONDecodeError, TypeError):
                tool_calls = None
        return Turn(
            id=row["id"],
            role=row["role"],
            content=row["content"] or "",
            timestamp=row["timestamp"],
            model=row["model"] or None,
            toolCalls=tool_calls,
            triggersVisualUpdate=True if row["triggers_visual"] == 1 else None,
        )
