"""PostgreSQL implementation of TurnRepository."""
from __future__ import annotations

import json

import asyncpg

from cogcommit.models import ToolCall, Turn


class PostgresTurnRepository:
    """PostgreSQL-backed turn storage (hosted)."""

    def __init__(self, db: asyncpg.Connection):
        self.db = db

    async def upsert_many(self, session_id: str, turns: list[Turn]) -> None:
        if not turns:
            return
        await self.db.executemany(
            """
            INSERT INTO turns (id, session_id, role, content, timestamp, tool_calls, triggers_visual, model)
            VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8)
            ON CONFLICT(id) DO UPDATE SET
                session_id=EXCLUDED.session_id, role=EXCLUDED.role, content=EXCLUDED.content,
                timestamp=EXCLUDED.timestamp, tool_calls=EXCLUDED.tool_calls,
                triggers_visual=EXCLUDED.triggers_visual, model=EXCLUDED.model
            """,
            [
                (
                    t.id, session_id, t.role, t.content, t.timestamp,
                    json.dumps([tc.model_dump() for tc in t.toolCalls]) if t.toolCalls else None,
                    bool(t.triggersVisualUpdate), t.model,
                )
                for t in turns
            ],
        )

    async def get_for_sessions(self, session_ids: list[str]) -> dict[str, list[Turn]]:
        if not session_ids:
            return {}
        rows = await self.db.fetch(
            "SELECT * FROM turns WHERE session_id = ANY($1::text[]) ORDER BY timestamp",
            session_ids,
        )
        grouped: dict[str, list[Turn]] = {}
        for row in rows:
            grouped.setdefault(row["session_id"], []).append(self._row_to_turn(row))
        return grouped

    def _row_to_turn(self, row: asyncpg.Record) -> Turn:
        raw = row["tool_calls"]
        if isinstance(raw, str):
            raw = json.loads(raw)
        return Turn(
            id=row["id"],
            role=row["role"],
            content=row["content"] or "",
            timestamp=row["timestamp"],
            model=row["model"],
            toolCalls=[ToolCall(**tc) for tc in raw] if raw else None,
            triggersVisualUpdate=True if row["triggers_visual"] else None,
        )
