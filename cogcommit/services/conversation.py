"""Turn a commit's conversation into render items.

Consecutive tool-only assistant turns collapse into a single ``tool-group``
item; every other turn is rendered on its own. Each item carries the gap
(in minutes) since the previous turn so the UI can draw time dividers, and
text turns carry whether they match the active in-conversation search.
"""
from __future__ import annotations

import re
from typing import Optional

from cogcommit.formatters import get_gap_minutes
from cogcommit.models import CognitiveCommit, RenderItem, ToolCall, Turn

GAP_DIVIDER_MINUTES = 60
COLLAPSE_THRESHOLD = 500
PREVIEW_LENGTH = 300


def is_tool_only_turn(turn: Turn) -> bool:
    """Assistant turn with no text content and at least one tool call."""
    return (
        turn.role == "assistant"
        and not (turn.content or "").strip()
        and bool(turn.toolCalls)
    )


def _matches(content: str, search_term: str) -> bool:
    if not search_term:
        return False
    return search_term.lower() in (content or "").lower()


def build_render_items(commit: Optional[CognitiveCommit], search_term: str = "") -> list[RenderItem]:
    if commit is None:
        return []

    items: list[RenderItem] = []
    prev_timestamp: str | None = None
    tool_group: list[Turn] = []
    tool_group_gap: float | None = None

    def flush_tool_group() -> None:
        nonlocal tool_group, tool_group_gap
        if tool_group:
            items.append(RenderItem(type="tool-group", turns=tool_group, gapMinutes=tool_group_gap))
            tool_group = []
            tool_group_gap = None

    for session in commit.sessions:
        for turn in session.turns:
            gap = get_gap_minutes(prev_timestamp, turn.timestamp) if prev_timestamp else None

            if is_tool_only_turn(turn):
                if not tool_group:
                    tool_group_gap = gap
                tool_group.append(turn)
            else:
                flush_tool_group()
                items.append(RenderItem(
                    type="turn",
                    turn=turn,
                    gapMinutes=gap,
                    isMatch=_matches(turn.content, search_term),
                ))

            prev_timestamp = turn.timestamp

    flush_tool_group()
    return items


def search_match_indices(items: list[RenderItem]) -> list[int]:
    return [idx for idx, item in enumerate(items) if item.type == "turn" and item.isMatch]


def flatten_tool_calls(turns: list[Turn]) -> list[dict]:
    """All tool calls of a tool group, each tagged with the id of its turn."""
    flattened: list[dict] = []
    for turn in turns:
        for tc in turn.toolCalls or []:
            flattened.append({**tc.model_dump(), "turnId": turn.id})
    return flattened


def shows_gap_divider(gap_minutes: Optional[float]) -> bool:
    return gap_minutes is not None and gap_minutes > GAP_DIVIDER_MINUTES


def preview_content(turn: Turn) -> tuple[str, bool]:
    """Return (display text, collapsed) for long turns."""
    content = turn.content or ""
    if len(content) > COLLAPSE_THRESHOLD:
        return content[:PREVIEW_LENGTH], True
    return content, False


def tool_result_preview(tool_call: ToolCall, limit: int = 500) -> Optional[str]:
    if not tool_call.result:
        return None
    result = tool_call.result
    return result[:limit] + "..." if len(result) > limit else result


def highlight_matches(text: str, term: str, before: str = "<mark>", after: str = "</mark>") -> str:
    if not term:
        return text
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    return pattern.sub(lambda m: f"{before}{m.group(0)}{after}", text)


# ── Navigation ──────────────────────────────────────────────────────

def next_item_index(current: int, total: int) -> int:
    return current + 1 if current < total - 1 else current


def prev_item_index(current: int) -> int:
    return current - 1 if current > 0 else current


def _is_user_item(item: RenderItem) -> bool:
    return item.type == "turn" and item.turn is not None and item.turn.role == "user"


def next_user_item_index(items: list[RenderItem], current: int) -> Optional[int]:
    for idx in range(current + 1, len(items)):
        if _is_user_item(items[idx]):
            return idx
    return None


def prev_user_item_index(items: list[RenderItem], current: int) -> Optional[int]:
    for idx in range(current - 1, -1, -1):
        if _is_user_item(items[idx]):
            return idx
    return None


def next_match_position(current: int, match_count: int) -> Optional[int]:
    if match_count == 0:
        return None
    return (current + 1) % match_count


def prev_match_position(current: int, match_count: int) -> Optional[int]:
    if match_count == 0:
        return None
    return match_count - 1 if current == 0 else current - 1
