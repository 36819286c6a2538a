"""Parse Codex CLI rollout files (``~/.codex/sessions/**/rollout-*.jsonl``)."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from cogcommit.models import CognitiveCommit, ToolCall, Turn
from cogcommit.parsers.platforms.claude_code.parser import _load_entries
from cogcommit.parsers.sessions import build_commits, make_id

logger = logging.getLogger("cogcommit.import")

_INJECTED_PREFIXES = ("<environment_context>", "<user_instructions>", "# AGENTS.md instructions")
_ITEM_TYPES = {
    "message",
    "function_call",
    "function_call_output",
    "custom_tool_call",
    "custom_tool_call_output",
    "local_shell_call",
}


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if not isinstance(content, list):
        return ""
    parts = [
        block["text"]
        for block in content
        if isinstance(block, dict)
        and block.get("type") in ("input_text", "output_text", "text")
        and isinstance(block.get("text"), str)
    ]
    return "\n".join(parts).strip()


def _decode_arguments(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return {"input": raw}
        return decoded if isinstance(decoded, dict) else {"input": decoded}
    return {}


def _decode_output(raw: Any) -> tuple[str, Optional[bool]]:
    """Return (text, is_error) from a function_call_output payload."""
    if isinstance(raw, dict):
        text = raw.get("content") or raw.get("output") or ""
        return str(text), (False if raw.get("success", True) else True)
    text = str(raw or "")
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        return text, None
    if isinstance(decoded, dict) and "output" in decoded:
        exit_code = (decoded.get("metadata") or {}).get("exit_code")
        return str(decoded["output"]), (bool(exit_code) if exit_code is not None else None)
    return text, None


def _item_payload(entry: dict[str, Any]) -> Optional[dict[str, Any]]:
    if entry.get("type") == "response_item" and isinstance(entry.get("payload"), dict):
        return entry["payload"]
    if entry.get("type") in _ITEM_TYPES:
        # Older rollouts store response items at the top level
        return entry
    return None


def _session_meta(entries: list[dict[str, Any]]) -> tuple[Optional[str], Optional[str]]:
    session_id: Optional[str] = None
    cwd: Optional[str] = None
    for entry in entries:
        if entry.get("type") in ("session_meta", "turn_context"):
            payload = entry.get("payload") if isinstance(entry.get("payload"), dict) else {}
            session_id = session_id or payload.get("id")
            cwd = cwd or payload.get("cwd")
        elif "id" in entry and "instructions" in entry:
            session_id = session_id or entry.get("id")
        if session_id and cwd:
            break
    return session_id, cwd


def parse_turns(entries: list[dict[str, Any]], session_key: str) -> list[Turn]:
    turns: list[Turn] = []
    pending_tools: dict[str, ToolCall] = {}
    model: Optional[str] = None
    last_timestamp = ""

    for index, entry in enumerate(entries):
        timestamp = str(entry.get("timestamp") or last_timestamp)
        last_timestamp = timestamp

        if entry.get("type") == "turn_context" and isinstance(entry.get("payload"), dict):
            model = entry["payload"].get("model") or model
            continue

        item = _item_payload(entry)
        if item is None:
            continue
        item_type = item.get("type")

        if item_type == "message":
            role = item.get("role")
            if role not in ("user", "assistant"):
                continue
            text = _message_text(item.get("content"))
            if not text or (role == "user" and text.startswith(_INJECTED_PREFIXES)):
                continue
            turns.append(Turn(
                id=make_id(session_key, "turn", index),
                role=role,
                content=text,
                timestamp=timestamp,
                model=model if role == "assistant" else None,
            ))

        elif item_type in ("function_call", "custom_tool_call", "local_shell_call"):
            call_id = str(item.get("call_id") or item.get("id") or make_id(session_key, "tool", index))
            if item_type == "local_shell_call":
                tool_input = _decode_arguments(item.get("action"))
                name = "local_shell"
            else:
                tool_input = _decode_arguments(item.get("arguments") or item.get("input"))
                name = str(item.get("name") or "unknown")
            tc = ToolCall(id=call_id, name=name, input=tool_input)
            pending_tools[call_id] = tc
            if not turns or turns[-1].role != "assistant":
                turns.append(Turn(
                    id=make_id(session_key, "turn", index),
                    role="assistant",
                    content="",
                    timestamp=timestamp,
                    model=model,
                ))
            turns[-1].toolCalls = (turns[-1].toolCalls or []) + [tc]

        elif item_type in ("function_call_output", "custom_tool_call_output"):
            tc = pending_tools.get(str(item.get("call_id") or ""))
            if tc is not None:
                tc.result, tc.isError = _decode_output(item.get("output"))

    return turns


def parse_session_file(path: Path) -> list[CognitiveCommit]:
    """Parse a single Codex rollout. Unreadable files yield no commits."""
    entries = _load_entries(path)
    if not entries:
        return []

    session_id, cwd = _session_meta(entries)
    session_key = session_id or path.stem
    turns = parse_turns(entries, session_key)
    if not turns:
        logger.debug(f"No conversation turns in {path}")
        return []
    project_name = Path(cwd.rstrip("/")).name if cwd else None
    return build_commits(turns, session_key, "codex", project_name or None)
