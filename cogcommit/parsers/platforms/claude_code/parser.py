"""Parse Claude Code JSONL transcripts into cognitive commits."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from cogcommit.models import CognitiveCommit, ToolCall, Turn
from cogcommit.parsers.sessions import build_commits, make_id

logger = logging.getLogger("cogcommit.import")

_SYNTHETIC_MODEL = "<synthetic>"
_SKIPPED_USER_PREFIXES = (
    "<local-command-stdout>",
    "<local-command-stderr>",
    "Caveat: The messages below were generated by the user while running local commands.",
)


def _load_entries(path: Path) -> list[dict[str, Any]]:
    try:
        lines = path.read_text(encoding="utf-8").strip().splitlines()
    except (OSError, UnicodeDecodeError):
        return []

    entries = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            entries.append(entry)
    return entries


def _tool_result_to_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: list[str] = []
        for block in content:
            if isinstance(block, str):
                chunks.append(block)
            elif isinstance(block, dict):
                text = block.get("text")
                if isinstance(text, str) and text.strip():
                    chunks.append(text)
                elif isinstance(block.get("content"), str):
                    chunks.append(block["content"])
        return "\n".join(chunks)
    if content is None:
        return ""
    return json.dumps(content)


def _text_blocks(content: Any) -> list[str]:
    if isinstance(content, str):
        return [content] if content.strip() else []
    if not isinstance(content, list):
        return []
    return [
        block["text"]
        for block in content
        if isinstance(block, dict) and block.get("type") == "text"
        and isinstance(block.get("text"), str) and block["text"].strip()
    ]


def _project_name(entries: list[dict[str, Any]], path: Path) -> Optional[str]:
    for entry in entries:
        cwd = entry.get("cwd")
        if isinstance(cwd, str) and cwd.strip():
            return Path(cwd.rstrip("/")).name or None
    # ~/.claude/projects/-Users-me-code-app/<session>.jsonl
    encoded = path.parent.name
    tokens = [t for t in encoded.split("-") if t]
    return tokens[-1] if tokens else None


def parse_turns(entries: list[dict[str, Any]], session_key: str) -> list[Turn]:
    """Collapse raw transcript entries into ordered user/assistant turns."""
    turns: list[Turn] = []
    pending_tools: dict[str, ToolCall] = {}
    current_assistant: Optional[Turn] = None
    current_message_id: Optional[str] = None

    for index, entry in enumerate(entries):
        entry_type = entry.get("type")
        if entry_type not in ("user", "assistant"):
            continue
        if entry.get("isSidechain") or entry.get("isMeta"):
            continue
        message = entry.get("message")
        if not isinstance(message, dict):
            continue
        timestamp = str(entry.get("timestamp") or "")
        content = message.get("content")

        if entry_type == "user":
            if isinstance(content, list):
                for block in content:
                    if isinstance(block, dict) and block.get("type") == "tool_result":
                        tc = pending_tools.get(str(block.get("tool_use_id") or ""))
                        if tc is not None:
                            tc.result = _tool_result_to_text(block.get("content"))
                            tc.isError = bool(block.get("is_error")) or None
            text = "\n".join(_text_blocks(content)).strip()
            if not text or text.startswith(_SKIPPED_USER_PREFIXES):
                continue
            current_assistant = None
            current_message_id = None
            turns.append(Turn(
                id=str(entry.get("uuid") or make_id(session_key, "turn", index)),
                role="user",
                content=text,
                timestamp=timestamp,
            ))
            continue

        message_id = message.get("id")
        if current_assistant is None or not message_id or message_id != current_message_id:
            model = message.get("model")
            current_assistant = Turn(
                id=str(entry.get("uuid") or make_id(session_key, "turn", index)),
                role="assistant",
                content="",
                timestamp=timestamp,
                model=model if model and model != _SYNTHETIC_MODEL else None,
            )
            current_message_id = message_id
            turns.append(current_assistant)

        texts = _text_blocks(content)
        if texts:
            joined = "\n".join(texts)
            current_assistant.content = (
                f"{current_assistant.content}\n{joined}" if current_assistant.content else joined
            )
        if isinstance(content, list):
            for block in content:
                if not isinstance(block, dict) or block.get("type") != "tool_use":
                    continue
                tc = ToolCall(
                    id=str(block.get("id") or make_id(session_key, "tool", index, len(pending_tools))),
                    name=str(block.get("name") or "unknown"),
                    input=block.get("input") if isinstance(block.get("input"), dict) else {},
                )
                pending_tools[tc.id] = tc
                current_assistant.toolCalls = (current_assistant.toolCalls or []) + [tc]

    return turns


def parse_session_file(path: Path) -> list[CognitiveCommit]:
    """Parse a single Claude Code transcript. Unreadable files yield no commits."""
    entries = _load_entries(path)
    if not entries:
        return []

    session_key = next(
        (str(e["sessionId"]) for e in entries if isinstance(e.get("sessionId"), str) and e["sessionId"]),
        path.stem,
    )
    turns = parse_turns(entries, session_key)
    if not turns:
        logger.debug(f"No conversation turns in {path}")
        return []
    return build_commits(turns, session_key, "claude_code", _project_name(entries, path))
