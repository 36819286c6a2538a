"""Markdown / plain-text / JSON renderings of cognitive commits."""
from __future__ import annotations

import json
import re
from datetime import tzinfo
from typing import Optional

from cogcommit.formatters import format_date, format_datetime
from cogcommit.models import CognitiveCommit, ToolCall, Turn

_BULK_FILES_SHOWN = 10
_BULK_TURN_CHARS = 500
_COMMAND_SUMMARY_CHARS = 50
_UNSAFE_FILENAME_CHARS = re.compile(r"[\\/:*?\"<>|\x00-\x1f]+")


def _tool_call_hint(tc: ToolCall) -> str:
    if "file_path" in tc.input:
        return f" ({tc.input['file_path']})"
    if "command" in tc.input:
        command = str(tc.input["command"])
        if len(command) > _COMMAND_SUMMARY_CHARS:
            command = command[:_COMMAND_SUMMARY_CHARS] + "..."
        return f" ({command})"
    return ""


def format_turn_as_markdown(turn: Turn, tz: Optional[tzinfo] = None) -> str:
    role = "**You**" if turn.role == "user" else "**Agent**"
    content = f"### {role} — {format_datetime(turn.timestamp, tz)}\n\n{turn.content or ''}"
    if turn.toolCalls:
        content += "\n\n**Tool calls:**\n"
        for tc in turn.toolCalls:
            content += f"- `{tc.name}`{_tool_call_hint(tc)}\n"
    return content


def format_turn_as_plain_text(turn: Turn, tz: Optional[tzinfo] = None) -> str:
    role = "You" if turn.role == "user" else "Agent"
    content = f"{role} — {format_datetime(turn.timestamp, tz)}\n\n{turn.content or ''}"
    if turn.toolCalls:
        content += "\n\nTool calls:\n"
        for tc in turn.toolCalls:
            content += f"  - {tc.name}{_tool_call_hint(tc)}\n"
    return content


def format_commit_as_markdown(commit: CognitiveCommit, tz: Optional[tzinfo] = None) -> str:
    lines: list[str] = [f"# {commit.title or 'Conversation'}", ""]
    if commit.gitHash:
        lines.append(f"**Git:** `{commit.gitHash}`")
    lines.append(f"**Date:** {format_datetime(commit.closedAt, tz)}")
    if commit.projectName:
        lines.append(f"**Project:** {commit.projectName}")
    lines.append("")

    if commit.filesChanged:
        lines.append("**Files changed:**")
        lines.extend(f"- `{path}`" for path in commit.filesChanged)
        lines.append("")

    lines.extend(["---", ""])
    for turn in commit.all_turns():
        lines.append(format_turn_as_markdown(turn, tz))
        lines.append("")
    return "\n".join(lines)


def format_commit_as_plain_text(commit: CognitiveCommit, tz: Optional[tzinfo] = None) -> str:
    title = commit.title or "Conversation"
    lines: list[str] = [title, "=" * len(title), ""]
    if commit.gitHash:
        lines.append(f"Git: {commit.gitHash}")
    lines.append(f"Date: {format_datetime(commit.closedAt, tz)}")
    if commit.projectName:
        lines.append(f"Project: {commit.projectName}")
    lines.append("")

    if commit.filesChanged:
        lines.append("Files changed:")
        lines.extend(f"  - {path}" for path in commit.filesChanged)
        lines.append("")

    lines.extend(["-" * 40, ""])
    for turn in commit.all_turns():
        lines.append(format_turn_as_plain_text(turn, tz))
        lines.append("")
    return "\n".join(lines)


def format_commits_as_markdown(commits: list[CognitiveCommit], tz: Optional[tzinfo] = None) -> str:
    """Bulk export document used by ``cogcommit export --format markdown``."""
    md = "# Cognitive Commits Export\n\n"
    for commit in commits:
        md += f"## {commit.title or commit.id[:8]}\n\n"
        md += f"- **Project**: {commit.projectName or 'Unknown'}\n"
        md += f"- **Date**: {format_date(commit.closedAt, tz)}\n"
        md += f"- **Git Hash**: {commit.gitHash or 'None'}\n"
        md += f"- **Source**: {commit.source or 'claude_code'}\n\n"

        if commit.filesChanged:
            md += "### Files Changed\n\n"
            for path in commit.filesChanged[:_BULK_FILES_SHOWN]:
                md += f"- {path}\n"
            if len(commit.filesChanged) > _BULK_FILES_SHOWN:
                md += f"- ... and {len(commit.filesChanged) - _BULK_FILES_SHOWN} more\n"
            md += "\n"

        for session in commit.sessions:
            md += "### Session\n\n"
            for turn in session.turns:
                label = "**User**" if turn.role == "user" else "**Assistant**"
                content = turn.content or ""
                if len(content) > _BULK_TURN_CHARS:
                    content = content[:_BULK_TURN_CHARS] + "..."
                md += f"{label}: {content}\n\n"
        md += "---\n\n"
    return md


def format_commits_as_json(commits: list[CognitiveCommit]) -> str:
    return json.dumps([c.model_dump(mode="json") for c in commits], indent=2)


def export_filename(commit: CognitiveCommit, ext: str) -> str:
    stem = _UNSAFE_FILENAME_CHARS.sub("-", commit.title or "conversation").strip() or "conversation"
    return f"{stem}-{commit.id[:8]}.{ext}"
