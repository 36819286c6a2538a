"""Shared formatting helpers for the CLI, the studio and the hosted dashboard."""
from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone, tzinfo
from typing import Any, Optional

from cogcommit.date_utils import parse_iso
from cogcommit.models import ToolCall

_PROJECT_COLORS: list[dict[str, str]] = [
    {"bg": "bg-[#8a7aab]/20", "text": "text-[#a090c0]"},  # purple
    {"bg": "bg-[#5a8a9a]/20", "text": "text-[#6a9aaa]"},  # blue
    {"bg": "bg-[#5a9a7a]/20", "text": "text-[#6aaa8a]"},  # green
    {"bg": "bg-[#b8923a]/20", "text": "text-[#c8a24a]"},  # amber
    {"bg": "bg-[#a07080]/20", "text": "text-[#b08090]"},  # pink
    {"bg": "bg-[#5a8a8a]/20", "text": "text-[#6a9a9a]"},  # cyan
    {"bg": "bg-[#a09050]/20", "text": "text-[#b0a060]"},  # yellow
    {"bg": "bg-[#6a7a9a]/20", "text": "text-[#7a8aaa]"},  # indigo
]

_SOURCE_STYLES: dict[str, dict[str, str]] = {
    "claude_code": {"bg": "bg-[#5a8a9a]/20", "text": "text-[#6a9aaa]", "label": "Claude"},
    "cursor": {"bg": "bg-[#8a7aab]/20", "text": "text-[#a090c0]", "label": "Cursor"},
    "antigravity": {"bg": "bg-[#5a8a8a]/20", "text": "text-[#6a9a9a]", "label": "Antigravity"},
    "codex": {"bg": "bg-[#5a9a7a]/20", "text": "text-[#6aaa8a]", "label": "Codex"},
    "opencode": {"bg": "bg-[#b8923a]/20", "text": "text-[#c8a24a]", "label": "OpenCode"},
}
_UNKNOWN_SOURCE_STYLE = {"bg": "bg-text-subtle/20", "text": "text-muted", "label": "Unknown"}

_CLOSURE_STYLES: dict[str, dict[str, str]] = {
    "git_commit": {"bg": "bg-chronicle-green/20", "text": "text-chronicle-green", "label": "committed"},
    "session_end": {"bg": "bg-chronicle-amber/20", "text": "text-chronicle-amber", "label": "session ended"},
    "explicit": {"bg": "bg-chronicle-purple/20", "text": "text-chronicle-purple", "label": "closed"},
}

_TITLE_PREVIEW_LENGTH = 50
_TRAILING_PARTIAL_WORD = re.compile(r"\s+\S*$")


def format_model_name(model: Optional[str]) -> str:
    """Format a raw model id to its short display form."""
    if not model:
        return "Agent"
    if "opus-4-5" in model:
        return "Opus 4.5"
    if "opus-4" in model:
        return "Opus 4"
    if "opus" in model:
        return "Opus"
    if "sonnet-4" in model:
        return "Sonnet 4"
    if "3-5-sonnet" in model or "3.5-sonnet" in model:
        return "Sonnet 3.5"
    if "sonnet" in model:
        return "Sonnet"
    if "haiku" in model:
        return "Haiku"
    return model.split("-")[-1] or "Agent"


# ── Time ────────────────────────────────────────────────────────────

def _localize(iso: str, tz: Optional[tzinfo]) -> datetime:
    parsed = parse_iso(iso)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {iso!r}")
    return parsed.astimezone(tz) if tz else parsed.astimezone()


def _clock(dt: datetime, seconds: bool = False) -> str:
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    if seconds:
        return f"{hour}:{dt.minute:02d}:{dt.second:02d} {suffix}"
    return f"{hour}:{dt.minute:02d} {suffix}"


def _month_day(dt: datetime) -> str:
    return f"{dt.strftime('%b')} {dt.day}"


def format_relative_time(iso: str, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
    moment = _localize(iso, tz)
    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    diff_mins = math.floor((reference - moment).total_seconds() / 60)
    diff_hours = math.floor(diff_mins / 60)
    diff_days = math.floor(diff_hours / 24)

    if diff_mins < 1:
        return "just now"
    if diff_mins < 60:
        return f"{diff_mins}m ago"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    if diff_days == 1:
        return "yesterday"
    if diff_days < 7:
        return f"{diff_days}d ago"
    return _clock(moment)


def format_absolute_time(iso: str, tz: Optional[tzinfo] = None) -> str:
    """Format a tooltip timestamp, e.g. ``Wed, Jan 15, 2:30:05 PM``."""
    dt = _localize(iso, tz)
    return f"{dt.strftime('%a')}, {_month_day(dt)}, {_clock(dt, seconds=True)}"


def format_time(iso: str, tz: Optional[tzinfo] = None) -> str:
    """Format a commit card timestamp, e.g. ``Jan 15, 2:30 PM``."""
    dt = _localize(iso, tz)
    return f"{_month_day(dt)}, {_clock(dt)}"


def format_date(iso: Optional[str], tz: Optional[tzinfo] = None) -> str:
    if not iso or parse_iso(iso) is None:
        return "Unknown"
    dt = _localize(iso, tz)
    return f"{dt.month}/{dt.day}/{dt.year}"


def format_datetime(iso: Optional[str], tz: Optional[tzinfo] = None) -> str:
    if not iso or parse_iso(iso) is None:
        return "Unknown"
    dt = _localize(iso, tz)
    return f"{dt.month}/{dt.day}/{dt.year}, {_clock(dt, seconds=True)}"


def get_gap_minutes(timestamp1: str, timestamp2: str) -> float:
    t1 = parse_iso(timestamp1)
    t2 = parse_iso(timestamp2)
    if t1 is None or t2 is None:
        return 0.0
    return abs((t2 - t1).total_seconds()) / 60


def _js_round(value: float) -> int:
    return math.floor(value + 0.5)


def format_gap(minutes: float) -> str:
    if minutes < 60:
        return f"{_js_round(minutes)} min"
    hours = math.floor(minutes / 60)
    mins = _js_round(minutes % 60)
    if hours < 24:
        return f"{hours}h {mins}m" if mins > 0 else f"{hours}h"
    days = math.floor(hours / 24)
    remaining_hours = hours % 24
    return f"{days}d {remaining_hours}h" if remaining_hours > 0 else f"{days}d"


def format_time_range(started_at: str, closed_at: str, tz: Optional[tzinfo] = None) -> str:
    """Format a commit time span with its duration.

    Same day: ``Jan 15, 2025 2:30 PM – 4:45 PM (2h 15m)``.
    Different days: ``Jan 15, 2:30 PM – Jan 16, 10:00 AM (19h 30m)``.
    """
    t1 = _localize(started_at, tz)
    t2 = _localize(closed_at, tz)
    start, end = (t1, t2) if t1 <= t2 else (t2, t1)

    duration_mins = math.floor((end - start).total_seconds() / 60)
    duration = format_gap(duration_mins)

    if start.date() == end.date():
        return f"{_month_day(start)}, {start.year} {_clock(start)} – {_clock(end)} ({duration})"
    return f"{_month_day(start)}, {_clock(start)} – {_month_day(end)}, {_clock(end)} ({duration})"


# ── Titles / badges ─────────────────────────────────────────────────

def truncate_at_word(text: str, max_length: int) -> str:
    """Cut ``text`` to ``max_length`` chars, dropping a partial last word, and add ``…``."""
    if len(text) <= max_length:
        return text
    return _TRAILING_PARTIAL_WORD.sub("", text[:max_length]) + "…"


def generate_title_preview(first_user_content: Optional[str]) -> str:
    if not first_user_content:
        return "Empty conversation"
    return truncate_at_word(first_user_content.strip(), _TITLE_PREVIEW_LENGTH)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def get_project_color(name: str) -> dict[str, str]:
    """Pick a stable badge colour for a project name."""
    code_units = name.encode("utf-16-le")
    hash_value = 0
    for i in range(0, len(code_units), 2):
        code = int.from_bytes(code_units[i:i + 2], "little")
        hash_value = code + (_to_int32(_to_int32(hash_value) << 5) - hash_value)
    return _PROJECT_COLORS[abs(int(hash_value)) % len(_PROJECT_COLORS)]


def get_source_style(source: Optional[str]) -> dict[str, str]:
    return dict(_SOURCE_STYLES.get(source or "", _UNKNOWN_SOURCE_STYLE))


def get_closure_style(closed_by: str) -> dict[str, str]:
    return dict(_CLOSURE_STYLES.get(closed_by, _CLOSURE_STYLES["explicit"]))


# ── Tools ───────────────────────────────────────────────────────────

def format_tool_input(tool_input: dict[str, Any]) -> str:
    if "command" in tool_input:
        return f"command: {tool_input['command']}"
    if "file_path" in tool_input:
        return f"file: {tool_input['file_path']}"
    if "pattern" in tool_input:
        return f"pattern: {tool_input['pattern']}"
    return json.dumps(tool_input, indent=2)


def get_tool_summary(tool_call: ToolCall) -> str:
    """Short hover text for a tool pill."""
    tool_input = tool_call.input or {}
    if "file_path" in tool_input:
        return str(tool_input["file_path"])
    if "command" in tool_input:
        command = str(tool_input["command"])
        return command[:60] + "..." if len(command) > 60 else command
    if "pattern" in tool_input:
        return f"pattern: {tool_input['pattern']}"
    if "query" in tool_input:
        return f"query: {tool_input['query']}"
    if "url" in tool_input:
        return str(tool_input["url"])
    if tool_call.isError:
        return "Error"
    return tool_call.name


def format_bytes(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.1f} MB"


def escape_regex(text: str) -> str:
    return re.escape(text)
