"""Split parsed conversations into cognitive commits.

Platform parsers turn a transcript into an ordered list of ``Turn`` models.
This module cuts that list at every successful ``git commit`` and wraps each
slice into a ``CognitiveCommit`` with a single ``Session``. IDs are derived
with ``uuid5`` from the source session id and the slice index, so importing
the same transcript twice updates the existing rows instead of duplicating
them.
"""
from __future__ import annotations

import re
import uuid
from typing import Any, Optional

from cogcommit.date_utils import normalize_iso_date, parse_iso
from cogcommit.models import CognitiveCommit, ConversationSource, Session, ToolCall, Turn
from cogcommit.services.titles import generate_commit_title

_ID_NAMESPACE = uuid.UUID("6f1c1d6e-2b7a-4cf4-9a51-0c0f3c3e9d10")

_COMMIT_BRACKET_PATTERN = re.compile(r"\[[^\]\n]*\s([0-9a-f]{7,40})\]", re.IGNORECASE)
_GIT_COMMIT_PATTERN = re.compile(r"\bgit\b(?:\s+-\S+(?:\s+\S+)?)*\s+commit\b")
_PATCH_FILE_PATTERN = re.compile(r"^\*\*\* (?:Add|Update|Delete) File:\s*(.+?)\s*$", re.MULTILINE)

_SHELL_TOOLS = {"Bash", "shell", "exec_command", "local_shell", "local_shell_call"}
_READ_TOOLS = {"Read", "ReadFile", "NotebookRead", "read_file", "view"}
_WRITE_TOOLS = {"Write", "WriteFile", "Edit", "MultiEdit", "NotebookEdit", "write_file", "edit_file"}
_PATCH_TOOLS = {"apply_patch"}
_FILE_PATH_KEYS = ("file_path", "path", "notebook_path", "target_file")


def make_id(*parts: Any) -> str:
    """Deterministic id for a commit, session or turn."""
    return str(uuid.uuid5(_ID_NAMESPACE, "|".join(str(p) for p in parts)))


def command_text(tool_input: dict[str, Any]) -> str:
    command = tool_input.get("command") or tool_input.get("cmd") or ""
    if isinstance(command, list):
        return " ".join(str(part) for part in command)
    return str(command)


def detect_git_commit(tool_call: ToolCall) -> Optional[str]:
    """Return the new commit hash when ``tool_call`` ran a successful ``git commit``."""
    if tool_call.name not in _SHELL_TOOLS or tool_call.isError:
        return None
    if not _GIT_COMMIT_PATTERN.search(command_text(tool_call.input or {})):
        return None
    match = _COMMIT_BRACKET_PATTERN.search(tool_call.result or "")
    return match.group(1) if match else None


def _input_path(tool_input: dict[str, Any]) -> str:
    for key in _FILE_PATH_KEYS:
        value = tool_input.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _patch_paths(tool_call: ToolCall) -> list[str]:
    tool_input = tool_call.input or {}
    patch = tool_input.get("input") or tool_input.get("patch") or ""
    if not patch and tool_call.name in _SHELL_TOOLS:
        command = command_text(tool_input)
        if "apply_patch" in command:
            patch = command
    return _PATCH_FILE_PATTERN.findall(str(patch))


def classify_files(tool_calls: list[ToolCall]) -> tuple[list[str], list[str]]:
    """Split touched paths into (read, changed), keeping first-seen order."""
    read: list[str] = []
    changed: list[str] = []
    for tc in tool_calls:
        if tc.name in _READ_TOOLS:
            path = _input_path(tc.input or {})
            if path and path not in read:
                read.append(path)
        elif tc.name in _WRITE_TOOLS:
            path = _input_path(tc.input or {})
            if path and path not in changed:
                changed.append(path)
        elif tc.name in _PATCH_TOOLS or tc.name in _SHELL_TOOLS:
            for path in _patch_paths(tc):
                if path not in changed:
                    changed.append(path)
    return read, changed


def _build_commit(
    turns: list[Turn],
    session_key: str,
    index: int,
    source: ConversationSource,
    project_name: Optional[str],
    git_hash: Optional[str],
) -> CognitiveCommit:
    tool_calls = [tc for turn in turns for tc in (turn.toolCalls or [])]
    files_read, files_changed = classify_files(tool_calls)

    for turn in turns:
        if turn.role == "assistant" and turn.toolCalls:
            _, changed = classify_files(turn.toolCalls)
            if changed:
                turn.triggersVisualUpdate = True

    started_at = normalize_iso_date(turns[0].timestamp)
    closed_at = normalize_iso_date(turns[-1].timestamp) or started_at
    commit_id = make_id(source, session_key, index)
    commit = CognitiveCommit(
        id=commit_id,
        gitHash=git_hash,
        startedAt=started_at,
        closedAt=closed_at,
        closedBy="git_commit" if git_hash else "session_end",
        filesRead=files_read,
        filesChanged=files_changed,
        projectName=project_name,
        source=source,
        sessions=[Session(
            id=make_id(source, session_key, index, "session"),
            startedAt=started_at,
            endedAt=closed_at,
            turns=turns,
        )],
        turnCount=len(turns),
    )
    commit.title = generate_commit_title(commit)
    return commit


def build_commits(
    turns: list[Turn],
    session_key: str,
    source: ConversationSource,
    project_name: Optional[str] = None,
) -> list[CognitiveCommit]:
    """Segment an ordered conversation into cognitive commits.

    A commit closes after the assistant turn whose tool call produced a
    ``git commit``; whatever follows the last one closes with the session.
    """
    commits: list[CognitiveCommit] = []
    current: list[Turn] = []

    for turn in turns:
        current.append(turn)
        git_hash = None
        if turn.role == "assistant":
            for tc in turn.toolCalls or []:
                git_hash = detect_git_commit(tc) or git_hash
        if git_hash:
            commits.append(_build_commit(current, session_key, len(commits), source, project_name, git_hash))
            current = []

    if current:
        commits.append(_build_commit(current, session_key, len(commits), source, project_name, None))
    return commits


def mark_parallel(commits: list[CognitiveCommit]) -> list[CognitiveCommit]:
    """Flag commits of the same project whose time ranges overlap."""
    by_project: dict[str, list[CognitiveCommit]] = {}
    for commit in commits:
        by_project.setdefault(commit.projectName or "", []).append(commit)

    for group in by_project.values():
        spans = []
        for commit in group:
            start = parse_iso(commit.startedAt)
            end = parse_iso(commit.closedAt)
            if start and end:
                spans.append((start, end, commit))
        spans.sort(key=lambda item: item[0])

        for i, (start, end, commit) in enumerate(spans):
            for other_start, other_end, other in spans[i + 1:]:
                if other_start >= end:
                    break
                commit.parallel = True
                other.parallel = True
    return commits
