"""Transcript parser registry for platform-specific implementations."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from cogcommit.models import CognitiveCommit
from cogcommit.parsers.platforms.claude_code import parser as claude_code_parser
from cogcommit.parsers.platforms.codex import parser as codex_parser

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def detect_source(path: Path) -> str:
    return "codex" if ".codex" in path.parts or path.name.startswith("rollout-") else "claude_code"


def parse_session_file(path: Path, source: Optional[str] = None) -> list[CognitiveCommit]:
    """Parse a transcript by delegating to the matching platform parser.

    ``.jsonl`` files are routed to the Codex parser when ``source`` says so
    or the file lives under a ``.codex`` tree, otherwise to Claude Code.
    """
    if path.suffix.lower() != ".jsonl":
        return []
    if (source or detect_source(path)) == "codex":
        return codex_parser.parse_session_file(path)
    return claude_code_parser.parse_session_file(path)


def encode_project_dir(project_path: Path) -> str:
    """Directory name Claude Code uses for a working directory."""
    return _NON_ALNUM.sub("-", str(project_path))


def scan_session_files(root: Path, project_path: Optional[Path] = None) -> list[Path]:
    """List transcripts under ``root``, newest first.

    With ``project_path``, only the Claude Code project directory for that
    working directory is scanned (when it exists).
    """
    if not root.exists():
        return []

    search_root = root
    if project_path is not None:
        candidate = root / encode_project_dir(project_path)
        if candidate.is_dir():
            search_root = candidate

    files = [
        p for p in search_root.rglob("*.jsonl")
        if p.is_file() and p.parent.name != "subagents"
    ]
    return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)
