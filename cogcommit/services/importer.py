"""Import Claude Code / Codex transcripts into the local database."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import aiosqlite

from cogcommit import config
from cogcommit.db import factory
from cogcommit.models import CognitiveCommit, ImportResult
from cogcommit.parsers.platforms.registry import parse_session_file, scan_session_files
from cogcommit.parsers.sessions import mark_parallel

logger = logging.getLogger("cogcommit.import")


def collect_commits(
    claude_dir: Optional[Path],
    codex_dir: Optional[Path],
    project_path: Optional[Path] = None,
) -> tuple[list[CognitiveCommit], int, int]:
    """Parse every transcript; returns (commits, files parsed, files skipped)."""
    commits: list[CognitiveCommit] = []
    files = 0
    skipped = 0
    project_name = project_path.name if project_path else None

    for root, source in ((claude_dir, "claude_code"), (codex_dir, "codex")):
        if root is None:
            continue
        for path in scan_session_files(root, project_path if source == "claude_code" else None):
            parsed = parse_session_file(path, source)
            if project_name:
                parsed = [c for c in parsed if c.projectName == project_name]
            if not parsed:
                skipped += 1
                continue
            files += 1
            commits.extend(parsed)

    return mark_parallel(commits), files, skipped


async def import_file(db: aiosqlite.Connection, path: Path, source: Optional[str] = None) -> int:
    """Re-import a single transcript; returns the number of commits written."""
    commits = mark_parallel(parse_session_file(path, source))
    repo = factory.get_commit_repository(db)
    await _flag_overlaps_with_stored(repo, commits)
    for commit in commits:
        await repo.insert(commit)
    return len(commits)


async def _flag_overlaps_with_stored(repo, commits: list[CognitiveCommit]) -> None:
    """Mark ``commits`` and stored commits from other transcripts that overlap them."""
    ids = {c.id for c in commits}
    for project in {c.projectName or "" for c in commits}:
        stored = [c for c in await repo.list_spans(project or None) if c.id not in ids]
        already = {c.id for c in stored if c.parallel}
        mark_parallel([c for c in commits if (c.projectName or "") == project] + stored)
        for other in stored:
            if other.parallel and other.id not in already:
                await repo.set_parallel(other.id)


async def import_sessions(
    db: aiosqlite.Connection,
    claude_dir: Optional[Path] = None,
    codex_dir: Optional[Path] = None,
    project: Optional[Path] = None,
    clear: bool = False,
) -> ImportResult:
    """Scan, parse and store transcripts.

    ``project`` limits the import to the given working directory. ``clear``
    drops existing commits first (only that project's when ``project`` is set).
    """
    repo = factory.get_commit_repository(db)
    if clear:
        removed = await repo.clear(project.name if project else None)
        logger.info(f"Cleared {removed} existing commits")

    commits, files, skipped = collect_commits(
        claude_dir if claude_dir is not None else config.CLAUDE_PROJECTS_DIR,
        codex_dir if codex_dir is not None else config.CODEX_SESSIONS_DIR,
        project,
    )

    turns = 0
    for commit in commits:
        await repo.insert(commit)
        turns += commit.count_turns()

    logger.info(f"Imported {len(commits)} commits ({turns} turns) from {files} files")
    return ImportResult(files=files, commits=len(commits), turns=turns, skipped=skipped)
