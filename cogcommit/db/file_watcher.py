"""File watcher service using watchfiles.

Monitors transcript directories while the studio runs and re-imports
transcripts that were added or modified.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiosqlite
from watchfiles import Change, awatch

from cogcommit.services.importer import import_file

logger = logging.getLogger("cogcommit.watcher")


class FileWatcher:
    """Background file watcher that re-imports changed transcripts.

    Uses `watchfiles` (Rust-accelerated) for efficient watching.
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self, db: aiosqlite.Connection, claude_dir: Path, codex_dir: Path) -> None:
        """Start watching transcript directories in a background task."""
        if self._running:
            logger.warning("File watcher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._watch_loop(db, claude_dir, codex_dir))
        logger.info("File watcher started")

    async def stop(self) -> None:
        """Stop the file watcher."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, db: aiosqlite.Connection, claude_dir: Path, codex_dir: Path) -> None:
        watch_paths = [p for p in (claude_dir, codex_dir) if p.exists()]
        if not watch_paths:
            logger.warning("No watch paths exist, watcher has nothing to monitor")
            self._running = False
            return

        logger.info(f"Watching {len(watch_paths)} directories: {[str(p) for p in watch_paths]}")

        try:
            async for changes in awatch(*watch_paths):
                if not self._running:
                    break
                for path in self.classify_changes(changes):
                    source = "codex" if _is_within(path, codex_dir) else "claude_code"
                    try:
                        written = await import_file(db, path, source)
                        logger.info(f"Re-imported {path.name}: {written} commits")
                    except Exception as e:
                        logger.error(f"Error importing {path}: {e}")
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
        finally:
            self._running = False

    @staticmethod
    def classify_changes(changes: set[tuple[Change, str]]) -> list[Path]:
        """Transcripts to re-import; deletions are ignored so history survives log rotation."""
        result: list[Path] = []
        for change_type, path_str in changes:
            path = Path(path_str)
            if path.suffix != ".jsonl" or path.parent.name == "subagents":
                continue
            if change_type in (Change.modified, Change.added) and path not in result:
                result.append(path)
        return sorted(result)


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


# Singleton instance
file_watcher = FileWatcher()
