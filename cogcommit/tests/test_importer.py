import json
import tempfile
import unittest
from pathlib import Path

from cogcommit.db.connection import open_sqlite
from cogcommit.db.repositories.commits import SqliteCommitRepository
from cogcommit.db.sqlite_migrations import run_migrations
from cogcommit.models import CommitUpdate
from cogcommit.services.importer import collect_commits, import_file, import_sessions


def _transcript(session_id: str, cwd: str, prompt: str) -> str:
    entries = [
        {"type": "user", "sessionId": session_id, "cwd": cwd, "uuid": f"{session_id}-u",
         "timestamp": "2025-01-15T10:00:00Z", "message": {"role": "user", "content": prompt}},
        {"type": "assistant", "sessionId": session_id, "cwd": cwd, "uuid": f"{session_id}-a",
         "timestamp": "2025-01-15T10:01:00Z",
         "message": {"id": f"{session_id}-m", "content": [{"type": "text", "text": "Sure"}]}},
    ]
    return "\n".join(json.dumps(e) for e in entries) + "\n"


class ImporterTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.claude_dir = root / "claude"
        self.codex_dir = root / "codex-missing"
        for name, session_id, cwd, prompt in (
            ("-work-api", "s-api", "/work/api", "Add caching"),
            ("-work-web", "s-web", "/work/web", "Fix layout"),
        ):
            project_dir = self.claude_dir / name
            project_dir.mkdir(parents=True)
            (project_dir / f"{session_id}.jsonl").write_text(_transcript(session_id, cwd, prompt), encoding="utf-8")
        (self.claude_dir / "-work-api" / "broken.jsonl").write_text("{not json\n", encoding="utf-8")

        self.db = await open_sqlite(":memory:")
        await run_migrations(self.db)
        self.repo = SqliteCommitRepository(self.db)

    async def asyncTearDown(self) -> None:
        await self.db.close()
        self._tmp.cleanup()

    async def test_import_all_transcripts(self) -> None:
        result = await import_sessions(self.db, self.claude_dir, self.codex_dir)
        self.assertEqual(result.commits, 2)
        self.assertEqual(result.files, 2)
        self.assertEqual(result.turns, 4)
        self.assertEqual(result.skipped, 1)
        self.assertEqual({c.projectName for c in await self.repo.list_all()}, {"api", "web"})

    async def test_reimport_is_idempotent(self) -> None:
        await import_sessions(self.db, self.claude_dir, self.codex_dir)
        commit = (await self.repo.list_all(project="api"))[0]
        await self.repo.update(commit.id, CommitUpdate(title="Renamed"))

        await import_sessions(self.db, self.claude_dir, self.codex_dir)
        self.assertEqual(await self.repo.count(), 2)
        self.assertEqual((await self.repo.get_by_id(commit.id)).title, "Renamed")

    async def test_project_scoped_import_and_clear(self) -> None:
        await import_sessions(self.db, self.claude_dir, self.codex_dir)
        result = await import_sessions(self.db, self.claude_dir, self.codex_dir, project=Path("/work/web"), clear=True)
        self.assertEqual(result.commits, 1)
        self.assertEqual([p.name for p in await self.repo.list_projects()], ["api", "web"])

        commits, files, _ = collect_commits(self.claude_dir, None, Path("/work/api"))
        self.assertEqual(files, 1)
        self.assertEqual([c.projectName for c in commits], ["api"])

    async def test_import_single_file(self) -> None:
        written = await import_file(self.db, self.claude_dir / "-work-web" / "s-web.jsonl")
        self.assertEqual(written, 1)
        self.assertEqual(await self.repo.count("web"), 1)

    async def test_single_file_reimport_keeps_parallel_flags(self) -> None:
        second = self.claude_dir / "-work-api" / "s-api2.jsonl"
        second.write_text(_transcript("s-api2", "/work/api", "Write tests"), encoding="utf-8")
        await import_sessions(self.db, self.claude_dir, self.codex_dir)
        self.assertEqual([c.parallel for c in await self.repo.list_all(project="api")], [True, True])

        await import_file(self.db, second)
        self.assertEqual([c.parallel for c in await self.repo.list_all(project="api")], [True, True])

    async def test_single_file_import_flags_overlapping_stored_commit(self) -> None:
        await import_sessions(self.db, self.claude_dir, self.codex_dir)
        second = self.claude_dir / "-work-api" / "s-api2.jsonl"
        second.write_text(_transcript("s-api2", "/work/api", "Write tests"), encoding="utf-8")

        await import_file(self.db, second)
        self.assertEqual([c.parallel for c in await self.repo.list_all(project="api")], [True, True])
        self.assertEqual([c.parallel for c in await self.repo.list_all(project="web")], [False])


if __name__ == "__main__":
    unittest.main()
