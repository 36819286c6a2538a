import json
import unittest
from contextlib import asynccontextmanager

from cogcommit.db.repositories.postgres.commits import CommitOwnershipError, PostgresCommitRepository
from cogcommit.db.repositories.postgres.profiles import PostgresUserProfileRepository
from cogcommit.models import CognitiveCommit, CommitUpdate, Session, ToolCall, Turn, UserProfile

COMMIT_ROW = {
    "id": "c1", "user_id": "user-1", "git_hash": "1a2b3c4",
    "started_at": "2025-01-15T10:00:00Z", "closed_at": "2025-01-15T10:05:00Z",
    "closed_by": "git_commit", "parallel": False,
    "files_read": ["README.md"], "files_changed": ["a.py"],
    "title": "Fix", "project_name": "api", "source": "codex", "hidden": False,
}
SESSION_ROW = {"id": "s1", "commit_id": "c1", "started_at": "2025-01-15T10:00:00Z", "ended_at": "2025-01-15T10:05:00Z"}
TURN_ROWS = [
    {"id": "t1", "session_id": "s1", "role": "user", "content": "Fix it", "timestamp": "2025-01-15T10:00:00Z",
     "tool_calls": None, "triggers_visual": False, "model": None},
    {"id": "t2", "session_id": "s1", "role": "assistant", "content": None, "timestamp": "2025-01-15T10:01:00Z",
     "tool_calls": json.dumps([{"id": "tc", "name": "Edit", "input": {"file_path": "a.py"}}]),
     "triggers_visual": True, "model": "gpt-5-codex"},
]


class _FakeConnection:
    """Records statements and serves canned rows by table."""

    def __init__(self, execute_result: str = "UPDATE 1", foreign_ids: tuple = ()):
        self.executed: list[tuple[str, tuple]] = []
        self.executemany_calls: list[tuple[str, list]] = []
        self.execute_result = execute_result
        self.foreign_ids = set(foreign_ids)

    async def fetch(self, query, *params):
        if "FROM cognitive_commits" in query:
            return [COMMIT_ROW]
        if "FROM sessions" in query:
            return [SESSION_ROW]
        if "FROM turns" in query:
            return TURN_ROWS
        return []

    async def fetchrow(self, query, *params):
        if "INSERT INTO cognitive_commits" in query:
            self.executed.append((query, params))
            return None if params[0] in self.foreign_ids else {"id": params[0]}
        if "INSERT INTO user_profiles" in query:
            return {"id": params[0], "github_username": params[1], "email": params[2],
                    "avatar_url": params[3], "created_at": params[4]}
        if "commit_count" in query:
            return {"commit_count": 3, "storage_bytes": 2048}
        return COMMIT_ROW if params[0] == "c1" else None

    async def fetchval(self, query, *params):
        return 3

    async def execute(self, query, *params):
        self.executed.append((query, params))
        return self.execute_result

    async def executemany(self, query, args):
        self.executemany_calls.append((query, list(args)))

    @asynccontextmanager
    async def transaction(self):
        yield


class PostgresCommitRepositoryTests(unittest.IsolatedAsyncioTestCase):
    async def test_list_hydrates_sessions_and_turns(self) -> None:
        commits = await PostgresCommitRepository(_FakeConnection()).list_for_user("user-1", project="api")
        self.assertEqual(len(commits), 1)
        commit = commits[0]
        self.assertEqual(commit.syncStatus, "synced")
        self.assertEqual(commit.filesChanged, ["a.py"])
        self.assertEqual(commit.turnCount, 2)
        turn = commit.sessions[0].turns[1]
        self.assertEqual(turn.content, "")
        self.assertEqual(turn.toolCalls[0].input, {"file_path": "a.py"})
        self.assertTrue(turn.triggersVisualUpdate)
        self.assertIsNone(commit.sessions[0].turns[0].triggersVisualUpdate)

    async def test_upsert_writes_commit_sessions_and_turns(self) -> None:
        conn = _FakeConnection()
        commit = CognitiveCommit(
            id="c1", startedAt="2025-01-15T10:00:00Z", closedAt="2025-01-15T10:05:00Z",
            sessions=[Session(id="s1", startedAt="2025-01-15T10:00:00Z", endedAt="2025-01-15T10:05:00Z", turns=[
                Turn(id="t1", role="assistant", timestamp="2025-01-15T10:00:00Z",
                     toolCalls=[ToolCall(id="tc", name="Read", input={"file_path": "a.py"})]),
            ])],
        )
        await PostgresCommitRepository(conn).upsert(commit, "user-1", "machine-1")

        query, params = conn.executed[0]
        self.assertIn("WHERE cognitive_commits.user_id = EXCLUDED.user_id", query)
        self.assertIn("RETURNING id", query)
        self.assertEqual(params[:2], ("c1", "user-1"))
        self.assertEqual(params[13], "machine-1")
        self.assertEqual([q.split()[2] for q, _ in conn.executemany_calls], ["sessions", "turns"])
        turn_args = conn.executemany_calls[1][1][0]
        self.assertEqual(json.loads(turn_args[5])[0]["name"], "Read")

    async def test_upsert_refuses_commit_owned_by_another_user(self) -> None:
        conn = _FakeConnection(foreign_ids=("c1",))
        commit = CognitiveCommit(
            id="c1", startedAt="2025-01-15T10:00:00Z", closedAt="2025-01-15T10:05:00Z",
            sessions=[Session(id="s1", startedAt="2025-01-15T10:00:00Z", endedAt="2025-01-15T10:05:00Z", turns=[
                Turn(id="t1", role="user", content="hi", timestamp="2025-01-15T10:00:00Z"),
            ])],
        )
        with self.assertRaises(CommitOwnershipError):
            await PostgresCommitRepository(conn).upsert(commit, "user-1")
        self.assertEqual(conn.executemany_calls, [])

    async def test_update_scopes_to_user(self) -> None:
        conn = _FakeConnection()
        updated = await PostgresCommitRepository(conn).update("c1", "user-1", CommitUpdate(title=" New ", hidden=True))
        self.assertIsNotNone(updated)
        query, params = conn.executed[0]
        self.assertIn("title = $1", query)
        self.assertIn("hidden = $2", query)
        self.assertIn("WHERE id = $4 AND user_id = $5", query)
        self.assertEqual(params[0], "New")
        self.assertEqual(params[-2:], ("c1", "user-1"))

    async def test_soft_delete_reads_command_tag(self) -> None:
        self.assertTrue(await PostgresCommitRepository(_FakeConnection("UPDATE 1")).soft_delete("c1", "user-1"))
        self.assertFalse(await PostgresCommitRepository(_FakeConnection("UPDATE 0")).soft_delete("c1", "user-1"))

    async def test_usage_and_ids(self) -> None:
        repo = PostgresCommitRepository(_FakeConnection())
        self.assertEqual(await repo.usage_for_user("user-1"), (3, 2048))
        self.assertEqual(await repo.count_for_user("user-1"), 3)
        self.assertEqual(await repo.list_ids_for_user("user-1"), {"c1"})
        self.assertIsNone(await repo.get_for_user("missing", "user-1"))


class PostgresProfileRepositoryTests(unittest.IsolatedAsyncioTestCase):
    async def test_upsert_returns_stored_profile(self) -> None:
        profile = await PostgresUserProfileRepository(_FakeConnection()).upsert(
            UserProfile(id="user-1", githubUsername="octo", email="o@example.com")
        )
        self.assertEqual(profile.githubUsername, "octo")
        self.assertIsNotNone(profile.createdAt)


if __name__ == "__main__":
    unittest.main()
