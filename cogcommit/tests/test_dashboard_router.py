import unittest
from unittest.mock import AsyncMock, patch

from fastapi import HTTPException

from cogcommit import config
from cogcommit.auth import AuthError
from cogcommit.db import connection
from cogcommit.models import CognitiveCommit, CommitUpdate, Session, Turn, UserProfile
from cogcommit.routers import dashboard as dashboard_router

USER = {"id": "user-1", "email": "dev@example.com", "user_metadata": {"user_name": "devhub", "avatar_url": "https://a/x.png"}}


def _commit(commit_id: str, project: str | None, first_message: str = "Do work", turns: int = 2) -> CognitiveCommit:
    roles = ("user", "assistant")
    return CognitiveCommit(
        id=commit_id,
        startedAt="2025-01-15T10:00:00Z",
        closedAt="2025-01-15T10:05:00Z",
        projectName=project,
        sessions=[Session(
            id=f"{commit_id}-s",
            startedAt="2025-01-15T10:00:00Z",
            endedAt="2025-01-15T10:05:00Z",
            turns=[
                Turn(id=f"{commit_id}-{i}", role=roles[i % 2], content=first_message if i == 0 else "ok",
                     timestamp="2025-01-15T10:00:00Z")
                for i in range(turns)
            ],
        )],
    )


class _FakeCloudRepository:
    def __init__(self, commits):
        self.commits = {c.id: c for c in commits}
        self.deleted: list[str] = []

    async def list_for_user(self, user_id, project=None, include_hidden=False):
        return [c for c in self.commits.values() if project is None or c.projectName == project]

    async def get_for_user(self, commit_id, user_id):
        return self.commits.get(commit_id)

    async def update(self, commit_id, user_id, data):
        commit = self.commits.get(commit_id)
        if commit and data.title is not None:
            commit.title = data.title
        return commit

    async def soft_delete(self, commit_id, user_id):
        if self.commits.pop(commit_id, None) is None:
            return False
        self.deleted.append(commit_id)
        return True

    async def usage_for_user(self, user_id):
        return 2, 4096


class CommitListTests(unittest.TestCase):
    def test_filters_warmup_and_empty_commits(self) -> None:
        commits = [
            _commit("a1", "api"),
            _commit("a2", "api"),
            _commit("w1", "web"),
            _commit("warm", "web", first_message="Warmup"),
            _commit("empty", "web", turns=0),
            _commit("none", None),
        ]
        result = dashboard_router.build_commit_list(commits)
        self.assertEqual([c.id for c in result.commits], ["a1", "a2", "w1", "none"])
        self.assertEqual(result.totalCount, 4)
        self.assertEqual([(p.name, p.count) for p in result.projects], [("api", 2), ("web", 1)])

        scoped = dashboard_router.build_commit_list(commits, project="api")
        self.assertEqual(scoped.projects, [])


class CurrentUserTests(unittest.TestCase):
    def test_missing_or_malformed_header(self) -> None:
        for header in (None, "", "Token abc"):
            with self.assertRaises(HTTPException) as ctx:
                dashboard_router.get_current_user(header)
            self.assertEqual(ctx.exception.status_code, 401)

    def test_valid_token(self) -> None:
        with patch.object(dashboard_router, "fetch_supabase_user", return_value=USER) as fetch:
            self.assertEqual(dashboard_router.get_current_user("Bearer tok-123"), USER)
        fetch.assert_called_once_with("tok-123")

    def test_rejected_token(self) -> None:
        with patch.object(dashboard_router, "fetch_supabase_user", side_effect=AuthError("expired")):
            with self.assertRaises(HTTPException) as ctx:
                dashboard_router.get_current_user("Bearer tok")
        self.assertEqual(ctx.exception.status_code, 401)

    def test_supabase_not_configured(self) -> None:
        with patch.object(
            dashboard_router, "fetch_supabase_user", side_effect=config.SupabaseNotConfiguredError("unset")
        ):
            with self.assertRaises(HTTPException) as ctx:
                dashboard_router.get_current_user("Bearer tok")
        self.assertEqual(ctx.exception.status_code, 503)


class DashboardRouterTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.repo = _FakeCloudRepository([_commit("a1", "api"), _commit("warm", "api", first_message="warmup")])
        self._patches = [
            patch.object(dashboard_router, "_cloud_db", AsyncMock(return_value=object())),
            patch.object(dashboard_router, "get_commit_repository", return_value=self.repo),
        ]
        for p in self._patches:
            p.start()

    async def asyncTearDown(self) -> None:
        for p in self._patches:
            p.stop()

    async def test_list_commits(self) -> None:
        result = await dashboard_router.list_commits(project=None, user=USER)
        self.assertEqual([c.id for c in result.commits], ["a1"])

    async def test_get_update_delete(self) -> None:
        self.assertEqual((await dashboard_router.get_commit("a1", user=USER))["commit"].id, "a1")
        with self.assertRaises(HTTPException) as ctx:
            await dashboard_router.get_commit("missing", user=USER)
        self.assertEqual(ctx.exception.status_code, 404)

        updated = await dashboard_router.update_commit("a1", CommitUpdate(title="New"), user=USER)
        self.assertEqual(updated["commit"].title, "New")

        self.assertEqual(await dashboard_router.delete_commit("a1", user=USER), {"deleted": "a1"})
        with self.assertRaises(HTTPException):
            await dashboard_router.delete_commit("a1", user=USER)

    async def test_usage(self) -> None:
        usage = await dashboard_router.get_usage(user=USER)
        self.assertEqual(usage.commitCount, 2)
        self.assertEqual(usage.storageUsedBytes, 4096)
        self.assertEqual(usage.commitLimit, config.FREE_TIER_COMMIT_LIMIT)
        self.assertEqual(usage.storageLimitBytes, config.FREE_TIER_STORAGE_LIMIT_BYTES)

    async def test_me_upserts_profile(self) -> None:
        class _Profiles:
            def __init__(self, db):
                pass

            async def upsert(self, profile: UserProfile) -> UserProfile:
                return profile.model_copy(update={"createdAt": "2025-01-01T00:00:00Z"})

        with patch.object(dashboard_router, "PostgresUserProfileRepository", _Profiles):
            profile = await dashboard_router.get_me(user=USER)
        self.assertEqual(profile.githubUsername, "devhub")
        self.assertEqual(profile.avatarUrl, "https://a/x.png")
        self.assertEqual(profile.createdAt, "2025-01-01T00:00:00Z")


class CloudDbTests(unittest.IsolatedAsyncioTestCase):
    async def test_unconfigured_cloud_returns_503(self) -> None:
        with patch.object(config, "DATABASE_URL", ""):
            with self.assertRaises(HTTPException) as ctx:
                await dashboard_router._cloud_db()
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertIsNone(connection._cloud_pool)


if __name__ == "__main__":
    unittest.main()
