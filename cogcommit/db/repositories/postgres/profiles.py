"""PostgreSQL storage for hosted user profiles."""
from __future__ import annotations

import asyncpg

from cogcommit.date_utils import utc_now_iso
from cogcommit.models import UserProfile


class PostgresUserProfileRepository:
    def __init__(self, db: asyncpg.Pool | asyncpg.Connection):
        self.db = db

    async def upsert(self, profile: UserProfile) -> UserProfile:
        row = await self.db.fetchrow(
            """
            INSERT INTO user_profiles (id, github_username, email, avatar_url, created_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT(id) DO UPDATE SET
                github_username=EXCLUDED.github_username,
                email=EXCLUDED.email, avatar_url=EXCLUDED.avatar_url
            RETURNING *
            """,
            profile.id, profile.githubUsername, profile.email, profile.avatarUrl,
            profile.createdAt or utc_now_iso(),
        )
        return UserProfile(
            id=row["id"],
            githubUsername=row["github_username"] or "Unknown",
            email=row["email"],
            avatarUrl=row["avatar_url"],
            createdAt=row["created_at"],
        )
