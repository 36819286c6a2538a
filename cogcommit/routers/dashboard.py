"""Hosted dashboard routers: per-user commits, usage and profile."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException

from cogcommit import config
from cogcommit.auth import AuthError, fetch_supabase_user, github_username
from cogcommit.db import connection
from cogcommit.db.factory import get_commit_repository
from cogcommit.db.repositories.postgres.profiles import PostgresUserProfileRepository
from cogcommit.models import (
    CognitiveCommit,
    CommitListResult,
    CommitUpdate,
    ProjectListItem,
    UsageData,
    UserProfile,
)
from cogcommit.services.cloud_sync import is_syncable

logger = logging.getLogger("cogcommit.web")


def get_current_user(authorization: str | None = Header(None)) -> dict[str, Any]:
    """Resolve the bearer token to a Supabase user (401 on failure)."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        user = fetch_supabase_user(token)
    except config.SupabaseNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    if not user.get("id"):
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


async def _cloud_db():
    try:
        return await connection.get_cloud_pool()
    except connection.CloudNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e))


def build_commit_list(commits: list[CognitiveCommit], project: str | None = None) -> CommitListResult:
    """Drop empty and warmup commits; count projects when not filtering by one."""
    visible = [c for c in commits if is_syncable(c)]

    projects: list[ProjectListItem] = []
    if not project:
        counts: dict[str, int] = {}
        for commit in visible:
            if commit.projectName:
                counts[commit.projectName] = counts.get(commit.projectName, 0) + 1
        projects = [
            ProjectListItem(name=name, count=count)
            for name, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
        ]

    return CommitListResult(commits=visible, projects=projects, totalCount=len(visible))


dashboard_router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@dashboard_router.get("/commits", response_model=CommitListResult)
async def list_commits(project: str | None = None, user: dict = Depends(get_current_user)):
    db = await _cloud_db()
    commits = await get_commit_repository(db).list_for_user(user["id"], project=project)
    return build_commit_list(commits, project)


@dashboard_router.get("/commits/{commit_id}")
async def get_commit(commit_id: str, user: dict = Depends(get_current_user)):
    db = await _cloud_db()
    commit = await get_commit_repository(db).get_for_user(commit_id, user["id"])
    if not commit:
        raise HTTPException(status_code=404, detail=f"Commit {commit_id} not found")
    return {"commit": commit}


@dashboard_router.patch("/commits/{commit_id}")
async def update_commit(commit_id: str, req: CommitUpdate, user: dict = Depends(get_current_user)):
    db = await _cloud_db()
    commit = await get_commit_repository(db).update(commit_id, user["id"], req)
    if not commit:
        raise HTTPException(status_code=404, detail=f"Commit {commit_id} not found")
    return {"commit": commit}


@dashboard_router.delete("/commits/{commit_id}")
async def delete_commit(commit_id: str, user: dict = Depends(get_current_user)):
    db = await _cloud_db()
    if not await get_commit_repository(db).soft_delete(commit_id, user["id"]):
        raise HTTPException(status_code=404, detail=f"Commit {commit_id} not found")
    return {"deleted": commit_id}


@dashboard_router.get("/usage", response_model=UsageData)
async def get_usage(user: dict = Depends(get_current_user)):
    db = await _cloud_db()
    commit_count, storage_bytes = await get_commit_repository(db).usage_for_user(user["id"])
    return UsageData(
        commitCount=commit_count,
        commitLimit=config.FREE_TIER_COMMIT_LIMIT,
        storageUsedBytes=storage_bytes,
        storageLimitBytes=config.FREE_TIER_STORAGE_LIMIT_BYTES,
    )


me_router = APIRouter(prefix="/api/me", tags=["profile"])


@me_router.get("", response_model=UserProfile)
async def get_me(user: dict = Depends(get_current_user)):
    metadata = user.get("user_metadata") or {}
    profile = UserProfile(
        id=user["id"],
        githubUsername=github_username(user),
        email=user.get("email"),
        avatarUrl=metadata.get("avatar_url"),
        createdAt=user.get("created_at"),
    )
    db = await _cloud_db()
    return await PostgresUserProfileRepository(db).upsert(profile)
