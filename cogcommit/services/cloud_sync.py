"""Push local commits to the hosted database and pull them back."""
from __future__ import annotations

import logging
from typing import Any, Optional

from cogcommit import config
from cogcommit.db import factory
from cogcommit.models import CognitiveCommit, PullResult, PushResult
from cogcommit.services.titles import is_warmup_commit

logger = logging.getLogger("cogcommit.sync")


def is_syncable(commit: CognitiveCommit) -> bool:
    """Warmup and empty commits never leave the machine."""
    return commit.count_turns() > 0 and not is_warmup_commit(commit)


async def push_commits(
    local_db: Any,
    cloud_db: Any,
    user_id: str,
    force: bool = False,
    retry: bool = False,
    dry_run: bool = False,
    limit: int = config.FREE_TIER_COMMIT_LIMIT,
    machine_id: Optional[str] = None,
) -> PushResult:
    local = factory.get_commit_repository(local_db)
    cloud = factory.get_commit_repository(cloud_db)
    result = PushResult(dryRun=dry_run)

    if force and not dry_run:
        reset = await local.reset_sync_status()
        logger.info(f"Reset sync status on {reset} commits")

    candidates = await local.list_for_push(include_failed=retry or force)
    result.candidates = len(candidates)

    syncable = [c for c in candidates if is_syncable(c)]
    result.skippedFiltered = len(candidates) - len(syncable)

    remote_ids = await cloud.list_ids_for_user(user_id)
    # Updating a commit that is already stored does not use up allowance
    remaining = max(0, limit - len(remote_ids))
    to_push: list[CognitiveCommit] = []
    for commit in syncable:
        if commit.id in remote_ids:
            to_push.append(commit)
        elif remaining > 0:
            to_push.append(commit)
            remaining -= 1
        else:
            result.skippedLimit += 1

    if dry_run:
        result.pushedIds = [c.id for c in to_push]
        return result

    for commit in to_push:
        try:
            await cloud.upsert(commit, user_id, machine_id)
        except Exception as e:
            logger.error(f"Failed to push commit {commit.id}: {e}")
            await local.mark_failed(commit.id, str(e))
            result.failed += 1
            result.errors[commit.id] = str(e)
            continue
        await local.mark_synced(commit.id)
        result.pushed += 1
        result.pushedIds.append(commit.id)

    logger.info(
        f"Push finished: {result.pushed} pushed, {result.failed} failed, "
        f"{result.skippedFiltered} filtered, {result.skippedLimit} over limit"
    )
    return result


async def pull_commits(local_db: Any, cloud_db: Any, user_id: str) -> PullResult:
    """Copy every remote commit of ``user_id`` into the local database."""
    local = factory.get_commit_repository(local_db)
    local_sessions = factory.get_session_repository(local_db)
    local_turns = factory.get_turn_repository(local_db)
    cloud = factory.get_commit_repository(cloud_db)

    remote = await cloud.list_for_user(user_id, include_hidden=True)
    result = PullResult()
    for commit in remote:
        await local.upsert_row(commit, keep_user_edits=False)
        for session in commit.sessions:
            await local_sessions.upsert(session, commit.id)
            for turn in session.turns:
                await local_turns.upsert(session.id, {
                    "id": turn.id,
                    "role": turn.role,
                    "content": turn.content,
                    "timestamp": turn.timestamp,
                    "toolCalls": [tc.model_dump() for tc in turn.toolCalls] if turn.toolCalls else None,
                    "triggersVisual": bool(turn.triggersVisualUpdate),
                    "model": turn.model,
                })
                result.turns += 1
        await local.mark_synced(commit.id)
        result.pulled += 1

    logger.info(f"Pulled {result.pulled} commits ({result.turns} turns)")
    return result
