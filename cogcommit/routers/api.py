"""Studio API routers for commits, projects, search and stats."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from cogcommit.db import connection
from cogcommit.db.factory import get_commit_repository, get_turn_repository
from cogcommit.models import (
    CognitiveCommit,
    CommitListResult,
    CommitStats,
    CommitUpdate,
    ProjectListItem,
    RenderItemsResponse,
    SearchHit,
)
from cogcommit.services.conversation import build_render_items, search_match_indices
from cogcommit.services.exporters import (
    export_filename,
    format_commit_as_markdown,
    format_commit_as_plain_text,
)
from cogcommit.services.search import highlight_match

_MARK_OPEN = "<mark>"
_MARK_CLOSE = "</mark>"


async def _get_commit_or_404(commit_id: str) -> CognitiveCommit:
    db = await connection.get_connection()
    commit = await get_commit_repository(db).get_by_id(commit_id)
    if not commit:
        raise HTTPException(status_code=404, detail=f"Commit {commit_id} not found")
    return commit


# ── Commits router ──────────────────────────────────────────────────

commits_router = APIRouter(prefix="/api/commits", tags=["commits"])


@commits_router.get("", response_model=CommitListResult)
async def list_commits(
    project: str | None = Query(None, description="Filter by project name"),
    include_hidden: bool = Query(False, description="Include hidden commits"),
    limit: int | None = Query(None, ge=1),
):
    """Return commits newest first, with the project sidebar counts."""
    db = await connection.get_connection()
    repo = get_commit_repository(db)
    commits = await repo.list_all(project=project, include_hidden=include_hidden, limit=limit)
    projects = await repo.list_projects(include_hidden=include_hidden)
    return CommitListResult(commits=commits, projects=projects, totalCount=len(commits))


@commits_router.get("/{commit_id}")
async def get_commit(commit_id: str):
    commit = await _get_commit_or_404(commit_id)
    return {"commit": commit}


@commits_router.patch("/{commit_id}")
async def update_commit(commit_id: str, req: CommitUpdate):
    db = await connection.get_connection()
    commit = await get_commit_repository(db).update(commit_id, req)
    if not commit:
        raise HTTPException(status_code=404, detail=f"Commit {commit_id} not found")
    return {"commit": commit}


@commits_router.delete("/{commit_id}")
async def delete_commit(commit_id: str):
    db = await connection.get_connection()
    deleted = await get_commit_repository(db).delete(commit_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Commit {commit_id} not found")
    return {"deleted": commit_id}


@commits_router.get("/{commit_id}/items", response_model=RenderItemsResponse)
async def get_commit_items(commit_id: str, search: str = ""):
    """Conversation grouped into render items, with in-conversation search matches."""
    commit = await _get_commit_or_404(commit_id)
    items = build_render_items(commit, search)
    return RenderItemsResponse(items=items, matchIndices=search_match_indices(items))


@commits_router.get("/{commit_id}/export", response_class=PlainTextResponse)
async def export_commit(commit_id: str, format: str = Query("markdown", pattern="^(markdown|text)$")):
    commit = await _get_commit_or_404(commit_id)
    if format == "text":
        body, ext, media_type = format_commit_as_plain_text(commit), "txt", "text/plain"
    else:
        body, ext, media_type = format_commit_as_markdown(commit), "md", "text/markdown"
    return PlainTextResponse(
        body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(commit, ext)}"'},
    )


# ── Projects router ─────────────────────────────────────────────────

projects_router = APIRouter(prefix="/api/projects", tags=["projects"])


@projects_router.get("", response_model=list[ProjectListItem])
async def list_projects(include_hidden: bool = False):
    db = await connection.get_connection()
    return await get_commit_repository(db).list_projects(include_hidden=include_hidden)


# ── Search router ───────────────────────────────────────────────────

search_router = APIRouter(prefix="/api/search", tags=["search"])


@search_router.get("", response_model=list[SearchHit])
async def search_turns(
    q: str = Query(..., min_length=1, description="Text to search for"),
    project: str | None = None,
    limit: int = Query(20, ge=1, le=200),
):
    db = await connection.get_connection()
    results = await get_turn_repository(db).search(q, project=project, limit=limit)
    return [
        SearchHit(**r.model_dump(), snippet=highlight_match(r.content, q, _MARK_OPEN, _MARK_CLOSE))
        for r in results
    ]


# ── Stats router ────────────────────────────────────────────────────

stats_router = APIRouter(prefix="/api/stats", tags=["stats"])


@stats_router.get("", response_model=CommitStats)
async def get_stats(project: str | None = None):
    db = await connection.get_connection()
    return await get_commit_repository(db).get_stats(project)
