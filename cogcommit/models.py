"""Pydantic models shared by the CLI, the studio API and the hosted dashboard."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, Optional

Role = Literal["user", "assistant"]
ClosedBy = Literal["git_commit", "session_end", "explicit"]
ConversationSource = Literal["claude_code", "cursor", "antigravity", "codex", "opencode"]
SyncStatus = Literal["pending", "synced", "failed"]

# ── Conversation tree ───────────────────────────────────────────────

class ToolCall(BaseModel):
    id: str
    name: str
    input: dict = Field(default_factory=dict)
    result: Optional[str] = None
    isError: Optional[bool] = None


class Turn(BaseModel):
    id: str
    role: Role
    content: str = ""
    timestamp: str
    model: Optional[str] = None
    toolCalls: Optional[list[ToolCall]] = None
    triggersVisualUpdate: Optional[bool] = None


class Session(BaseModel):
    id: str
    startedAt: str
    endedAt: str
    turns: list[Turn] = Field(default_factory=list)


class CognitiveCommit(BaseModel):
    id: str
    gitHash: Optional[str] = None
    startedAt: str
    closedAt: str
    closedBy: ClosedBy = "session_end"
    parallel: bool = False
    filesRead: list[str] = Field(default_factory=list)
    filesChanged: list[str] = Field(default_factory=list)
    title: Optional[str] = None
    projectName: Optional[str] = None
    source: ConversationSource = "claude_code"
    hidden: bool = False
    sessions: list[Session] = Field(default_factory=list)
    turnCount: Optional[int] = None
    syncStatus: SyncStatus = "pending"
    syncedAt: Optional[str] = None
    syncError: Optional[str] = None

    def all_turns(self) -> list[Turn]:
        return [turn for session in self.sessions for turn in session.turns]

    def count_turns(self) -> int:
        if self.turnCount is not None:
            return self.turnCount
        return sum(len(s.turns) for s in self.sessions)


class CommitUpdate(BaseModel):
    title: Optional[str] = None
    hidden: Optional[bool] = None


# ── Listing / stats ─────────────────────────────────────────────────

class ProjectListItem(BaseModel):
    name: str
    count: int


class CommitListResult(BaseModel):
    commits: list[CognitiveCommit]
    projects: list[ProjectListItem] = Field(default_factory=list)
    totalCount: int = 0


class CommitStats(BaseModel):
    totalCommits: int = 0
    totalSessions: int = 0
    totalTurns: int = 0
    projectCount: int = 0
    bySource: dict[str, int] = Field(default_factory=dict)
    topProjects: list[ProjectListItem] = Field(default_factory=list)
    firstCommit: Optional[str] = None
    lastCommit: Optional[str] = None


class SearchResult(BaseModel):
    id: str
    role: str
    content: str = ""
    timestamp: str
    session_id: str
    commit_id: str
    project_name: Optional[str] = None


class SearchHit(SearchResult):
    snippet: str = ""


# ── Conversation rendering ──────────────────────────────────────────

class RenderItem(BaseModel):
    type: Literal["turn", "tool-group"]
    turn: Optional[Turn] = None
    turns: list[Turn] = Field(default_factory=list)
    gapMinutes: Optional[float] = None
    isMatch: bool = False


class RenderItemsResponse(BaseModel):
    items: list[RenderItem]
    matchIndices: list[int] = Field(default_factory=list)


# ── Hosted dashboard ────────────────────────────────────────────────

class UsageData(BaseModel):
    commitCount: int = 0
    commitLimit: int
    storageUsedBytes: int = 0
    storageLimitBytes: int


class UserProfile(BaseModel):
    id: str
    githubUsername: str = "Unknown"
    email: Optional[str] = None
    avatarUrl: Optional[str] = None
    createdAt: Optional[str] = None


# ── Command results ─────────────────────────────────────────────────

class ImportResult(BaseModel):
    files: int = 0
    commits: int = 0
    turns: int = 0
    skipped: int = 0


class PushResult(BaseModel):
    candidates: int = 0
    pushed: int = 0
    failed: int = 0
    skippedFiltered: int = 0
    skippedLimit: int = 0
    dryRun: bool = False
    pushedIds: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)


class PullResult(BaseModel):
    pulled: int = 0
    turns: int = 0
