"""Title generation for cognitive commits."""
from __future__ import annotations

from typing import Optional

from cogcommit.formatters import truncate_at_word
from cogcommit.models import CognitiveCommit

WARMUP_MARKER = "warmup"


def extract_first_user_message(commit: CognitiveCommit) -> Optional[str]:
    for session in commit.sessions:
        for turn in session.turns:
            if turn.role == "user" and (turn.content or "").strip():
                return turn.content.strip()
    return None


def generate_commit_title(commit: CognitiveCommit, max_length: int = 100) -> Optional[str]:
    """Title from the first user message; existing titles are kept."""
    if commit.title:
        return commit.title
    first_message = extract_first_user_message(commit)
    if not first_message:
        return None
    return truncate_at_word(first_message, max_length)


def is_warmup_commit(commit: CognitiveCommit) -> bool:
    if not commit.sessions or not commit.sessions[0].turns:
        return False
    first = commit.sessions[0].turns[0].content or ""
    return WARMUP_MARKER in first.lower()
