"""Snippet extraction and highlighting for conversation search."""
from __future__ import annotations

import re

ANSI_CYAN = "\x1b[36m"
ANSI_YELLOW = "\x1b[33m"
ANSI_RESET = "\x1b[0m"


def extract_snippet(content: str, query: str, chars: int = 100) -> str:
    """Return a window of ``content`` around the first match of ``query``."""
    content = content or ""
    index = content.lower().find(query.lower()) if query else -1
    if index == -1:
        head = content[:chars * 2]
        return head + ("..." if len(content) > chars * 2 else "")

    half = chars // 2
    start = max(0, index - half)
    end = min(len(content), index + len(query) + half)
    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


def highlight_match(content: str, query: str, before: str = ANSI_YELLOW, after: str = ANSI_RESET, chars: int = 100) -> str:
    snippet = extract_snippet(content, query, chars)
    if not query:
        return snippet
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    return pattern.sub(lambda m: f"{before}{m.group(0)}{after}", snippet)


def escape_like(query: str) -> str:
    """Escape LIKE wildcards so the query matches literally (ESCAPE '\\')."""
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
