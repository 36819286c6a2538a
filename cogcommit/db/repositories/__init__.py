"""Repository package for database access."""

from .commits import SqliteCommitRepository
from .sessions import SqliteSessionRepository
from .turns import SqliteTurnRepository

__all__ = [
    "SqliteCommitRepository",
    "SqliteSessionRepository",
    "SqliteTurnRepository",
]
