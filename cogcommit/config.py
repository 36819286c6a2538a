"""CogCommit configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    if not value:
        return default
    return Path(value).expanduser()


class SupabaseNotConfiguredError(RuntimeError):
    """Raised when the hosted backend is used without Supabase settings."""


# Local storage (~/.cogcommit)
COGCOMMIT_HOME = _env_path("COGCOMMIT_HOME", Path.home() / ".cogcommit")
GLOBAL_STORAGE_DIR = COGCOMMIT_HOME / "global"
DB_PATH = _env_path("COGCOMMIT_DB_PATH", GLOBAL_STORAGE_DIR / "data.db")
AUTH_PATH = COGCOMMIT_HOME / "auth.json"
MACHINE_ID_PATH = COGCOMMIT_HOME / "machine-id"

# Transcript sources
CLAUDE_PROJECTS_DIR = _env_path("COGCOMMIT_CLAUDE_DIR", Path.home() / ".claude" / "projects")
CODEX_SESSIONS_DIR = _env_path("COGCOMMIT_CODEX_DIR", Path.home() / ".codex" / "sessions")

# Hosted database (Supabase Postgres)
DATABASE_URL = os.getenv("COGCOMMIT_DATABASE_URL", "")
SUPABASE_URL_KEY = "NEXT_PUBLIC_SUPABASE_URL"
SUPABASE_ANON_KEY_KEY = "NEXT_PUBLIC_SUPABASE_ANON_KEY"
SUPABASE_TIMEOUT_SECONDS = _env_int("COGCOMMIT_SUPABASE_TIMEOUT_SECONDS", 10)

# Free tier limits for cloud sync
FREE_TIER_COMMIT_LIMIT = _env_int("COGCOMMIT_FREE_TIER_COMMIT_LIMIT", 250)
FREE_TIER_STORAGE_LIMIT_BYTES = _env_int("COGCOMMIT_FREE_TIER_STORAGE_LIMIT_BYTES", 50 * 1024 * 1024)

# Local studio
STUDIO_HOST = os.getenv("COGCOMMIT_STUDIO_HOST", "127.0.0.1")
STUDIO_PORT = _env_int("COGCOMMIT_STUDIO_PORT", 4747)
STUDIO_WATCH = _env_bool("COGCOMMIT_STUDIO_WATCH", False)

# Hosted dashboard server settings
HOST = os.getenv("COGCOMMIT_HOST", "0.0.0.0")
PORT = _env_int("COGCOMMIT_PORT", 8000)

# CORS
FRONTEND_ORIGIN = os.getenv("COGCOMMIT_FRONTEND_ORIGIN", "http://localhost:3000")

LOG_LEVEL = os.getenv("COGCOMMIT_LOG_LEVEL", "INFO").upper()


def get_supabase_url() -> str:
    url = os.getenv(SUPABASE_URL_KEY) or os.getenv("COGCOMMIT_SUPABASE_URL") or ""
    if not url:
        raise SupabaseNotConfiguredError(
            f"Supabase URL not configured. Set {SUPABASE_URL_KEY} or "
            "COGCOMMIT_SUPABASE_URL environment variable."
        )
    return url.rstrip("/")


def get_supabase_anon_key() -> str:
    key = os.getenv(SUPABASE_ANON_KEY_KEY) or os.getenv("COGCOMMIT_SUPABASE_ANON_KEY") or ""
    if not key:
        raise SupabaseNotConfiguredError(
            f"Supabase anon key not configured. Set {SUPABASE_ANON_KEY_KEY} or "
            "COGCOMMIT_SUPABASE_ANON_KEY environment variable."
        )
    return key


def is_supabase_configured() -> bool:
    try:
        get_supabase_url()
        get_supabase_anon_key()
        return True
    except SupabaseNotConfiguredError:
        return False


def ensure_global_storage_dir() -> Path:
    """Create the global storage directory if needed and return it."""
    GLOBAL_STORAGE_DIR.mkdir(parents=True, exist_ok=True)
    return GLOBAL_STORAGE_DIR
