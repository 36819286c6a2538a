"""Local credentials for the hosted dashboard (Supabase access tokens)."""
from __future__ import annotations

import json
import logging
import os
import time
import uuid
from typing import Any, Optional

import requests

from cogcommit import config

logger = logging.getLogger("cogcommit.auth")

# Refresh a little before the token actually expires
_EXPIRY_SKEW_SECONDS = 60


class AuthError(RuntimeError):
    """Raised when Supabase rejects a token or cannot be reached."""


def load_auth() -> Optional[dict[str, Any]]:
    try:
        raw = config.AUTH_PATH.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring unreadable credentials file {config.AUTH_PATH}")
        return None
    return data if isinstance(data, dict) and data.get("accessToken") else None


def save_auth(payload: dict[str, Any]) -> None:
    config.AUTH_PATH.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(config.AUTH_PATH, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        # os.open leaves the mode of an existing file alone
        os.fchmod(f.fileno(), 0o600)
        f.write(json.dumps(payload, indent=2))


def clear_auth() -> bool:
    try:
        config.AUTH_PATH.unlink()
    except FileNotFoundError:
        return False
    return True


def get_machine_id() -> str:
    """Stable id of this machine, created on first use."""
    try:
        existing = config.MACHINE_ID_PATH.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        existing = ""
    if existing:
        return existing
    machine_id = str(uuid.uuid4())
    config.MACHINE_ID_PATH.parent.mkdir(parents=True, exist_ok=True)
    config.MACHINE_ID_PATH.write_text(machine_id, encoding="utf-8")
    return machine_id


def _headers(access_token: Optional[str] = None) -> dict[str, str]:
    headers = {"apikey": config.get_supabase_anon_key()}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    return headers


def fetch_supabase_user(access_token: str) -> dict[str, Any]:
    """Resolve an access token to its Supabase user."""
    try:
        res = requests.get(
            f"{config.get_supabase_url()}/auth/v1/user",
            headers=_headers(access_token),
            timeout=config.SUPABASE_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise AuthError(f"Could not reach Supabase: {e}") from e
    if res.status_code != 200:
        raise AuthError(f"Supabase rejected the access token ({res.status_code})")
    return res.json()


def refresh_session(refresh_token: str) -> dict[str, Any]:
    """Exchange a refresh token for a new session payload."""
    try:
        res = requests.post(
            f"{config.get_supabase_url()}/auth/v1/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
            headers=_headers(),
            timeout=config.SUPABASE_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise AuthError(f"Could not reach Supabase: {e}") from e
    if res.status_code != 200:
        raise AuthError(f"Session refresh failed ({res.status_code})")
    return res.json()


def build_auth_payload(
    access_token: str,
    user: dict[str, Any],
    refresh_token: Optional[str] = None,
    expires_at: Optional[float] = None,
) -> dict[str, Any]:
    return {
        "accessToken": access_token,
        "refreshToken": refresh_token,
        "expiresAt": expires_at,
        "user": {
            "id": user.get("id"),
            "email": user.get("email"),
            "githubUsername": github_username(user),
        },
        "machineId": get_machine_id(),
    }


def get_valid_auth() -> Optional[dict[str, Any]]:
    """Stored credentials, refreshed when expired. ``None`` when logged out."""
    auth = load_auth()
    if auth is None:
        return None

    expires_at = auth.get("expiresAt")
    if not expires_at or float(expires_at) - _EXPIRY_SKEW_SECONDS > time.time():
        return auth

    refresh_token = auth.get("refreshToken")
    if not refresh_token:
        logger.warning("Access token expired and no refresh token is stored")
        return None

    session = refresh_session(refresh_token)
    refreshed = build_auth_payload(
        session["access_token"],
        session.get("user") or auth.get("user") or {},
        session.get("refresh_token") or refresh_token,
        session.get("expires_at") or time.time() + float(session.get("expires_in") or 3600),
    )
    save_auth(refreshed)
    logger.info("Refreshed access token")
    return refreshed


def github_username(user: dict[str, Any]) -> str:
    metadata = user.get("user_metadata") or {}
    if metadata.get("user_name"):
        return str(metadata["user_name"])
    if metadata.get("preferred_username"):
        return str(metadata["preferred_username"])
    if user.get("githubUsername"):
        return str(user["githubUsername"])
    email = user.get("email") or ""
    if email:
        return email.split("@", 1)[0]
    return "Unknown"
