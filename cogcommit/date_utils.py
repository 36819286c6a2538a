"""Shared date normalization helpers."""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_RELATIVE_RE = re.compile(r"^(\d+)([dwm])$")
_RELATIVE_UNIT_DAYS = {"d": 1, "w": 7, "m": 30}


def _format_datetime_utc(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt.isoformat().replace("+00:00", "Z")


def _parse_datetime_token(token: str) -> datetime | None:
    cleaned = token.strip()
    if not cleaned:
        return None
    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in ("%Y/%m/%d", "%m/%d/%Y", "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(cleaned, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def normalize_iso_date(value: Any) -> str:
    """Convert mixed date inputs into comparable ISO strings (UTC, seconds, ``Z``)."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return _format_datetime_utc(value)
    if isinstance(value, date):
        return _format_datetime_utc(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))
    if isinstance(value, (int, float)):
        # Epoch seconds or milliseconds
        seconds = value / 1000 if value > 1e11 else value
        return _format_datetime_utc(datetime.fromtimestamp(seconds, timezone.utc))
    if isinstance(value, str):
        token = value.strip()
        if not token:
            return ""
        if _DATE_ONLY_RE.match(token):
            try:
                day = date.fromisoformat(token)
            except ValueError:
                return ""
            return normalize_iso_date(day)
        parsed_dt = _parse_datetime_token(token)
        if parsed_dt:
            return _format_datetime_utc(parsed_dt)
        return ""
    return ""


def parse_iso(value: Any) -> datetime | None:
    """Parse an ISO timestamp into an aware datetime (UTC when naive)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None
    parsed = _parse_datetime_token(value)
    if parsed is None:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def iso_to_epoch(value: str) -> float:
    parsed = parse_iso(value)
    if not parsed:
        return 0.0
    return parsed.timestamp()


def utc_now_iso() -> str:
    return _format_datetime_utc(datetime.now(timezone.utc))


def parse_before_date(text: str, now: datetime | None = None) -> str:
    """Resolve a prune cutoff into an ISO UTC string.

    Accepts relative values (``30d``, ``2w``, ``3m``; a month counts as 30
    days) or any absolute date ``normalize_iso_date`` understands.
    """
    token = (text or "").strip()
    match = _RELATIVE_RE.match(token)
    if match:
        amount, unit = match.groups()
        reference = now or datetime.now(timezone.utc)
        return _format_datetime_utc(reference - timedelta(days=int(amount) * _RELATIVE_UNIT_DAYS[unit]))

    normalized = normalize_iso_date(token)
    if not normalized:
        raise ValueError(f"Invalid date: {text!r} (use e.g. 30d, 2w, 3m or 2024-01-01)")
    return normalized
