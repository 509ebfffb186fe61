"""Timestamp helpers: everything is stored in UTC."""

from __future__ import annotations

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601 for JSON serialization."""
    return ensure_utc(dt).isoformat()


def parse_iso(value: str) -> datetime | None:
    """Parse a stored ISO 8601 timestamp; None if it is not one."""
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        return None
