"""Utility helpers shared across modules."""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime


def ensure_utc(dt: datetime) -> datetime:
    """Force a datetime into UTC without altering instant."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def isoformat_utc(dt: datetime) -> str:
    """Return an ISO string with a trailing Z, as Google APIs emit them."""
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso_datetime(value: str) -> datetime:
    """Convert ISO strings (with trailing Z) into aware UTC datetimes."""
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def parse_message_date(value: str) -> datetime | None:
    """Parse a mail Date header (RFC 2822) or an ISO date; None if neither fits."""
    value = (value or "").strip()
    if not value:
        return None
    try:
        return ensure_utc(parsedate_to_datetime(value))
    except (TypeError, ValueError, IndexError):
        pass
    try:
        return parse_iso_datetime(value)
    except ValueError:
        return None


def format_bytes(size: int) -> str:
    """Human readable byte count (1024 based)."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"
