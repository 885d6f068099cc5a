"""
Time helpers shared across the application.

Single source of truth for "now in UTC" as a naive datetime. Stored
timestamps are ISO-8601 strings of naive UTC values; use to_iso()/parse_iso()
to cross that boundary.
"""

from datetime import datetime, timezone


def utcnow_naive() -> datetime:
    """
    Return a naive UTC datetime.

    Use this instead of deprecated datetime.utcnow().
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso(value: datetime) -> str:
    return value.isoformat()


def parse_iso(value: str) -> datetime:
    """
    Parse a stored ISO timestamp into a naive UTC datetime.

    Accepts a trailing 'Z' and offset-aware strings, which are converted
    to UTC before the offset is dropped.
    """
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
