# src/tasksync/core/timeutil.py

"""
Canonical timestamp handling.

Inside the library every timestamp is a timezone-aware UTC datetime.
At the store boundary it is written as an ISO-8601 string; on read we also
accept the other shapes older records carry (epoch seconds/ms, naive
datetimes, {"seconds": ..., "nanoseconds": ...} maps).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

OLDEST = datetime.min.replace(tzinfo=UTC)

# Anything above this is treated as milliseconds (year ~5138 in seconds).
_MS_THRESHOLD = 100_000_000_000


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_store(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).isoformat()


def parse_timestamp(raw: Any) -> datetime | None:
    """Best-effort conversion of a stored timestamp; None when unrecognizable."""
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        return raw if raw.tzinfo is not None else raw.replace(tzinfo=UTC)

    if isinstance(raw, (int, float)):
        value = float(raw)
        if abs(value) >= _MS_THRESHOLD:
            value /= 1000.0
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(raw, dict):
        seconds = raw.get("seconds", raw.get("_seconds"))
        if not isinstance(seconds, (int, float)) or isinstance(seconds, bool):
            return None
        nanos = raw.get("nanoseconds", raw.get("_nanoseconds")) or 0
        try:
            return datetime.fromtimestamp(float(seconds) + float(nanos) / 1e9, tz=UTC)
        except (OverflowError, OSError, ValueError, TypeError):
            return None

    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)

    return None


def sort_key(ts: datetime | None) -> datetime:
    """Unparseable timestamps sort as the oldest possible value."""
    return ts if ts is not None else OLDEST
