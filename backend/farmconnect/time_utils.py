# Overview: UTC clock helpers; every timestamp column stores naive UTC.

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC 'now', the canonical form for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def seconds_from_now(seconds: int) -> datetime:
    return utcnow() + timedelta(seconds=seconds)


def seconds_until(moment: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Whole seconds left before moment (rounded up, never negative)."""
    if moment is None:
        return 0
    remaining = (moment - (now or utcnow())).total_seconds()
    return max(0, math.ceil(remaining))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a query-string timestamp into naive UTC.

    Blank input gives None. Offsets (including a trailing Z) are converted
    to UTC; a timestamp without an offset is already taken as UTC.
    Raises ValueError on malformed input.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Render as second-precision ISO-8601 with a trailing Z (naive input is UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
