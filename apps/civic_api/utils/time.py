"""UTC time helpers (timezone-aware calculation, naive storage)."""
from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return a UTC timestamp without tzinfo for naive DB columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
