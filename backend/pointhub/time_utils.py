from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Default engine clock: naive datetime in UTC, as stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(dt: datetime) -> datetime:
    # Stored timestamps are naive UTC; aware ones are converted
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """2026-03-01T09:30:00Z, seconds precision; None passes through."""
    if dt is None:
        return None
    return as_utc(dt).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utc_date(dt: datetime) -> date:
    """Calendar day of a timestamp in UTC (revenue buckets)."""
    return as_utc(dt).date()
