"""
Freshness classification of displayed values.

Pure functions of ``(now, timestamp)``: no state, no I/O, never cached.
The verdict only feeds the "age of this number" badge in the UI. When to
refetch is decided by the TTL cache, never by this module.

Buckets (age in whole minutes):

    fresh   < 5     confidence 100
    recent  < 30    confidence 80
    stale   < 60    confidence 60
    old     >= 60   confidence 40 below 2h, 20 after
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class AgeBucket(str, Enum):
    FRESH = "fresh"
    RECENT = "recent"
    STALE = "stale"
    OLD = "old"


BUCKET_COLORS = {
    AgeBucket.FRESH: "green",
    AgeBucket.RECENT: "yellow",
    AgeBucket.STALE: "orange",
    AgeBucket.OLD: "red",
}


class FreshnessVerdict(BaseModel):
    """Derived classification of one timestamp."""

    age_bucket: AgeBucket
    confidence_percent: int = Field(..., ge=0, le=100)
    display_label: str
    color: str
    age_seconds: float | None = None


Timestamp = datetime | float | int


def _to_datetime(value: Timestamp) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def age_in_seconds(
    timestamp: Timestamp, now: Timestamp | None = None
) -> float:
    """Seconds elapsed since ``timestamp``; future timestamps count as 0."""
    if now is None:
        current = datetime.now(timezone.utc)
    else:
        current = _to_datetime(now)
    delta = (current - _to_datetime(timestamp)).total_seconds()
    return max(0.0, delta)


def age_bucket(minutes: int) -> AgeBucket:
    if minutes < 5:
        return AgeBucket.FRESH
    if minutes < 30:
        return AgeBucket.RECENT
    if minutes < 60:
        return AgeBucket.STALE
    return AgeBucket.OLD


def confidence_percent(minutes: int) -> int:
    """Step function, non-increasing in age."""
    if minutes < 5:
        return 100
    if minutes < 30:
        return 80
    if minutes < 60:
        return 60
    if minutes < 120:
        return 40
    return 20


def describe_age(seconds: float) -> str:
    """Human readable relative age ("3 minutes ago")."""
    seconds = int(seconds)
    minutes = seconds // 60
    hours = minutes // 60

    if seconds < 60:
        return "Just now"
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"
    if hours == 1:
        return "1 hour ago"
    if hours < 24:
        return f"{hours} hours ago"
    return "More than a day ago"


def classify(
    timestamp: Timestamp | None, now: Timestamp | None = None
) -> FreshnessVerdict:
    """
    Classify the age of a value last updated at ``timestamp``.

    Args:
        timestamp: Last successful update (datetime or epoch seconds);
            None when the value was never loaded
        now: Reference time (defaults to the current UTC time)

    Returns:
        FreshnessVerdict with bucket, confidence, label and colour hint
    """
    if timestamp is None:
        return FreshnessVerdict(
            age_bucket=AgeBucket.OLD,
            confidence_percent=0,
            display_label="No data yet",
            color=BUCKET_COLORS[AgeBucket.OLD],
        )

    seconds = age_in_seconds(timestamp, now)
    minutes = int(seconds // 60)
    bucket = age_bucket(minutes)

    return FreshnessVerdict(
        age_bucket=bucket,
        confidence_percent=confidence_percent(minutes),
        display_label=describe_age(seconds),
        color=BUCKET_COLORS[bucket],
        age_seconds=seconds,
    )
