"""
=============================================================================
PERIODS.PY — Canonical days and period windows
=============================================================================
One place decides what "today" and "this week" mean.

  - Every instant in the database is a naive UTC datetime.
  - The CANONICAL day of an instant is its calendar date in
    CANONICAL_TIMEZONE (UTC unless configured otherwise).
  - The check-in write path and every read path (completedToday, streaks,
    heatmap buckets, weekly ring) go through these functions, so a check-in
    never lands in one bucket when written and another when read.

Windows are half-open: [start, end), expressed back in naive UTC so they can
be compared directly against stored timestamps.
"""

import os
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple, Optional, Union

import pytz

CANONICAL_TIMEZONE = os.getenv("CANONICAL_TIMEZONE", "UTC")

DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def get_timezone(name: Optional[str] = None):
    return pytz.timezone(name or CANONICAL_TIMEZONE)


def utcnow() -> datetime:
    """Current instant as naive UTC (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(instant: datetime) -> datetime:
    """Aware instants are converted to UTC; naive ones are assumed UTC already"""
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(pytz.utc).replace(tzinfo=None)


# ─────────────────────────────────────────────────────────────────────────────
# CANONICAL DAY
# ─────────────────────────────────────────────────────────────────────────────

def canonical_day(instant: datetime, tz=None) -> date:
    """Calendar date of an instant in the canonical timezone"""
    tz = tz or get_timezone()
    aware = pytz.utc.localize(to_naive_utc(instant))
    return aware.astimezone(tz).date()


def day_string(instant: datetime, tz=None) -> str:
    return canonical_day(instant, tz).isoformat()


def day_start(day: date, tz=None) -> datetime:
    """Midnight of a canonical day, as naive UTC"""
    tz = tz or get_timezone()
    local_midnight = tz.localize(datetime.combine(day, time.min))
    return local_midnight.astimezone(pytz.utc).replace(tzinfo=None)


# ─────────────────────────────────────────────────────────────────────────────
# PERIOD WINDOWS
# ─────────────────────────────────────────────────────────────────────────────

def day_window(day: date, tz=None) -> tuple[datetime, datetime]:
    # Both ends are localized separately: DST days are 23 or 25 hours long
    return day_start(day, tz), day_start(day + timedelta(days=1), tz)


def week_window(instant: datetime, tz=None) -> tuple[datetime, datetime]:
    """ISO week (Monday 00:00 to the following Monday 00:00) containing the instant"""
    today = canonical_day(instant, tz)
    monday = today - timedelta(days=today.weekday())
    return day_start(monday, tz), day_start(monday + timedelta(days=7), tz)


def period_window(frequency: str, instant: datetime, tz=None) -> tuple[datetime, datetime]:
    if frequency == "weekly":
        return week_window(instant, tz)
    return day_window(canonical_day(instant, tz), tz)


def period_key(frequency: str, instant: datetime, tz=None) -> str:
    """
    Storage uniqueness key of the period containing the instant.

      daily  → "2026-10-19"
      weekly → "2026-W43"
    """
    day = canonical_day(instant, tz)
    if frequency == "weekly":
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return day.isoformat()


# ─────────────────────────────────────────────────────────────────────────────
# CANONICAL DATE (ingestion boundary)
# ─────────────────────────────────────────────────────────────────────────────
# Incoming records carry their day in many shapes: "2026-10-19",
# "2026-10-19T08:00:00Z", a datetime, a date, an epoch in milliseconds...
# They are normalized ONCE into one of two variants, and only the resolved
# "YYYY-MM-DD" string travels further.

class RawDate(NamedTuple):
    raw: str


class InstantDate(NamedTuple):
    instant: datetime


CanonicalDate = Union[RawDate, InstantDate]


def to_canonical_date(value) -> Optional[CanonicalDate]:
    """Wrap an incoming date-ish value; None when it cannot be one"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return InstantDate(value)
    if isinstance(value, date):
        return RawDate(value.isoformat())
    if isinstance(value, (int, float)):
        # JavaScript-style epoch milliseconds
        try:
            return InstantDate(datetime.fromtimestamp(value / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        return RawDate(value.strip())
    return None


def _parse_iso(raw: str) -> Optional[datetime]:
    text = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def resolve_day(value: Optional[CanonicalDate], tz=None) -> Optional[str]:
    """
    Canonical "YYYY-MM-DD" for a CanonicalDate, or None if unparseable.

    Only a bare "YYYY-MM-DD" is trusted as already canonical. A full ISO
    timestamp is parsed with its own offset (naive means UTC) and converted
    to the canonical timezone like any stored instant.
    """
    if value is None:
        return None

    if isinstance(value, InstantDate):
        return day_string(value.instant, tz)

    raw = value.raw
    if DAY_PATTERN.match(raw):
        return raw if _valid_day(raw) else None

    parsed = _parse_iso(raw)
    if parsed is None:
        return None
    return day_string(parsed, tz)


def _valid_day(text: str) -> bool:
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True
