"""
=============================================================================
AGGREGATOR.PY — completedToday, streak and completionRate
=============================================================================
Derived values of a habit, recomputed on every read and never stored.

  completedToday → a check-in exists in the current period
                   (today for daily habits, this ISO week for weekly ones)
  streak         → consecutive days with a check-in, walking BACKWARD from
                   the day of the most recent check-in
  completionRate → check-ins in the last 30 days / 30, as a 0-100 integer

About the streak: the walk starts at the most recent check-in, not at today.
A habit last checked in three weeks ago still reports streak = 1, and weekly
habits are walked day by day like daily ones. That is the behavior clients
were built against; keep it unless the product decides otherwise.

The algorithm only needs three questions answered about a habit's history,
so it runs unchanged on a list already in memory or on the database.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional, Protocol

from sqlalchemy.orm import Session

import checkins
from periods import canonical_day, day_window, period_window, to_naive_utc

COMPLETION_WINDOW_DAYS = 30


class CheckInHistory(Protocol):
    def any_in_window(self, start: datetime, end: datetime) -> bool: ...

    def most_recent(self) -> Optional[datetime]: ...

    def count_since(self, since: datetime) -> int: ...


class InMemoryHistory:
    """History over check-ins already loaded; rows without a timestamp are skipped"""

    def __init__(self, check_ins: Iterable):
        self.timestamps = sorted(
            to_naive_utc(ts) for ts in (getattr(c, "timestamp", None) for c in check_ins)
            if isinstance(ts, datetime)
        )

    def any_in_window(self, start, end):
        return any(start <= ts < end for ts in self.timestamps)

    def most_recent(self):
        return self.timestamps[-1] if self.timestamps else None

    def count_since(self, since):
        return sum(1 for ts in self.timestamps if ts >= since)


class StoredHistory:
    """History answered by the check-in store"""

    def __init__(self, db: Session, habit_id: int):
        self.db = db
        self.habit_id = habit_id

    def any_in_window(self, start, end):
        return bool(checkins.find_check_ins_in_window(self.db, self.habit_id, start, end))

    def most_recent(self):
        latest = checkins.find_most_recent_check_in(self.db, self.habit_id)
        return latest.timestamp if latest else None

    def count_since(self, since):
        return checkins.count_check_ins_since(self.db, self.habit_id, since)


# =============================================================================
# ===================== THE THREE VALUES ======================================
# =============================================================================

def completed_in_current_period(history: CheckInHistory, frequency: str, now: datetime) -> bool:
    start, end = period_window(frequency, now)
    return history.any_in_window(start, end)


def streak(history: CheckInHistory, now: datetime) -> int:
    most_recent = history.most_recent()
    if most_recent is None:
        return 0

    check_day = canonical_day(most_recent)
    current_day = canonical_day(now)
    count = 0
    while current_day >= check_day:
        start, end = day_window(check_day)
        if not history.any_in_window(start, end):
            break
        count += 1
        check_day -= timedelta(days=1)
    return count


def completion_rate(history: CheckInHistory, now: datetime) -> int:
    # Denominator is 30 for weekly habits too (max ~13% for them)
    since = to_naive_utc(now) - timedelta(days=COMPLETION_WINDOW_DAYS)
    completions = history.count_since(since)
    return min(round(completions / COMPLETION_WINDOW_DAYS * 100), 100)


def decorate(habit, check_ins, now: datetime) -> dict:
    """
    Derived fields of a habit at instant `now`.

    `check_ins` is either an InMemoryHistory / StoredHistory or an iterable
    of check-in records (anything with a `timestamp`). Aware instants are
    normalized to naive UTC. Pure: nothing is written.
    """
    if isinstance(check_ins, (InMemoryHistory, StoredHistory)):
        history = check_ins
    else:
        history = InMemoryHistory(check_ins)
    now = to_naive_utc(now)
    return {
        "completedToday": completed_in_current_period(history, habit.frequency, now),
        "streak": streak(history, now),
        "completionRate": completion_rate(history, now),
    }


def decorate_stored(db: Session, habit, now: datetime) -> dict:
    return decorate(habit, StoredHistory(db, habit.id), now)


def habit_view(habit, decoration: dict) -> dict:
    """JSON representation of a habit merged with its derived fields"""
    return {
        "id": habit.id,
        "userId": habit.user_id,
        "name": habit.name,
        "frequency": habit.frequency,
        "category": habit.category,
        "createdAt": habit.created_at.isoformat() + "Z" if habit.created_at else None,
        **decoration,
    }
