"""
=============================================================================
ACTIVITY.PY — Heatmap and weekly ring
=============================================================================
Per-day activity of a user, as shown on the profile page.

  bucket_by_canonical_day → {date, count} where count = DISTINCT habits
                            checked in that day (two rows of the same habit
                            on the same day count once)
  heatmap                 → dense trailing window with an intensity tier
  weekly_ring             → last 7 days with completed/total percentages

Records arrive in whatever shape the caller has (ORM rows or wire dicts);
they are normalized at entry into ActivityEntry and malformed ones are
dropped, never raised on.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable, NamedTuple, Optional

from periods import CanonicalDate, resolve_day, to_canonical_date

DAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

# Heatmap tiers: 0, 1, 2, 3, 4+
MAX_LEVEL = 4


class ActivityEntry(NamedTuple):
    habit_id: str
    when: CanonicalDate


def entry_from_check_in(check_in) -> Optional[ActivityEntry]:
    """From a stored check-in: its `date` column, else its timestamp"""
    if check_in.habit_id is None:
        return None
    when = to_canonical_date(check_in.date) or to_canonical_date(check_in.timestamp)
    if when is None:
        return None
    return ActivityEntry(str(check_in.habit_id), when)


def entry_from_wire(record: dict) -> Optional[ActivityEntry]:
    """From a {habitId, date, timestamp} mapping; None if unusable"""
    if not isinstance(record, dict):
        return None

    habit_id = record.get("habitId", record.get("habit_id"))
    if isinstance(habit_id, dict):
        habit_id = habit_id.get("id", habit_id.get("_id"))
    if habit_id is None or habit_id == "":
        return None

    when = to_canonical_date(record.get("date")) or to_canonical_date(record.get("timestamp"))
    if when is None:
        return None
    return ActivityEntry(str(habit_id), when)


# =============================================================================
# ===================== BUCKETING =============================================
# =============================================================================

def _habits_by_day(entries: Iterable[Optional[ActivityEntry]]) -> dict[str, set]:
    days = defaultdict(set)
    for entry in entries:
        if entry is None:
            continue
        day = resolve_day(entry.when)
        if day is None:
            continue
        days[day].add(entry.habit_id)
    return days


def bucket_by_canonical_day(entries: Iterable[Optional[ActivityEntry]]) -> list[dict]:
    days = _habits_by_day(entries)
    return [{"date": day, "count": len(days[day])} for day in sorted(days)]


def heatmap_level(count: int) -> int:
    return max(0, min(count, MAX_LEVEL))


def heatmap(entries: Iterable[Optional[ActivityEntry]], today: date, days: int = 365) -> list[dict]:
    """One cell per day, oldest first, ending at `today`"""
    counts = {b["date"]: b["count"] for b in bucket_by_canonical_day(entries)}
    cells = []
    for offset in range(days - 1, -1, -1):
        day = (today - timedelta(days=offset)).isoformat()
        count = counts.get(day, 0)
        cells.append({"date": day, "count": count, "level": heatmap_level(count)})
    return cells


def weekly_ring(entries: Iterable[Optional[ActivityEntry]], habits: list, today: date) -> list[dict]:
    """The 7 days ending today, oldest first"""
    habits_per_day = _habits_by_day(entries)
    total = len(habits)

    ring = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        completed = len(habits_per_day.get(day.isoformat(), ()))
        percentage = round(min(completed / total * 100, 100)) if total > 0 else 0
        ring.append({
            "dayLabel": DAY_LABELS[day.weekday()],
            "date": day.isoformat(),
            "completedCount": completed,
            "totalHabits": total,
            "percentage": percentage,
            "isToday": offset == 0,
        })
    return ring
