# tests/test_aggregator.py
"""completedToday / streak / completionRate on in-memory histories."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from aggregator import InMemoryHistory, completion_rate, decorate, streak

NOW = datetime(2026, 10, 19, 18, 0)   # Monday evening


def habit(frequency="daily"):
    return SimpleNamespace(id=1, frequency=frequency)


def at(days_ago: int, hour: int = 9):
    day = NOW - timedelta(days=days_ago)
    return SimpleNamespace(timestamp=day.replace(hour=hour, minute=0))


def test_no_check_ins():
    assert decorate(habit(), [], NOW) == {"completedToday": False, "streak": 0, "completionRate": 0}


def test_three_consecutive_days():
    result = decorate(habit(), [at(0), at(1), at(2), at(4)], NOW)
    assert result["completedToday"] is True
    assert result["streak"] == 3


def test_streak_walks_from_most_recent_check_in_not_from_today():
    # Nothing today or yesterday, but the last two check-ins are consecutive
    result = decorate(habit(), [at(5), at(6)], NOW)
    assert result["completedToday"] is False
    assert result["streak"] == 2


def test_stale_single_check_in_keeps_streak_at_one():
    assert streak(InMemoryHistory([at(21)]), NOW) == 1


def test_gap_resets_streak():
    # Newest on day 0, nothing on day 1
    assert streak(InMemoryHistory([at(0), at(2), at(3)]), NOW) == 1


def test_check_in_after_now_gives_zero():
    future = SimpleNamespace(timestamp=NOW + timedelta(days=2))
    assert streak(InMemoryHistory([future]), NOW) == 0


def test_weekly_completed_today_covers_whole_iso_week():
    sunday_clock = datetime(2026, 10, 25, 20, 0)
    result = decorate(habit("weekly"), [SimpleNamespace(timestamp=datetime(2026, 10, 19, 7, 0))], sunday_clock)
    assert result["completedToday"] is True
    # Day-granularity walk: the single check-in day counts once
    assert result["streak"] == 1


def test_weekly_check_in_from_last_week_is_not_this_period():
    result = decorate(habit("weekly"), [SimpleNamespace(timestamp=datetime(2026, 10, 18, 23, 0))], NOW)
    assert result["completedToday"] is False


def test_completion_rate_counts_last_30_days():
    check_ins = [at(d) for d in range(0, 15)] + [at(40)]
    assert completion_rate(InMemoryHistory(check_ins), NOW) == 50


def test_completion_rate_weekly_uses_same_denominator():
    check_ins = [at(d) for d in (0, 7, 14, 21)]
    assert decorate(habit("weekly"), check_ins, NOW)["completionRate"] == 13


@pytest.mark.parametrize("count", [0, 1, 29, 30, 31, 100])
def test_completion_rate_is_bounded(count):
    # Hourly duplicates simulate histories larger than the window
    check_ins = [SimpleNamespace(timestamp=NOW - timedelta(hours=h)) for h in range(count)]
    rate = decorate(habit(), check_ins, NOW)["completionRate"]
    assert 0 <= rate <= 100


def test_records_without_timestamp_are_skipped():
    check_ins = [SimpleNamespace(timestamp=None), SimpleNamespace(), at(0)]
    result = decorate(habit(), check_ins, NOW)
    assert result["streak"] == 1
    assert result["completionRate"] == 3


def test_aware_now_and_mixed_timestamps():
    utc_now = NOW.replace(tzinfo=timezone.utc)
    check_ins = [
        SimpleNamespace(timestamp=datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)),
        at(1),
        # 20:00 at -05:00 on the 16th is 01:00 UTC on the 17th
        SimpleNamespace(timestamp=datetime(2026, 10, 16, 20, 0, tzinfo=timezone(timedelta(hours=-5)))),
    ]
    result = decorate(habit(), check_ins, utc_now)
    assert result == {"completedToday": True, "streak": 3, "completionRate": 10}
    assert decorate(habit(), check_ins, utc_now) == decorate(habit(), check_ins, NOW)


def test_history_object_is_used_as_is():
    history = InMemoryHistory([at(0), at(1)])
    assert decorate(habit(), history, NOW) == {"completedToday": True, "streak": 2, "completionRate": 7}
