# tests/test_checkins.py
"""
Check-in store on SQLite:
- one check-in per habit per period, even when the pre-check is bypassed,
- ownership errors,
- query shapes used by the aggregator,
- cascade delete with the habit.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

import checkins
from aggregator import StoredHistory, decorate
from errors import DuplicatePeriodError, ForbiddenError, NotFoundError
from habits import delete_habit
from models import CheckIn

MONDAY = datetime(2026, 10, 19, 9, 0)


def test_record_check_in(db, make_user, make_habit):
    user = make_user("ana")
    habit = make_habit(user)

    created = checkins.record_check_in(db, habit.id, user.id, MONDAY)

    assert created.id is not None
    assert created.date == "2026-10-19"
    assert created.period == "2026-10-19"
    assert checkins.serialize_check_in(created) == {
        "id": created.id,
        "habitId": habit.id,
        "userId": user.id,
        "timestamp": "2026-10-19T09:00:00Z",
        "date": "2026-10-19",
    }


def test_second_daily_check_in_same_day_is_rejected(db, make_user, make_habit):
    user = make_user("ana")
    habit = make_habit(user)
    checkins.record_check_in(db, habit.id, user.id, MONDAY)

    with pytest.raises(DuplicatePeriodError):
        checkins.record_check_in(db, habit.id, user.id, MONDAY + timedelta(hours=10))

    assert db.query(CheckIn).count() == 1
    # Next day is a new period
    checkins.record_check_in(db, habit.id, user.id, MONDAY + timedelta(days=1))
    assert db.query(CheckIn).count() == 2


def test_weekly_habit_once_per_iso_week(db, make_user, make_habit):
    user = make_user("ana")
    habit = make_habit(user, frequency="weekly")
    created = checkins.record_check_in(db, habit.id, user.id, MONDAY)
    assert created.period == "2026-W43"

    with pytest.raises(DuplicatePeriodError):
        checkins.record_check_in(db, habit.id, user.id, datetime(2026, 10, 25, 23, 0))

    checkins.record_check_in(db, habit.id, user.id, datetime(2026, 10, 26, 0, 30))
    assert db.query(CheckIn).count() == 2


def test_race_loser_is_rejected_by_the_unique_constraint(db, make_user, make_habit, monkeypatch):
    user = make_user("ana")
    habit = make_habit(user)
    checkins.record_check_in(db, habit.id, user.id, MONDAY)

    # Simulate a request whose pre-check ran before the first insert committed
    monkeypatch.setattr(checkins, "find_check_ins_in_window", lambda *args: [])

    with pytest.raises(DuplicatePeriodError):
        checkins.record_check_in(db, habit.id, user.id, MONDAY + timedelta(hours=1))

    assert db.query(CheckIn).count() == 1
    # The session is usable again after the rollback
    assert checkins.find_most_recent_check_in(db, habit.id).timestamp == MONDAY


def test_second_session_cannot_insert_the_same_period(db, session_factory, make_user, make_habit):
    user = make_user("ana")
    habit = make_habit(user)
    checkins.record_check_in(db, habit.id, user.id, MONDAY)

    other = session_factory()
    try:
        other.add(CheckIn(habit_id=habit.id, user_id=user.id, timestamp=MONDAY + timedelta(hours=3),
                          date="2026-10-19", period="2026-10-19"))
        with pytest.raises(IntegrityError):
            other.commit()
        other.rollback()
    finally:
        other.close()

    assert db.query(CheckIn).count() == 1


def test_unknown_habit(db, make_user):
    user = make_user("ana")
    with pytest.raises(NotFoundError):
        checkins.record_check_in(db, 999, user.id, MONDAY)


def test_someone_elses_habit(db, make_user, make_habit):
    owner = make_user("ana")
    intruder = make_user("bob")
    habit = make_habit(owner)

    with pytest.raises(ForbiddenError):
        checkins.record_check_in(db, habit.id, intruder.id, MONDAY)
    assert db.query(CheckIn).count() == 0


def test_query_shapes(db, make_user, make_habit):
    user = make_user("ana")
    habit = make_habit(user)
    for days_ago in (0, 1, 2, 40):
        checkins.record_check_in(db, habit.id, user.id, MONDAY - timedelta(days=days_ago))

    newest_first = checkins.list_check_ins(db, habit.id)
    oldest_first = checkins.list_check_ins(db, habit.id, newest_first=False)
    assert [c.timestamp for c in newest_first] == [c.timestamp for c in reversed(oldest_first)]

    assert checkins.find_most_recent_check_in(db, habit.id).timestamp == MONDAY
    assert len(checkins.find_check_ins_in_window(
        db, habit.id, MONDAY - timedelta(days=2), MONDAY
    )) == 2
    assert checkins.count_check_ins_since(db, habit.id, MONDAY - timedelta(days=30)) == 3


def test_stored_and_in_memory_decorations_agree(db, make_user, make_habit):
    user = make_user("ana")
    habit = make_habit(user)
    for days_ago in (1, 2, 3, 6):
        checkins.record_check_in(db, habit.id, user.id, MONDAY - timedelta(days=days_ago))

    now = MONDAY + timedelta(hours=5)
    stored = decorate(habit, StoredHistory(db, habit.id), now)
    in_memory = decorate(habit, checkins.list_check_ins(db, habit.id), now)

    assert stored == in_memory == {"completedToday": False, "streak": 3, "completionRate": 13}


def test_deleting_a_habit_deletes_its_check_ins(db, make_user, make_habit):
    user = make_user("ana")
    doomed = make_habit(user, "Run")
    kept = make_habit(user, "Read")
    checkins.record_check_in(db, doomed.id, user.id, MONDAY)
    checkins.record_check_in(db, doomed.id, user.id, MONDAY + timedelta(days=1))
    checkins.record_check_in(db, kept.id, user.id, MONDAY)
    doomed_id = doomed.id

    delete_habit(db, doomed)

    assert checkins.list_check_ins(db, doomed_id) == []
    assert len(checkins.list_check_ins(db, kept.id)) == 1
    with pytest.raises(NotFoundError):
        checkins.record_check_in(db, doomed_id, user.id, MONDAY + timedelta(days=2))
