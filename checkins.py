"""
=============================================================================
CHECKINS.PY — Check-in store
=============================================================================
Write path and query shapes for check-ins.

Writing a check-in:
  1. The habit must exist and belong to the caller
  2. Nothing may already be recorded in the habit's current period
     (today for daily habits, this ISO week for weekly ones)
  3. The row is inserted with its canonical day and period key

Step 2 followed by step 3 is not atomic. Two requests racing for the same
habit+period both pass the pre-check; the UniqueConstraint on
(habit_id, period) makes the database reject the second insert, and that
IntegrityError is reported exactly like the pre-check failure.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import DuplicatePeriodError, ForbiddenError, NotFoundError
from models import CheckIn, Habit
from periods import day_string, period_key, period_window

logger = logging.getLogger("trackify.checkins")


# =============================================================================
# ===================== WRITE PATH ============================================
# =============================================================================

def record_check_in(db: Session, habit_id: int, user_id: int, now: datetime) -> CheckIn:
    """
    Check a habit in for the period containing `now`.

    Raises NotFoundError, ForbiddenError or DuplicatePeriodError; on any of
    them nothing is written.
    """
    habit = db.get(Habit, habit_id)
    if habit is None:
        raise NotFoundError("Habit not found")
    if habit.user_id != user_id:
        raise ForbiddenError("Not authorized to check in this habit")

    start, end = period_window(habit.frequency, now)
    if find_check_ins_in_window(db, habit_id, start, end):
        raise DuplicatePeriodError()

    check_in = CheckIn(
        habit_id=habit_id,
        user_id=user_id,
        timestamp=now,
        date=day_string(now),
        period=period_key(habit.frequency, now),
    )
    db.add(check_in)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"⚠️ Concurrent check-in rejected (habit {habit_id}, period {check_in.period})")
        raise DuplicatePeriodError()

    db.refresh(check_in)
    logger.info(f"✅ Check-in: habit {habit_id} on {check_in.date} (user {user_id})")
    return check_in


# =============================================================================
# ===================== QUERY SHAPES ==========================================
# =============================================================================

def list_check_ins(db: Session, habit_id: int, newest_first: bool = True) -> list[CheckIn]:
    order = CheckIn.timestamp.desc() if newest_first else CheckIn.timestamp.asc()
    return db.query(CheckIn).filter(CheckIn.habit_id == habit_id).order_by(order).all()


def find_check_ins_in_window(db: Session, habit_id: int, start: datetime, end: datetime) -> list[CheckIn]:
    """Check-ins of a habit with start <= timestamp < end"""
    return db.query(CheckIn).filter(
        CheckIn.habit_id == habit_id,
        CheckIn.timestamp >= start,
        CheckIn.timestamp < end
    ).order_by(CheckIn.timestamp.asc()).all()


def find_most_recent_check_in(db: Session, habit_id: int) -> Optional[CheckIn]:
    return db.query(CheckIn).filter(
        CheckIn.habit_id == habit_id
    ).order_by(CheckIn.timestamp.desc()).first()


def count_check_ins_since(db: Session, habit_id: int, since: datetime) -> int:
    return db.query(func.count(CheckIn.id)).filter(
        CheckIn.habit_id == habit_id,
        CheckIn.timestamp >= since
    ).scalar() or 0


def list_user_check_ins(db: Session, user_id: int, limit: Optional[int] = None) -> list[CheckIn]:
    query = db.query(CheckIn).filter(CheckIn.user_id == user_id).order_by(CheckIn.timestamp.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


# =============================================================================
# ===================== WIRE SHAPE ============================================
# =============================================================================

def serialize_check_in(check_in: CheckIn) -> dict:
    """{habitId, userId, timestamp (ISO-8601, UTC), date (YYYY-MM-DD)}"""
    return {
        "id": check_in.id,
        "habitId": check_in.habit_id,
        "userId": check_in.user_id,
        "timestamp": check_in.timestamp.isoformat() + "Z",
        "date": check_in.date,
    }
