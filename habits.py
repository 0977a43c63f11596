"""
=============================================================================
HABITS.PY — Habit CRUD
=============================================================================
Create, list, edit and delete habits.

Rules:
  - name: trimmed, non-empty, unique per owner
  - frequency: "daily" or "weekly"
  - category: free text, "General" when blank
  - deleting a habit deletes all of its check-ins (ORM cascade)
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import ForbiddenError, NotFoundError, ValidationError
from models import DEFAULT_CATEGORY, Habit, HabitFrequency, User

logger = logging.getLogger("trackify.habits")

FREQUENCIES = {f.value for f in HabitFrequency}
DUPLICATE_NAME = "Habit with this name already exists"


# ─────────────────────────────────────────────────────────────────────────────
# VALIDATION
# ─────────────────────────────────────────────────────────────────────────────

def clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Habit name is required")
    return cleaned


def check_frequency(frequency: Optional[str]) -> str:
    if frequency not in FREQUENCIES:
        raise ValidationError('Frequency must be "daily" or "weekly"')
    return frequency


def clean_category(category: Optional[str]) -> str:
    return (category or "").strip() or DEFAULT_CATEGORY


def _name_taken(db: Session, user_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(Habit).filter(Habit.user_id == user_id, Habit.name == name)
    if exclude_id is not None:
        query = query.filter(Habit.id != exclude_id)
    return query.first() is not None


def _commit_or_duplicate(db: Session):
    # The pre-check can lose a race; the unique index cannot
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError(DUPLICATE_NAME)


# ─────────────────────────────────────────────────────────────────────────────
# CRUD
# ─────────────────────────────────────────────────────────────────────────────

def create_habit(
    db: Session, user: User, name: str,
    frequency: str = "daily", category: Optional[str] = None
) -> Habit:
    name = clean_name(name)
    frequency = check_frequency(frequency or "daily")

    if _name_taken(db, user.id, name):
        raise ValidationError(DUPLICATE_NAME)

    habit = Habit(user_id=user.id, name=name, frequency=frequency, category=clean_category(category))
    db.add(habit)
    _commit_or_duplicate(db)
    db.refresh(habit)

    logger.info(f"➕ Habit created: {habit.name} (user: {user.username})")
    return habit


def list_habits(db: Session, user_id: int) -> list[Habit]:
    """Newest first, then alphabetically"""
    return db.query(Habit).filter(
        Habit.user_id == user_id
    ).order_by(Habit.created_at.desc(), Habit.name.asc()).all()


def get_owned_habit(db: Session, habit_id: int, user: User) -> Habit:
    habit = db.get(Habit, habit_id)
    if habit is None:
        raise NotFoundError("Habit not found")
    if habit.user_id != user.id:
        raise ForbiddenError("Not authorized to modify this habit")
    return habit


def update_habit(db: Session, habit: Habit, changes: dict) -> Habit:
    """Apply a partial update (name, frequency, category)"""
    if "name" in changes:
        name = clean_name(changes["name"])
        if _name_taken(db, habit.user_id, name, exclude_id=habit.id):
            raise ValidationError(DUPLICATE_NAME)
        habit.name = name
    if "frequency" in changes:
        habit.frequency = check_frequency(changes["frequency"])
    if "category" in changes:
        habit.category = clean_category(changes["category"])

    _commit_or_duplicate(db)
    db.refresh(habit)
    return habit


def delete_habit(db: Session, habit: Habit):
    name = habit.name
    db.delete(habit)
    db.commit()
    logger.info(f"🗑️ Habit deleted with its check-ins: {name}")
