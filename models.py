"""
=============================================================================
MODELS.PY — Database tables
=============================================================================
Each class is a table, each attribute a column.

RELATIONS:
  USER
  ├── habits[] ──→ check_ins[]
  ├── check_ins[]          (redundant owner copy, for per-user queries)
  └── follows (follower → followed)

Every timestamp is a naive UTC datetime. The `date` column of a check-in is
the canonical day string (see periods.py) and `period` is the uniqueness key
of the habit's period: the day for daily habits, the ISO week for weekly ones.
"""

from periods import utcnow
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from database import Base
import enum


class HabitFrequency(str, enum.Enum):
    """How often a habit is expected to be checked in"""
    daily = "daily"      # once per canonical day
    weekly = "weekly"    # once per ISO week (Monday start)


DEFAULT_CATEGORY = "General"


# =============================================================================
# ===================== TABLE 1: USERS ========================================
# =============================================================================

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=utcnow)

    habits = relationship("Habit", back_populates="user", cascade="all, delete-orphan")
    check_ins = relationship("CheckIn", back_populates="user", cascade="all, delete-orphan")


# =============================================================================
# ===================== TABLE 2: HABITS =======================================
# =============================================================================

class Habit(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    frequency = Column(String(20), nullable=False, default=HabitFrequency.daily.value)
    category = Column(String(50), nullable=False, default=DEFAULT_CATEGORY)

    created_at = Column(DateTime, default=utcnow)

    # ── One habit name per user ──
    __table_args__ = (
        UniqueConstraint('user_id', 'name', name='uq_user_habit_name'),
    )

    user = relationship("User", back_populates="habits")
    check_ins = relationship("CheckIn", back_populates="habit", cascade="all, delete-orphan")
    # cascade → deleting a habit deletes its whole check-in history


# =============================================================================
# ===================== TABLE 3: CHECK_INS ====================================
# =============================================================================
# Never mutated: created on check-in, removed only with the parent habit.

class CheckIn(Base):
    __tablename__ = "check_ins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    habit_id = Column(Integer, ForeignKey("habits.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    date = Column(String(10), nullable=False)
    # date → "YYYY-MM-DD" in the canonical timezone
    period = Column(String(10), nullable=False)
    # period → "YYYY-MM-DD" (daily) or "YYYY-Www" (weekly)

    # ── One check-in per habit per period, enforced by the database ──
    __table_args__ = (
        UniqueConstraint('habit_id', 'period', name='uq_habit_period'),
    )

    user = relationship("User", back_populates="check_ins")
    habit = relationship("Habit", back_populates="check_ins")


# =============================================================================
# ===================== TABLE 4: FOLLOWS ======================================
# =============================================================================

class Follow(Base):
    __tablename__ = "follows"

    id = Column(Integer, primary_key=True, autoincrement=True)

    follower_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    followed_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint('follower_id', 'followed_id', name='uq_follow'),
    )

    follower = relationship("User", foreign_keys=[follower_id])
    followed = relationship("User", foreign_keys=[followed_id])
