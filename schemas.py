"""
=============================================================================
SCHEMAS.PY — Request/response schemas (Pydantic)
=============================================================================
Models (SQLAlchemy) define the TABLES; schemas define what the API accepts
and returns. Wire names are camelCase, as the web client expects.

Naming:
  XxxCreate   → body of a POST
  XxxUpdate   → body of a PUT (every field optional)
  XxxResponse → what the API returns

Habit names and frequencies are validated in habits.py rather than here, so
a bad value answers 400 with a readable message instead of a 422.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional


# =============================================================================
# ===================== AUTH ==================================================
# =============================================================================

class UserRegister(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, description="At least 6 characters")


class UserLogin(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email_or_username: str = Field(alias="emailOrUsername", min_length=1)
    password: str = Field(min_length=1)


class PublicUser(BaseModel):
    id: int
    username: str
    email: str


class TokenResponse(BaseModel):
    token: str
    user: PublicUser


# =============================================================================
# ===================== HABITS ================================================
# =============================================================================

class HabitCreate(BaseModel):
    name: str = ""
    frequency: str = "daily"
    category: Optional[str] = None


class HabitUpdate(BaseModel):
    name: Optional[str] = None
    frequency: Optional[str] = None
    category: Optional[str] = None


class HabitResponse(BaseModel):
    id: int
    userId: int
    name: str
    frequency: str
    category: str
    createdAt: Optional[str] = None


class DecoratedHabitResponse(HabitResponse):
    completedToday: bool
    streak: int
    completionRate: int


# =============================================================================
# ===================== CHECK-INS =============================================
# =============================================================================

class CheckInResponse(BaseModel):
    id: int
    habitId: int
    userId: int
    timestamp: str
    date: str


class CheckInCreated(BaseModel):
    message: str
    checkin: CheckInResponse


# =============================================================================
# ===================== PROFILE / ACTIVITY ====================================
# =============================================================================

class RecentCheckIn(BaseModel):
    habitTitle: str
    timestamp: str


class ProfileResponse(PublicUser):
    createdAt: Optional[str] = None
    followers: list[PublicUser]
    following: list[PublicUser]
    habits: list[HabitResponse]
    recentCheckins: list[RecentCheckIn]


class HeatmapCell(BaseModel):
    date: str
    count: int
    level: int


class WeeklyRingDay(BaseModel):
    dayLabel: str
    date: str
    completedCount: int
    totalHabits: int
    percentage: int
    isToday: bool


class FeedItem(BaseModel):
    id: int
    user: PublicUser
    habit: str
    category: str
    frequency: str
    streak: int
    timestamp: str


class MessageResponse(BaseModel):
    message: str
