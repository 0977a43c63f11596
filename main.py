"""
=============================================================================
MAIN.PY — Trackify API
=============================================================================
Every REST endpoint lives here. Business rules live in the modules they
call; these handlers only parse, authorize and shape JSON.

Sections:
  1. AUTH      → register, login, me
  2. HABITS    → CRUD, decorated with completedToday / streak / completionRate
  3. CHECK-INS → check in, history
  4. USERS     → search, feed, profile, activity heatmap, weekly ring, follow

"Now" comes from the get_now dependency and the session from get_db, so
tests can pin both.
"""

import os
import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Depends, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import activity
import checkins
import habits as habit_service
import social
from aggregator import decorate_stored, habit_view
from auth import (
    create_access_token, find_user_by_login, get_current_user,
    hash_password, verify_password
)
from database import get_db, init_db
from errors import TrackifyError, ValidationError
from models import User
from periods import canonical_day, utcnow
from schemas import (
    CheckInCreated, CheckInResponse, DecoratedHabitResponse, FeedItem,
    HabitCreate, HabitResponse, HabitUpdate, HeatmapCell, MessageResponse,
    ProfileResponse, PublicUser, TokenResponse, UserLogin, UserRegister,
    WeeklyRingDay
)

# ─────────────────────────────────────────────────────────────────────────────
# LOGGING
# ─────────────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s"
)
logger = logging.getLogger("trackify.api")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
MAX_ID = 2**63 - 1


# ─────────────────────────────────────────────────────────────────────────────
# LIFESPAN
# ─────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting Trackify API...")
    init_db()
    logger.info("✅ Database initialized")
    yield
    logger.info("👋 Shutdown complete")


app = FastAPI(
    title="Trackify API",
    description="Habit tracking with check-ins, streaks and a social feed",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────────────────────
# ERROR HANDLERS
# ─────────────────────────────────────────────────────────────────────────────

@app.exception_handler(TrackifyError)
async def trackify_error_handler(request: Request, exc: TrackifyError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unexpected failures: full trace in the log, generic message to the client"""
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Something went wrong. Please try again."}
    )


# ─────────────────────────────────────────────────────────────────────────────
# DEPENDENCIES / HELPERS
# ─────────────────────────────────────────────────────────────────────────────

def get_now() -> datetime:
    """Current instant (naive UTC)"""
    return utcnow()


def parse_id(raw: str, what: str) -> int:
    # Ids must fit a signed 64-bit INTEGER column
    if not (raw.isascii() and raw.isdigit()) or len(raw) > 19 or int(raw) > MAX_ID:
        raise ValidationError(f"Invalid {what} ID")
    return int(raw)


def decorated(db: Session, habit_list, now: datetime) -> list[dict]:
    return [habit_view(h, decorate_stored(db, h, now)) for h in habit_list]


def token_response(user: User) -> TokenResponse:
    return TokenResponse(token=create_access_token(user.id), user=social.public_user(user))


# =============================================================================
# ===================== HEALTH CHECK ==========================================
# =============================================================================

@app.get("/", tags=["Health"])
def health_check(now: datetime = Depends(get_now)):
    return {"status": "ok", "app": "Trackify", "version": "1.0.0", "timestamp": now.isoformat() + "Z"}


# =============================================================================
# ===================== SECTION 1: AUTH =======================================
# =============================================================================

@app.post("/auth/register", response_model=TokenResponse, status_code=201, tags=["Auth"])
def register(data: UserRegister, db: Session = Depends(get_db)):
    username = data.username.strip()
    email = data.email.lower()
    if not username:
        raise ValidationError("Username is required")

    exists = db.query(User).filter((User.email == email) | (User.username == username)).first()
    if exists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already in use")

    user = User(username=username, email=email, password_hash=hash_password(data.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email or username already in use")
    db.refresh(user)

    logger.info(f"👤 New user registered: {user.username} ({user.email})")
    return token_response(user)


@app.post("/auth/login", response_model=TokenResponse, tags=["Auth"])
def login(data: UserLogin, db: Session = Depends(get_db)):
    user = find_user_by_login(db, data.email_or_username)
    # Same message for unknown user and wrong password
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return token_response(user)


@app.get("/auth/me", response_model=PublicUser, tags=["Auth"])
def get_me(user: User = Depends(get_current_user)):
    return social.public_user(user)


# =============================================================================
# ===================== SECTION 2: HABITS =====================================
# =============================================================================

@app.post("/habits", response_model=HabitResponse, status_code=201, tags=["Habits"])
def create_habit(data: HabitCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    habit = habit_service.create_habit(db, user, data.name, data.frequency, data.category)
    return habit_view(habit, {})


@app.get("/habits", response_model=list[DecoratedHabitResponse], tags=["Habits"])
def list_habits(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now)
):
    """The caller's habits with completedToday, streak and completionRate"""
    return decorated(db, habit_service.list_habits(db, user.id), now)


@app.put("/habits/{habit_id}", response_model=HabitResponse, tags=["Habits"])
def update_habit(
    habit_id: str, data: HabitUpdate,
    user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    habit = habit_service.get_owned_habit(db, parse_id(habit_id, "habit"), user)
    habit = habit_service.update_habit(db, habit, data.model_dump(exclude_unset=True))
    return habit_view(habit, {})


@app.delete("/habits/{habit_id}", response_model=MessageResponse, tags=["Habits"])
def delete_habit(habit_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Deletes the habit and its whole check-in history"""
    habit = habit_service.get_owned_habit(db, parse_id(habit_id, "habit"), user)
    habit_service.delete_habit(db, habit)
    return {"message": "Habit deleted successfully"}


# =============================================================================
# ===================== SECTION 3: CHECK-INS ==================================
# =============================================================================

@app.post("/habits/{habit_id}/checkin", response_model=CheckInCreated, status_code=201, tags=["Check-ins"])
def check_in(
    habit_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now)
):
    """One check-in per day (daily habits) or per ISO week (weekly habits)"""
    created = checkins.record_check_in(db, parse_id(habit_id, "habit"), user.id, now)
    return {"message": "Checked in successfully", "checkin": checkins.serialize_check_in(created)}


@app.get("/habits/{habit_id}/checkins", response_model=list[CheckInResponse], tags=["Check-ins"])
def habit_check_ins(habit_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    habit = habit_service.get_owned_habit(db, parse_id(habit_id, "habit"), user)
    return [checkins.serialize_check_in(c) for c in checkins.list_check_ins(db, habit.id)]


# =============================================================================
# ===================== SECTION 4: USERS ======================================
# =============================================================================
# Static paths first: /users/search and /users/feed must not be read as ids.

@app.get("/users/search", response_model=list[PublicUser], tags=["Users"])
def search_users(q: str = "", user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [social.public_user(u) for u in social.search_users(db, user, q)]


@app.get("/users/feed", response_model=list[FeedItem], tags=["Users"])
def feed(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now)
):
    """Recent check-ins of the people the caller follows"""
    return social.build_feed(db, user, now)


@app.get("/users/{user_id}", response_model=ProfileResponse, tags=["Users"])
def get_profile(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    target = social.get_user(db, parse_id(user_id, "user"))
    recent = checkins.list_user_check_ins(db, target.id, limit=5)
    return {
        **social.public_user(target),
        "createdAt": target.created_at.isoformat() + "Z" if target.created_at else None,
        "followers": [social.public_user(u) for u in social.followers(db, target.id)],
        "following": [social.public_user(u) for u in social.following(db, target.id)],
        "habits": [habit_view(h, {}) for h in habit_service.list_habits(db, target.id)],
        "recentCheckins": [
            {"habitTitle": c.habit.name if c.habit else "Habit deleted", "timestamp": c.timestamp.isoformat() + "Z"}
            for c in recent
        ],
    }


@app.get("/users/{user_id}/habits", response_model=list[DecoratedHabitResponse], tags=["Users"])
def user_habits(
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now)
):
    target = social.get_user(db, parse_id(user_id, "user"))
    return decorated(db, habit_service.list_habits(db, target.id), now)


@app.get("/users/{user_id}/checkins", response_model=list[CheckInResponse], tags=["Users"])
def user_check_ins(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    target = social.get_user(db, parse_id(user_id, "user"))
    return [checkins.serialize_check_in(c) for c in checkins.list_user_check_ins(db, target.id)]


@app.get("/users/{user_id}/activity", response_model=list[HeatmapCell], tags=["Users"])
def user_activity(
    user_id: str,
    days: int = Query(default=365, ge=1, le=730),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now)
):
    """Calendar heatmap: distinct habits checked in per canonical day"""
    target = social.get_user(db, parse_id(user_id, "user"))
    entries = [activity.entry_from_check_in(c) for c in checkins.list_user_check_ins(db, target.id)]
    return activity.heatmap(entries, canonical_day(now), days)


@app.get("/users/{user_id}/weekly", response_model=list[WeeklyRingDay], tags=["Users"])
def user_weekly(
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now)
):
    """Completion ring for each of the last 7 days"""
    target = social.get_user(db, parse_id(user_id, "user"))
    entries = [activity.entry_from_check_in(c) for c in checkins.list_user_check_ins(db, target.id)]
    return activity.weekly_ring(entries, habit_service.list_habits(db, target.id), canonical_day(now))


@app.post("/users/{user_id}/follow", response_model=MessageResponse, tags=["Users"])
def follow_user(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"message": social.follow(db, user, parse_id(user_id, "user"))}


@app.post("/users/{user_id}/unfollow", response_model=MessageResponse, tags=["Users"])
def unfollow_user(user_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"message": social.unfollow(db, user, parse_id(user_id, "user"))}
