"""
=============================================================================
SOCIAL.PY — Follows, user search and the activity feed
=============================================================================
A follow is one row (follower → followed); the pair is unique, so following
twice is a no-op instead of a duplicate.

The feed is a projection of the most recent check-ins of the people the
caller follows.
"""

import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aggregator import decorate_stored
from errors import NotFoundError, ValidationError
from models import CheckIn, Follow, User

logger = logging.getLogger("trackify.social")

SEARCH_MIN_CHARS = 2
SEARCH_LIMIT = 10
FEED_LIMIT = 50


def public_user(user: User) -> dict:
    return {"id": user.id, "username": user.username, "email": user.email}


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


# =============================================================================
# ===================== FOLLOW / UNFOLLOW =====================================
# =============================================================================

def follow(db: Session, me: User, target_id: int) -> str:
    if target_id == me.id:
        raise ValidationError("Cannot follow yourself")
    target = get_user(db, target_id)

    existing = db.query(Follow).filter(
        Follow.follower_id == me.id, Follow.followed_id == target.id
    ).first()
    if existing:
        return "Already following this user"

    db.add(Follow(follower_id=me.id, followed_id=target.id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return "Already following this user"

    logger.info(f"👥 {me.username} follows {target.username}")
    return "Followed successfully"


def unfollow(db: Session, me: User, target_id: int) -> str:
    target = get_user(db, target_id)
    db.query(Follow).filter(
        Follow.follower_id == me.id, Follow.followed_id == target.id
    ).delete(synchronize_session=False)
    db.commit()
    return "Unfollowed successfully"


def followers(db: Session, user_id: int) -> list[User]:
    return db.query(User).join(Follow, Follow.follower_id == User.id).filter(
        Follow.followed_id == user_id
    ).order_by(User.username).all()


def following(db: Session, user_id: int) -> list[User]:
    return db.query(User).join(Follow, Follow.followed_id == User.id).filter(
        Follow.follower_id == user_id
    ).order_by(User.username).all()


def following_ids(db: Session, user_id: int) -> list[int]:
    return [row.followed_id for row in db.query(Follow.followed_id).filter(Follow.follower_id == user_id)]


# =============================================================================
# ===================== SEARCH ================================================
# =============================================================================

def search_users(db: Session, me: User, q: str) -> list[User]:
    q = (q or "").strip()
    if len(q) < SEARCH_MIN_CHARS:
        return []

    pattern = f"%{q}%"
    return db.query(User).filter(
        or_(User.username.ilike(pattern), User.email.ilike(pattern)),
        User.id != me.id
    ).order_by(User.username).limit(SEARCH_LIMIT).all()


# =============================================================================
# ===================== FEED ==================================================
# =============================================================================

def build_feed(db: Session, me: User, now: datetime, limit: int = FEED_LIMIT) -> list[dict]:
    followed = following_ids(db, me.id)
    if not followed:
        return []

    rows = db.query(CheckIn).filter(
        CheckIn.user_id.in_(followed)
    ).order_by(CheckIn.timestamp.desc()).limit(limit).all()

    streaks = {}
    feed = []
    for row in rows:
        habit = row.habit
        if habit is None or row.user is None:
            continue
        if habit.id not in streaks:
            streaks[habit.id] = decorate_stored(db, habit, now)["streak"]
        feed.append({
            "id": row.id,
            "user": public_user(row.user),
            "habit": habit.name,
            "category": habit.category,
            "frequency": habit.frequency,
            "streak": streaks[habit.id],
            "timestamp": row.timestamp.isoformat() + "Z",
        })
    return feed
