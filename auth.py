"""
=============================================================================
AUTH.PY — Authentication
=============================================================================
Handles:
  - Password hashing (bcrypt, never store plain text)
  - Creating and verifying JWT tokens (python-jose)
  - Resolving the current user from a token

Flow:
  1. The user sends credentials to /auth/login
  2. If they match, the server returns a signed JWT
  3. The client sends "Authorization: Bearer <token>" on every request
  4. get_current_user verifies the token and loads the user
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from database import get_db
from models import User

# ─────────────────────────────────────────────────────────────────────────────
# CONFIGURATION
# ─────────────────────────────────────────────────────────────────────────────

SECRET_KEY = os.getenv("JWT_SECRET", "trackify-dev-secret-change-me")
# JWT_SECRET → signs every token. Use a long random value in production.

ALGORITHM = "HS256"

ACCESS_TOKEN_EXPIRE_DAYS = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "7"))

MIN_SECRET_LENGTH = 10


def get_secret() -> str:
    secret = (SECRET_KEY or "").strip()
    if len(secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(f"JWT_SECRET must be at least {MIN_SECRET_LENGTH} characters")
    return secret


# ─────────────────────────────────────────────────────────────────────────────
# PASSWORD HASHING
# ─────────────────────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# ─────────────────────────────────────────────────────────────────────────────
# JWT TOKENS
# ─────────────────────────────────────────────────────────────────────────────

def create_access_token(user_id: int) -> str:
    """Token carrying the user id in `sub`, valid ACCESS_TOKEN_EXPIRE_DAYS days"""
    expire = datetime.now(timezone.utc) + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, get_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """
    Payload of a valid token, None for a tampered one.
    An expired token raises ExpiredSignatureError so the caller can say so.
    """
    try:
        return jwt.decode(token, get_secret(), algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise
    except JWTError:
        return None


def find_user_by_login(db: Session, email_or_username: str) -> Optional[User]:
    """Input containing "@" is an email (case-insensitive), otherwise a username"""
    value = email_or_username.strip()
    if "@" in value:
        return db.query(User).filter(User.email == value.lower()).first()
    return db.query(User).filter(User.username == value).first()


# ─────────────────────────────────────────────────────────────────────────────
# DEPENDENCY: CURRENT USER
# ─────────────────────────────────────────────────────────────────────────────

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Protects an endpoint:

      @app.get("/habits")
      def list_habits(user: User = Depends(get_current_user)):
          ...
    """
    try:
        payload = decode_token(credentials.credentials)
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")

    if payload is None:
        raise _unauthorized("Invalid token")

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise _unauthorized("Invalid token")

    user = db.get(User, int(user_id))
    if user is None:
        raise _unauthorized("User not found")
    return user
