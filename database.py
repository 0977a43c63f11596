"""
=============================================================================
DATABASE.PY — Database configuration
=============================================================================
Sets up the SQLAlchemy engine, the session factory and the declarative base.

In development: SQLite (a local .db file)
In production: PostgreSQL, whenever DATABASE_URL is set.

The session is handed to every store function explicitly (FastAPI dependency
`get_db`); nothing in the code base keeps its own connection around.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# ─────────────────────────────────────────────────────────────────────────────
# CONNECTION
# ─────────────────────────────────────────────────────────────────────────────

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./trackify.db")

# Hosting providers hand out "postgres://" URLs; SQLAlchemy with psycopg (v3)
# wants "postgresql+psycopg://".
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
elif DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg://", 1)


def sqlite_connect_args(url: str) -> dict:
    """SQLite refuses cross-thread use unless told otherwise."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {}


# ─────────────────────────────────────────────────────────────────────────────
# ENGINE + SESSION
# ─────────────────────────────────────────────────────────────────────────────

engine = create_engine(DATABASE_URL, echo=False, **sqlite_connect_args(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency: one session per request, always closed.

      @app.get("/something")
      def endpoint(db: Session = Depends(get_db)):
          ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Create every table that does not exist yet."""
    # Import the models so they register on Base.metadata
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
