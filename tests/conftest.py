# tests/conftest.py
"""
Shared fixtures:
- an in-memory SQLite database per test (StaticPool keeps one connection,
  so the TestClient thread sees the same data),
- a controllable clock injected through main.get_now,
- helpers to register users through the API.
"""

from dataclasses import dataclass
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers the tables)
from database import Base, get_db
from main import app, get_now
from models import Habit, User


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


class Clock:
    def __init__(self, now: datetime):
        self.now = now


@pytest.fixture
def clock():
    # Monday 2026-10-19, 10:00 UTC
    return Clock(datetime(2026, 10, 19, 10, 0))


@pytest.fixture
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock.now
    # No context manager: the lifespan would create tables on the real engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@dataclass
class Account:
    id: int
    username: str
    headers: dict


@pytest.fixture
def register(client):
    def _register(username: str, password: str = "secret123") -> Account:
        response = client.post("/auth/register", json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return Account(
            id=body["user"]["id"],
            username=username,
            headers={"Authorization": f"Bearer {body['token']}"},
        )
    return _register


@pytest.fixture
def make_user(db):
    def _make(username: str) -> User:
        user = User(username=username, email=f"{username}@example.com", password_hash="x")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_habit(db):
    def _make(user: User, name: str = "Read", frequency: str = "daily") -> Habit:
        habit = Habit(user_id=user.id, name=name, frequency=frequency)
        db.add(habit)
        db.commit()
        db.refresh(habit)
        return habit
    return _make
