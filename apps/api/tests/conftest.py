"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database. Tables are created before
and dropped after every test, so nothing leaks between tests. The app's
get_db dependency is overridden to hand out the test's own session, so
fixtures and requests see the same rows.
"""
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

# Settings are read at import time; configure before importing the app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["ARCHIVE_REQUEST_DELAY_S"] = "0"
os.environ["LOG_FORMAT"] = "text"

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
sys.path.insert(0, str(Path(__file__).resolve().parent))

import pytest
from fastapi.testclient import TestClient

from core.database import Base, SessionLocal, engine, get_db
from core.security import create_access_token
from fixtures.trivia_fixtures import make_user
from models import UserRole

CRON_SECRET = os.environ["CRON_SECRET"]


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test."""
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def client(db_session):
    """TestClient whose requests use ``db_session``."""
    from main import app

    def _get_db():
        try:
            yield db_session
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, role=UserRole.ADMIN, email="admin@example.com", display_name="Admin")


@pytest.fixture
def admin_headers(admin_user):
    token = create_access_token({"sub": str(admin_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def player(db_session):
    return make_user(
        db_session,
        email="player@example.com",
        display_name="Player One",
        last_online_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def player_headers(player):
    token = create_access_token({"sub": str(player.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}
