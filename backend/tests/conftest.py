"""Pytest fixtures: a throwaway SQLite database per test."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("GOOGLE_CALENDAR_ID", "")

from datetime import datetime, timezone, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from eventplanner.database import Base, get_db  # noqa: E402
from eventplanner.main import app  # noqa: E402
from eventplanner.services import auth_service  # noqa: E402
from eventplanner.services.rate_limiter import InMemoryRateLimiter  # noqa: E402

# Import all models so they register with Base.metadata
from eventplanner.models.user import User    # noqa: F401,E402
from eventplanner.models.event import Event  # noqa: F401,E402
from eventplanner.models.rsvp import RSVP    # noqa: F401,E402

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def rate_limiter():
    return InMemoryRateLimiter(max_attempts=5, window_seconds=60)


@pytest.fixture(scope="function")
def make_client(session_factory, rate_limiter):
    """Factory for TestClients sharing the test database; each keeps its own cookie jar."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[auth_service.get_login_rate_limiter] = lambda: rate_limiter
    clients = []

    def _make():
        c = TestClient(app)
        c.__enter__()
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(make_client):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    return make_client()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def register_user(client: TestClient, name: str = "Test User", email: str = "test@example.com",
                  password: str = "secret123") -> dict:
    """Helper: POST /api/auth/register (signs the client in) and return response JSON."""
    resp = client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(client: TestClient, title: str = "Test Event", start_offset_hours: int = 24,
                      duration_hours: int = 2, **extra) -> dict:
    """Helper: POST /api/events as the client's signed-in user and return response JSON."""
    start = datetime.now(timezone.utc) + timedelta(hours=start_offset_hours)
    payload = {
        "title": title,
        "startAt": start.isoformat(),
        "endAt": (start + timedelta(hours=duration_hours)).isoformat(),
    }
    payload.update(extra)
    resp = client.post("/api/events", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()
