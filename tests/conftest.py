"""Pytest configuration and fixtures."""

import os
import tempfile
from pathlib import Path

# Set test environment variables before importing app
_TMP_DIR = Path(tempfile.mkdtemp(prefix="enrollment-tests-"))
os.environ["JWT_SECRET"] = "test-secret-key-for-unit-tests-0123456789abcdef"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR / 'test.db'}"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_DIR"] = ""
os.environ["SERVICES"] = "identity,courses,enrollments"
os.environ["COURSE_SERVICE_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, SessionLocal, engine, init_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.course import Course  # noqa: E402



@pytest.fixture(autouse=True)
def fresh_db():
    """Every test starts from empty tables."""
    init_db()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def add_course(db):
    """Insert a course row; returns its id."""

    def _add(course_id: str = "1", title: str = "Intro to Python", **fields) -> str:
        db.add(Course(
            id=course_id,
            title=title,
            description=fields.get("description", "Basics of the language"),
            instructor=fields.get("instructor", "Ada Lovelace"),
            duration=fields.get("duration", "8 weeks"),
            price=fields.get("price", 99.0),
        ))
        db.commit()
        return course_id

    return _add


@pytest.fixture
def login(client):
    """Register (if needed) and log in through the API; returns auth headers."""

    def _login(email: str = "john@example.com", name: str = "John", secret: str = "password123") -> dict:
        client.post("/auth/register", json={"name": name, "email": email, "rawSecret": secret})
        r = client.post("/auth/login", json={"email": email, "rawSecret": secret})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['data']['token']}"}

    return _login
