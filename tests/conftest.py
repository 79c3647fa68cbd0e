"""
Pytest Configuration and Fixtures.

Redis-backed locks and rate limiting are switched off before the application
is imported; every test gets its own SQLite database file.
"""
import os

os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"

import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from fretboard_quiz.database import build_engine, get_db, init_db
from fretboard_quiz.main import app

QUESTIONS = 10


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database with all tables"""
    engine = build_engine(f"sqlite:///{tmp_path / 'quiz.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient wired to the per-test database"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def headers(user_id):
    return {"X-User-Id": str(user_id)}


@pytest.fixture
def other_headers():
    return {"X-User-Id": str(uuid.uuid4())}


@pytest.fixture
def now():
    return datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def find_note_answers():
    """Ten find_note answers, the first seven correct"""
    return [
        {
            "question_number": number,
            "is_correct": number <= 7,
            "time_taken_ms": 1500,
            "target_note": "C",
            "user_answer_note": "C" if number <= 7 else "D",
            "fret_position": 3,
            "string_number": 5,
        }
        for number in range(1, QUESTIONS + 1)
    ]
