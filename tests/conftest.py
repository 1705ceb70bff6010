"""
Test configuration and fixtures for the shortlink service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Settings are read at import time, so configure them first
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["QUEUE_BACKEND"] = "memory"
os.environ["DEBUG"] = "false"
os.environ["API_TOKENS"] = '{"test-token": "user_1"}'

import pytest
from fastapi.testclient import TestClient

from main import app
from shortlink_app.database.connection import Base, SessionLocal, engine, get_db
from shortlink_app.dependencies import get_queue
from shortlink_app.queue.strategies import InMemoryQueue
from shortlink_app.services.slug_generator import SlugGenerator

AUTH_HEADERS = {"Authorization": "Bearer test-token"}


class SequenceSlugGenerator(SlugGenerator):
    """Deterministic generator returning the given slugs in order, then repeating the last"""

    def __init__(self, *slugs):
        self.slugs = list(slugs)
        self.calls = 0

    def generate(self, length: int = 6) -> str:
        slug = self.slugs[min(self.calls, len(self.slugs) - 1)]
        self.calls += 1
        return slug


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory(db_session):
    """Factory for independent sessions on the test database (used by ClickRecorder)"""
    return SessionLocal


@pytest.fixture(scope="function")
def queue():
    return InMemoryQueue(max_size=100)


@pytest.fixture(scope="function")
def client(db_session, queue):
    """
    Create a test client with database and queue dependencies overridden.
    The in-process click worker drains the app-wide queue, so tests that
    inspect the queue use the `queue` fixture through the override.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_queue] = lambda: queue

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def auth_headers():
    return dict(AUTH_HEADERS)


@pytest.fixture
def make_generator():
    """Build a deterministic SequenceSlugGenerator"""
    return SequenceSlugGenerator
