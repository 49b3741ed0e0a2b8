"""
Pytest configuration and fixtures.

Tests run against a shared in-memory SQLite database (StaticPool), so request
handlers, background analysis jobs and the test's own session all see the
same rows. Tables are recreated for every test.
"""

from __future__ import annotations

import os
import tempfile

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.test_constants import (
    TEST_INTERNAL_JOB_TOKEN,
    TEST_PASSWORD,
    TEST_SECRET_KEY,
    TEST_USERNAME,
    TEST_USERNAME_REVIEWER,
    TEST_WEBHOOK_TOKEN,
)

# Force test config before pitchflow is imported; don't inherit from .env
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = TEST_SECRET_KEY
os.environ["INTERNAL_JOB_TOKEN"] = TEST_INTERNAL_JOB_TOKEN
os.environ["EMAIL_WEBHOOK_TOKEN"] = TEST_WEBHOOK_TOKEN
os.environ["STORAGE_DIR"] = tempfile.mkdtemp(prefix="pitchflow-test-")
os.environ["SUBMISSION_FETCH_BACKOFF"] = "0"
os.environ["RERUN_DISPATCH_DELAY"] = "0"
os.environ["NOTIFY_EMAIL_ENABLED"] = "false"
os.environ.pop("LLM_API_KEY", None)


@pytest.fixture(autouse=True)
def _database():
    """Create all tables before each test and drop them afterwards."""
    import pitchflow.models  # noqa: F401
    from pitchflow.db.session import Base, engine

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Clear cached singletons (notifications, routing table, providers) around each test."""
    from pitchflow.llm.router import clear_provider_cache
    from pitchflow.notifications.fanout import reset_notifications
    from pitchflow.routing.loader import get_form_analysis_mapping, load_routing_table

    reset_notifications()
    load_routing_table.cache_clear()
    get_form_analysis_mapping.cache_clear()
    clear_provider_cache()
    yield
    reset_notifications()
    load_routing_table.cache_clear()
    get_form_analysis_mapping.cache_clear()
    clear_provider_cache()


@pytest.fixture
def db(_database) -> Session:
    """Session on the shared test database."""
    from pitchflow.db.session import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(_database) -> TestClient:
    """FastAPI test client. Background tasks run before the response is returned."""
    from pitchflow.main import app

    return TestClient(app)


@pytest.fixture
def admin_user(db: Session):
    from pitchflow.services.auth import create_user

    return create_user(db, TEST_USERNAME, TEST_PASSWORD, email="admin@example.com", is_admin=True)


@pytest.fixture
def reviewer_user(db: Session):
    from pitchflow.services.auth import create_user

    return create_user(db, TEST_USERNAME_REVIEWER, TEST_PASSWORD, email="reviewer@example.com")


def _bearer(username: str) -> dict[str, str]:
    from pitchflow.services.auth import create_access_token

    return {"Authorization": f"Bearer {create_access_token(data={'sub': username})}"}


@pytest.fixture
def admin_headers(admin_user) -> dict[str, str]:
    return _bearer(admin_user.username)


@pytest.fixture
def reviewer_headers(reviewer_user) -> dict[str, str]:
    return _bearer(reviewer_user.username)


@pytest.fixture
def fake_llm(monkeypatch: pytest.MonkeyPatch):
    """Replace the LLM provider used by the extraction service with a scripted fake."""
    from tests.fakes import FakeLLM

    llm = FakeLLM()
    monkeypatch.setattr("pitchflow.extraction.service.get_llm_provider", lambda *a, **kw: llm)
    return llm
