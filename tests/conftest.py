# tests/conftest.py
"""
Pytest configuration for the booking upload.

Every test gets a fresh in-memory SQLite database. Resend is patched
globally so no test can ever send a real email; tests that care about
notifications assert on the ``sent_emails`` mock.
"""

import os

# Set test configuration BEFORE any package imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("RESEND_API_KEY", "re_test_key")

import unittest.mock

# Mock Resend API globally to prevent real emails in ANY test
global_resend_mock = unittest.mock.patch("resend.Emails.send")
mocked_send = global_resend_mock.start()
mocked_send.return_value = {"id": "test-email-id"}

from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from f2f_booking.core.config import settings
from f2f_booking.core.logging import configure_logging
from f2f_booking.database import Base, init_db

settings.resend_api_key = settings.resend_api_key or "re_test_key"
settings.suppress_notifications = False
settings.default_case_insensitive = False


def pytest_configure(config: pytest.Config) -> None:
    configure_logging("WARNING")
    config.addinivalue_line("markers", "unit: fast tests with mocked collaborators")
    config.addinivalue_line("markers", "integration: tests against a real database session")


@pytest.fixture
def engine() -> Iterator[Engine]:
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Iterator[Session]:
    """Database session for one test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(autouse=True)
def sent_emails() -> Iterator[unittest.mock.MagicMock]:
    """The global Resend mock, reset for each test."""
    mocked_send.reset_mock(side_effect=True)
    mocked_send.return_value = {"id": "test-email-id"}
    yield mocked_send
