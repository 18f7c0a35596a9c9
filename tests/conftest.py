"""
Pytest configuration and shared fixtures.

This file adds the project root to the Python path so that tests can import
from the domain, repositories, services and api packages, and provides an
in-memory database plus a fixed clock and settings for the service tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from services.settings import Settings  # noqa: E402
from tests.fakes import FakeSupabase, RecordingNotifier, RecordingSender  # noqa: E402


@pytest.fixture
def db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jwt_secret="test-secret-0123456789abcdef0123456789",
        session_token_ttl_hours=24,
        admin_token_ttl_hours=12,
        gmail_user=None,
        gmail_app_password=None,
        smtp_host="smtp.example.com",
        smtp_port=465,
        smtp_timeout_seconds=1.0,
        cors_allow_origins=("*",),
        log_level="INFO",
    )


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
