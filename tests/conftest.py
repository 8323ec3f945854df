"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import timedelta
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("DATETIME_TIMEZONE", "UTC")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.user import Actor  # noqa: E402
from tests.utils.factories import ADMIN_ID, NOW, OTHER_VOLUNTEER_ID, OWNER_ID, VOLUNTEER_ID  # noqa: E402


@pytest.fixture
def now():
    """Reference instant used by time-sensitive tests."""
    return NOW


@pytest.fixture
def yesterday(now):
    return now - timedelta(days=1)


@pytest.fixture
def tomorrow(now):
    return now + timedelta(days=1)


@pytest.fixture
def last_week(now):
    return now - timedelta(days=7)


@pytest.fixture
def admin_actor():
    return Actor(id=ADMIN_ID, role=0, user_type="admin", name="Ada Admin", email="ada@example.org")


@pytest.fixture
def owner_actor():
    """Volunteer who created the activity under test."""
    return Actor(id=OWNER_ID, role=1, user_type="volunteer", name="Olive Owner", email="olive@example.org")


@pytest.fixture
def volunteer_actor():
    return Actor(id=VOLUNTEER_ID, role=1, user_type="volunteer", name="Val Volunteer", email="val@example.org")


@pytest.fixture
def other_volunteer_actor():
    return Actor(id=OTHER_VOLUNTEER_ID, role=1, user_type="volunteer", name="Otto Other", email="otto@example.org")


@pytest.fixture
def freeze_time_fixture():
    """Freeze wall-clock time at the reference instant."""
    with freeze_time(NOW, real_asyncio=True) as frozen_time:
        yield frozen_time

