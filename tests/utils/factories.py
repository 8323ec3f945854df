"""Test data factories using Faker."""

from faker import Faker
from typing import Optional
from datetime import datetime, timedelta, timezone

fake = Faker()

NOW = datetime(2024, 12, 9, 12, 0, 0, tzinfo=timezone.utc)

ADMIN_ID = 1
OWNER_ID = 10
VOLUNTEER_ID = 20
OTHER_VOLUNTEER_ID = 30


def create_user_data(user_id: Optional[int] = None, admin: bool = False) -> dict:
    """Create test user row."""
    return {
        "id": user_id or fake.random_int(min=1000, max=9999),
        "name": fake.name(),
        "email": fake.email(),
        "is_active": True,
        "role": 0 if admin else 1,
        "user_type": "admin" if admin else "volunteer",
    }


def create_activity_data(
    activity_id: int = 1,
    created_by: int = 1,
    start: Optional[datetime] = NOW - timedelta(days=1),
    end: Optional[datetime] = None,
    is_public: bool = True,
    participants: Optional[list[dict]] = None,
    **overrides
) -> dict:
    """Create test activity row as returned by the store."""
    participants = participants or []
    data = {
        "id": activity_id,
        "title": fake.sentence(nb_words=4),
        "description": fake.text(),
        "category": fake.word(),
        "organization_name": fake.company(),
        "location": fake.city(),
        "start_date": start.isoformat() if start else None,
        "end_date": end.isoformat() if end else None,
        "is_public": is_public,
        "created_by": created_by,
        "participant_count": len(participants),
        "max_participants": None,
        "participants": participants,
        "is_joined": False,
    }
    data.update(overrides)
    return data


def create_participant_data(user_id: int) -> dict:
    """Create test participant row."""
    return {"user_id": user_id, "name": fake.name(), "email": fake.email()}


def create_task_data(
    task_id: int,
    activity_id: int = 1,
    created_by: int = 1,
    status: str = "in-progress",
    creator_admin: bool = False,
    **overrides
) -> dict:
    """Create test task row with the creator snapshot."""
    data = {
        "id": task_id,
        "activity_id": activity_id,
        "title": fake.sentence(nb_words=3),
        "description": fake.text(),
        "start_date": None,
        "due_date": None,
        "total_hours": fake.random_int(min=1, max=8),
        "status": status,
        "completed": status == "completed",
        "created_by": created_by,
        "creator_role": 0 if creator_admin else 1,
        "creator_user_type": "admin" if creator_admin else "volunteer",
    }
    data.update(overrides)
    return data


def create_assignment_data(task_id: int, user_id: int) -> dict:
    """Create test task_users row with the embedded user."""
    return {
        "task_id": task_id,
        "user_id": user_id,
        "status": "assigned",
        "name": fake.name(),
        "email": fake.email(),
    }
