"""Tests for Activity model."""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError
from src.models.activity import Activity, ActivityStatus, ActivityUpdate, Participant


@pytest.mark.unit
def test_activity_defaults():
    """Test activity creation with required fields only."""
    activity = Activity(id=1, title="Beach cleanup", created_by=10)

    assert activity.is_public is True
    assert activity.is_joined is False
    assert activity.status == ActivityStatus.UPCOMING
    assert activity.progress is None
    assert activity.participants == []
    assert activity.participant_count == 0


@pytest.mark.unit
def test_activity_parses_storage_timestamps():
    """Test ISO and MySQL-style timestamps are parsed as aware datetimes."""
    activity = Activity(
        id=1,
        title="Food drive",
        created_by=10,
        start_date="2024-12-01T09:00:00.000Z",
        end_date="2024-12-20 18:00:00",
    )

    assert activity.start_date == datetime(2024, 12, 1, 9, 0, tzinfo=timezone.utc)
    assert activity.end_date == datetime(2024, 12, 20, 18, 0, tzinfo=timezone.utc)


@pytest.mark.unit
@pytest.mark.parametrize("value", ["not a date", "2024-13-45", 12345, ""])
def test_activity_malformed_dates_become_none(value):
    """Test malformed dates are treated as absent instead of failing."""
    activity = Activity(id=1, title="Tree planting", created_by=10, start_date=value, end_date=value)

    assert activity.start_date is None
    assert activity.end_date is None


@pytest.mark.unit
def test_activity_mysql_flags():
    """Test 0/1 flags and null defaults."""
    activity = Activity(id=1, title="Test", created_by=10, is_public=0, is_joined=1)
    assert activity.is_public is False
    assert activity.is_joined is True

    activity = Activity(id=1, title="Test", created_by=10, is_public=None, is_joined=None)
    assert activity.is_public is True
    assert activity.is_joined is False


@pytest.mark.unit
def test_activity_progress_bounds():
    """Test progress must be within 0-100."""
    with pytest.raises(ValidationError):
        Activity(id=1, title="Test", created_by=10, progress=101)
    with pytest.raises(ValidationError):
        Activity(id=1, title="Test", created_by=10, progress=-1)


@pytest.mark.unit
def test_activity_created_by_is_immutable():
    """Test the owner cannot be reassigned."""
    activity = Activity(id=1, title="Test", created_by=10)
    with pytest.raises(ValidationError):
        activity.created_by = 11


@pytest.mark.unit
def test_activity_is_full():
    """Test capacity check."""
    activity = Activity(id=1, title="Test", created_by=10, participant_count=5, max_participants=5)
    assert activity.is_full is True

    activity = Activity(id=1, title="Test", created_by=10, participant_count=4, max_participants=5)
    assert activity.is_full is False

    activity = Activity(id=1, title="Test", created_by=10, participant_count=400)
    assert activity.is_full is False


@pytest.mark.unit
def test_activity_has_participant():
    activity = Activity(
        id=1,
        title="Test",
        created_by=10,
        participants=[Participant(user_id=20, name="Val"), {"user_id": 30, "name": "Otto"}],
    )
    assert activity.has_participant(20)
    assert activity.has_participant(30)
    assert not activity.has_participant(40)


@pytest.mark.unit
def test_activity_update_tracks_set_fields():
    update = ActivityUpdate(title="  Beach cleanup ", end_date="2024-12-10T18:00:00Z", location=None)

    assert update.changes() == {
        "title": "Beach cleanup",
        "end_date": datetime(2024, 12, 10, 18, 0, tzinfo=timezone.utc),
        "location": None,
    }
    record = update.to_record()
    assert set(record) == {"title", "end_date", "location"}
    assert record["end_date"].startswith("2024-12-10T18:00:00")


@pytest.mark.unit
def test_activity_update_clears_end_date():
    update = ActivityUpdate(end_date="")
    assert update.changes() == {"end_date": None}


@pytest.mark.unit
@pytest.mark.parametrize("data,message", [
    ({}, "No fields to update"),
    ({"title": ""}, "Activity title is required"),
    ({"title": None}, "Activity title is required"),
    ({"start_date": "31/12/2024"}, "Invalid start_date format"),
    ({"max_participants": -5}, "greater than or equal to 0"),
])
def test_activity_update_rejects(data, message):
    with pytest.raises(ValidationError, match=message):
        ActivityUpdate(**data)
