"""Temporal status of an activity, derived only from its start/end window."""

from datetime import datetime
from typing import Any, Optional

from src.models.activity import ActivityStatus
from src.utils.dates import parse_instant, utcnow


def resolve_status(start_date: Any, end_date: Any, now: Optional[datetime] = None) -> ActivityStatus:
    """
    Map ``(start_date, end_date, now)`` to upcoming, ongoing or completed.

    - no start date: upcoming
    - end date in the past: completed
    - started and (open-ended or not yet ended): ongoing
    - otherwise: upcoming

    Malformed dates count as absent. Never raises.
    """
    start = parse_instant(start_date)
    end = parse_instant(end_date)
    current = parse_instant(now) or utcnow()

    if start is None:
        return ActivityStatus.UPCOMING
    if end is not None and end < current:
        return ActivityStatus.COMPLETED
    if start <= current and (end is None or end >= current):
        return ActivityStatus.ONGOING
    return ActivityStatus.UPCOMING
