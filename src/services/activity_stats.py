"""Per-user activity statistics for the dashboard."""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from src.models.activity import Activity, ActivityStatus
from src.models.task import Task
from src.models.user import Actor
from src.services import supabase_client
from src.services.status_resolver import resolve_status
from src.utils.dates import parse_day, parse_instant, utcnow
from src.utils.errors import ValidationError
from src.utils.logging import get_structured_logger, mask_user_id, timed

logger = get_structured_logger(__name__)

PERIODS = {
    "last_week": timedelta(days=7),
    "last_month": timedelta(days=30),
    "last_year": timedelta(days=365),
}


def total_task_hours(tasks: Iterable[Task]) -> int:
    """Sum of ``total_hours`` over tasks that have it."""
    return sum(task.total_hours for task in tasks if task.total_hours is not None)


def count_completed_activities(activities: Iterable[Activity], now: Optional[datetime] = None) -> int:
    """Activities whose window has ended. Task completion is not considered here."""
    return sum(
        1 for activity in activities
        if activity.end_date is not None
        and resolve_status(activity.start_date, activity.end_date, now) == ActivityStatus.COMPLETED
    )


def period_bounds(period: str, now: Optional[datetime] = None) -> tuple[date, date]:
    """Inclusive day range for a named period ending today."""
    if period not in PERIODS:
        raise ValidationError(f"Unknown period: {period}. Expected one of {', '.join(PERIODS)}")
    today = (parse_instant(now) or utcnow()).date()
    return today - PERIODS[period], today


def task_hours_by_activity(
    tasks: Iterable[Task],
    activities: Iterable[Activity],
    start: Any,
    end: Any,
) -> list[dict]:
    """
    Hours per activity for tasks whose day falls within ``[start, end]``.

    A task's day is its start date, or its due date when it has no start date.
    Tasks without either are skipped. Activities are listed by descending hours.
    """
    start_day = parse_day(start)
    end_day = parse_day(end)
    if start_day is None or end_day is None:
        raise ValidationError("start and end must be valid dates")
    if start_day > end_day:
        raise ValidationError("start must not be after end")

    titles = {activity.id: activity.title for activity in activities}
    hours: dict[int, int] = defaultdict(int)
    counts: dict[int, int] = defaultdict(int)

    for task in tasks:
        day = task.start_date or task.due_date
        if day is None or task.total_hours is None:
            continue
        if start_day <= day <= end_day:
            hours[task.activity_id] += task.total_hours
            counts[task.activity_id] += 1

    rows = [
        {
            "activity_id": activity_id,
            "activity_title": titles.get(activity_id),
            "total_hours": total,
            "task_count": counts[activity_id],
        }
        for activity_id, total in hours.items()
    ]
    rows.sort(key=lambda row: (-row["total_hours"], row["activity_id"]))
    return rows


@timed("activity_stats.get_user_stats", logger=logger)
async def get_user_stats(actor: Actor, period: str = "last_month", now: Optional[datetime] = None, store=None) -> dict:
    """Dashboard numbers for the actor's own tasks and activities."""
    store = store or supabase_client
    start, end = period_bounds(period, now)
    task_rows = await store.get_tasks_created_by(actor.id)
    activity_rows = await store.get_activities_for_user(actor.id)

    tasks = [Task.model_validate(row) for row in task_rows]
    activities = [Activity.model_validate(row) for row in activity_rows]

    stats = {
        "total_hours": total_task_hours(tasks),
        "total_tasks": len(tasks),
        "my_activities": len(activities),
        "completed_activities": count_completed_activities(activities, now),
        "period": period,
        "period_start": start.isoformat(),
        "period_end": end.isoformat(),
        "hours_by_activity": task_hours_by_activity(tasks, activities, start, end),
    }
    logger.info(
        "User stats computed",
        actor_id=mask_user_id(actor.id),
        total_tasks=stats["total_tasks"],
        my_activities=stats["my_activities"],
    )
    return stats
