"""Progress of an activity: task completion ratio, or elapsed time when there are no tasks."""

import math
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from src.models.activity import ActivityStatus
from src.models.task import Task, TaskStatus
from src.services.status_resolver import resolve_status
from src.utils.dates import parse_instant, utcnow

# Ongoing activity without an end date has no measurable elapsed share
OPEN_ENDED_PROGRESS = 50


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def is_task_completed(task: Any) -> bool:
    """A task is completed if its flag is set or its status is completed."""
    if isinstance(task, Task):
        return task.is_completed
    if isinstance(task, Mapping):
        status = task.get("status")
        return task.get("completed") in (True, 1) or status in (TaskStatus.COMPLETED, TaskStatus.COMPLETED.value)
    return False


def calculate_progress(tasks: Optional[Iterable[Any]]) -> int:
    """
    Percentage of completed tasks, rounded half up.

    Returns 0 for an empty list and exactly 100 when every task is completed.
    """
    task_list = list(tasks or [])
    if not task_list:
        return 0

    completed = sum(1 for task in task_list if is_task_completed(task))
    if completed == len(task_list):
        return 100
    return _clamp(round_half_up(100 * completed / len(task_list)))


def calculate_time_progress(
    start_date: Any,
    end_date: Any,
    status: Any,
    now: Optional[datetime] = None,
) -> int:
    """Fallback progress for activities without tasks, based on time elapsed."""
    try:
        status = ActivityStatus(status)
    except ValueError:
        return 0

    if status == ActivityStatus.COMPLETED:
        return 100
    if status == ActivityStatus.UPCOMING:
        return 0

    start = parse_instant(start_date)
    end = parse_instant(end_date)
    current = parse_instant(now) or utcnow()
    if start is not None and end is not None:
        total = (end - start).total_seconds()
        if total > 0:
            elapsed = (current - start).total_seconds()
            return _clamp(round_half_up(100 * elapsed / total))

    return OPEN_ENDED_PROGRESS


def all_tasks_completed(tasks: Optional[Iterable[Any]]) -> bool:
    task_list = list(tasks or [])
    return bool(task_list) and all(is_task_completed(task) for task in task_list)


def derive_status_and_progress(
    start_date: Any,
    end_date: Any,
    tasks: Optional[Iterable[Any]],
    now: Optional[datetime] = None,
) -> tuple[ActivityStatus, int]:
    """
    Status and progress for an activity.

    With at least one task, progress comes from task completion and a fully
    completed task list promotes the status to completed. Without tasks the
    time-based fallback is used and the time-resolved status is kept.
    """
    task_list = list(tasks or [])
    status = resolve_status(start_date, end_date, now)

    if not task_list:
        return status, calculate_time_progress(start_date, end_date, status, now)

    if all_tasks_completed(task_list):
        return ActivityStatus.COMPLETED, 100
    return status, calculate_progress(task_list)
