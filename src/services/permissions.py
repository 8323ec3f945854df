"""
Who may do what to an activity or its tasks.

Every predicate is a pure function of the actor and the records involved and
returns False instead of raising when something is missing.

Task edit and delete are deliberately asymmetric: an admin may delete any
task (moderation) but may only edit tasks that were authored by an admin.
Authorship is judged from the creator snapshot stored on the task, not from
the author's current role.
"""

from typing import Optional

from src.models.activity import Activity, ActivityStatus
from src.models.task import Task
from src.models.user import Actor


def is_activity_creator(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    if actor is None or activity is None:
        return False
    return activity.created_by == actor.id


def can_view_activity(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    """Admins see everything; others see public activities and their own."""
    if actor is None or activity is None:
        return False
    return actor.is_admin or activity.is_public or is_activity_creator(actor, activity)


def can_add_task(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    """Admin, the activity's creator, or a participant. Status does not matter."""
    if actor is None or activity is None:
        return False
    return actor.is_admin or is_activity_creator(actor, activity) or activity.is_joined


def can_edit_task(actor: Optional[Actor], task: Optional[Task]) -> bool:
    """Admin-authored tasks are editable by admins only; others by their author only."""
    if actor is None or task is None:
        return False
    if task.creator_is_admin:
        return actor.is_admin
    return task.created_by == actor.id


def can_delete_task(actor: Optional[Actor], task: Optional[Task]) -> bool:
    """Admins may delete any task; others only tasks they authored as non-admins."""
    if actor is None or task is None:
        return False
    if actor.is_admin:
        return True
    if task.creator_is_admin:
        return False
    return task.created_by == actor.id


def can_edit_activity(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    if actor is None or activity is None:
        return False
    return actor.is_admin or is_activity_creator(actor, activity)


def can_manage_participants(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    """Admins and the activity creator add or remove other participants."""
    return can_edit_activity(actor, activity)


def can_change_visibility(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    """Only admins may flip an activity between public and private."""
    return actor is not None and activity is not None and actor.is_admin


def can_join_activity(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    """Join is offered to non-admins on public activities they have not joined."""
    if actor is None or activity is None:
        return False
    return not actor.is_admin and activity.is_public and not activity.is_joined


def can_leave_activity(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    if actor is None or activity is None:
        return False
    return not actor.is_admin and activity.is_public and activity.is_joined


def can_manage_assignments(
    actor: Optional[Actor],
    activity: Optional[Activity],
    task: Optional[Task],
) -> bool:
    """Activity owners and admins manage any task's assignees; authors manage their own task's."""
    if actor is None or activity is None or task is None:
        return False
    return can_edit_activity(actor, activity) or can_edit_task(actor, task)


def can_set_progress(actor: Optional[Actor], activity: Optional[Activity]) -> bool:
    """Manual progress overrides are only accepted while the activity is ongoing."""
    return can_edit_activity(actor, activity) and activity.status == ActivityStatus.ONGOING
