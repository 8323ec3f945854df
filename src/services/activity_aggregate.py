"""
Activity aggregate - one activity, its tasks and assignees, as seen by one actor.

The aggregate is hydrated from storage by ``load()`` and then mutated through
its async methods. Every mutation is gated by the permission policy, issued
to storage, committed to the in-memory model, and followed by a synchronous
recompute of status and progress before the method returns.

The assignee cache is a ``task_id -> set(user_id)`` dict owned by the
aggregate. ``load()`` replaces it wholesale; mutations invalidate only the
entry of the task they touched. A task missing from the cache has an unknown
assignee set and is re-read from storage before it is diffed again.

A manual progress value set with ``set_progress`` survives participant and
activity edits. Task mutations, ``load()`` and leaving the ongoing status
drop it.
"""

from datetime import datetime
from enum import Enum
from types import ModuleType
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from src.models.activity import Activity, ActivityStatus, ActivityUpdate, Participant
from src.models.assignment import Assignment
from src.models.task import Task, TaskInput, TaskUpdate
from src.models.user import Actor, User
from src.services import permissions
from src.services import supabase_client
from src.services.assignment_reconciler import (
    AssignmentBatchResult,
    apply_assignment_diff,
    reconcile_assignments,
)
from src.services.progress import derive_status_and_progress, round_half_up
from src.utils.errors import (
    AggregateStateError,
    ConfirmationRequiredError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    VolunteerHubError,
)
from src.utils.logging import get_structured_logger, log_timing, mask_user_id

logger = get_structured_logger(__name__)


class AggregateState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def _validation_message(error: PydanticValidationError) -> str:
    messages = []
    for item in error.errors():
        message = item.get("msg", "invalid value")
        messages.append(message.removeprefix("Value error, "))
    return "; ".join(messages) or "Invalid input"


def _as_user_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid user id: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid user id: {value!r}")


class ActivityAggregate:
    """In-memory model of an activity detail screen."""

    def __init__(
        self,
        activity_id: int,
        actor: Actor,
        store: Optional[Union[ModuleType, Any]] = None,
    ):
        self.activity_id = activity_id
        self.actor = actor
        self.store = store or supabase_client
        self.state = AggregateState.LOADING
        self.error: Optional[VolunteerHubError] = None
        self.activity: Optional[Activity] = None
        self.tasks: list[Task] = []
        self.assignments: dict[int, list[Assignment]] = {}
        self.assignees: dict[int, set[int]] = {}
        self.assignable_users: list[User] = []
        self.manual_progress: Optional[int] = None
        # Outcome of the most recent assignee batch issued by this aggregate
        self.last_batch: Optional[AssignmentBatchResult] = None

    # Hydration

    async def load(self) -> "ActivityAggregate":
        """Hydrate from storage. Enters ``error`` and re-raises on failure."""
        self.state = AggregateState.LOADING
        self.error = None

        try:
            with log_timing("activity_aggregate.load", logger=logger, activity_id=self.activity_id):
                record = await self.store.get_activity(self.activity_id, self.actor.id)
                activity = Activity.model_validate(record)
                if not permissions.can_view_activity(self.actor, activity):
                    raise PermissionDeniedError(
                        "Access denied. You can only view public activities or your own private activities."
                    )

                task_rows = await self.store.get_activity_tasks(self.activity_id)
                tasks = [Task.model_validate(row) for row in task_rows]

                assignments = {}
                for task in tasks:
                    assignments[task.id] = await self._fetch_assignments(task.id)

                users = await self._fetch_assignable_users(activity)
        except VolunteerHubError as e:
            self._fail(e)
            raise
        except PydanticValidationError as e:
            error = ValidationError(f"Malformed record from storage: {_validation_message(e)}")
            self._fail(error)
            raise error

        self.activity = activity
        self.tasks = tasks
        self.assignments = assignments
        self.assignees = {task_id: {a.user_id for a in rows} for task_id, rows in assignments.items()}
        self.assignable_users = users
        self.manual_progress = None
        self.last_batch = None
        self.recompute()
        self.state = AggregateState.READY

        logger.info(
            "Activity aggregate ready",
            activity_id=self.activity_id,
            actor_id=mask_user_id(self.actor.id),
            task_count=len(self.tasks),
            status=self.activity.status.value,
            progress=self.activity.progress,
        )
        return self

    async def reload(self) -> "ActivityAggregate":
        """Re-enter loading. Storage is authoritative; manual progress is dropped."""
        return await self.load()

    def _fail(self, error: VolunteerHubError) -> None:
        self.state = AggregateState.ERROR
        self.error = error
        logger.error(
            "Failed to load activity",
            activity_id=self.activity_id,
            error=str(error),
            error_type=type(error).__name__,
        )

    async def _fetch_assignments(self, task_id: int) -> list[Assignment]:
        rows = await self.store.get_task_assignments(task_id)
        return [Assignment.model_validate({**row, "task_id": task_id}) for row in rows]

    async def _fetch_assignable_users(self, activity: Activity) -> list[User]:
        # Only admins and the owner may browse every user; others pick from participants
        if self.actor.is_admin or permissions.is_activity_creator(self.actor, activity):
            rows = await self.store.list_active_users()
            return [User.model_validate(row) for row in rows if row.get("is_active", True)]
        return [
            User(id=p.user_id, name=p.name, email=p.email, is_active=True)
            for p in activity.participants
        ]

    # Derived state

    def recompute(self, now: Optional[datetime] = None) -> None:
        """Re-derive status and progress; a manual progress holds while still ongoing."""
        if self.activity is None:
            return
        status, progress = derive_status_and_progress(
            self.activity.start_date,
            self.activity.end_date,
            self.tasks,
            now,
        )
        if self.manual_progress is not None and status != ActivityStatus.ONGOING:
            self.manual_progress = None
        self.activity.status = status
        self.activity.progress = progress if self.manual_progress is None else self.manual_progress

    def _tasks_changed(self) -> None:
        self.manual_progress = None
        self.recompute()

    @property
    def status(self) -> Optional[ActivityStatus]:
        return self.activity.status if self.activity else None

    @property
    def progress(self) -> Optional[int]:
        return self.activity.progress if self.activity else None

    def get_task(self, task_id: int) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise NotFoundError(f"Task not found: {task_id}")

    def assignee_ids(self, task_id: int) -> set[int]:
        return set(self.assignees.get(task_id, set()))

    async def _persisted_assignees(self, task_id: int) -> set[int]:
        if task_id not in self.assignees:
            self._cache_assignments(task_id, await self._fetch_assignments(task_id))
        return self.assignee_ids(task_id)

    def _cache_assignments(self, task_id: int, assignments: list[Assignment]) -> None:
        self.assignments[task_id] = assignments
        self.assignees[task_id] = {a.user_id for a in assignments}

    def _require_ready(self) -> None:
        if self.state != AggregateState.READY or self.activity is None:
            raise AggregateStateError(f"Activity {self.activity_id} is not loaded (state: {self.state.value})")

    def _deny(self, action: str, message: str, **context: Any) -> None:
        logger.info(
            "Permission denied",
            action=action,
            activity_id=self.activity_id,
            actor_id=mask_user_id(self.actor.id),
            **context,
        )
        raise PermissionDeniedError(message)

    # Activity

    async def edit_activity(self, changes: Union[ActivityUpdate, dict]) -> Activity:
        """Update activity fields; changed dates move the status."""
        self._require_ready()
        if not isinstance(changes, ActivityUpdate):
            try:
                changes = ActivityUpdate.model_validate(changes)
            except PydanticValidationError as e:
                raise ValidationError(_validation_message(e))

        if not permissions.can_edit_activity(self.actor, self.activity):
            self._deny("edit_activity", "You can only update your own activities.")
        if "is_public" in changes.model_fields_set and not permissions.can_change_visibility(self.actor, self.activity):
            self._deny("edit_activity", "Only admins can change the visibility of an activity.")

        values = changes.changes()
        start = values.get("start_date", self.activity.start_date)
        end = values.get("end_date", self.activity.end_date)
        if start is not None and end is not None and end < start:
            raise ValidationError("end_date must not be before start_date")

        await self.store.update_activity(self.activity_id, changes.to_record())
        self.activity = self.activity.model_copy(update=values)
        self.recompute()

        logger.info(
            "Activity updated",
            activity_id=self.activity_id,
            fields=sorted(values),
            status=self.activity.status.value,
        )
        return self.activity

    # Tasks

    async def add_task(
        self,
        task_input: Union[TaskInput, dict],
        assignee_ids: Optional[Iterable[Any]] = None,
    ) -> Task:
        """Create a task, optionally assigning users to it. See ``last_batch`` for the assignee outcome."""
        self._require_ready()
        if not isinstance(task_input, TaskInput):
            try:
                task_input = TaskInput.model_validate(task_input)
            except PydanticValidationError as e:
                raise ValidationError(_validation_message(e))

        if not permissions.can_add_task(self.actor, self.activity):
            self._deny(
                "add_task",
                "You can only add tasks to activities you created or have joined.",
            )

        self.last_batch = None
        record = await self.store.create_task(self.activity_id, {
            **task_input.to_record(),
            "created_by": self.actor.id,
            "creator_role": self.actor.role,
            "creator_user_type": self.actor.user_type,
        })
        task = Task.model_validate(record)
        self.tasks.append(task)
        self._cache_assignments(task.id, [])
        self._tasks_changed()

        logger.info(
            "Task created",
            activity_id=self.activity_id,
            task_id=task.id,
            created_by=mask_user_id(self.actor.id),
        )

        if assignee_ids:
            await self._apply_assignees(task.id, set(), assignee_ids)
        return task

    async def edit_task(
        self,
        task_id: int,
        changes: Union[TaskUpdate, dict],
        assignee_ids: Optional[Iterable[Any]] = None,
    ) -> Task:
        """Update a task; ``assignee_ids`` (if given) replaces its assignee set."""
        self._require_ready()
        task = self.get_task(task_id)
        if not isinstance(changes, TaskUpdate):
            try:
                changes = TaskUpdate.model_validate(changes)
            except PydanticValidationError as e:
                raise ValidationError(_validation_message(e))

        if not permissions.can_edit_task(self.actor, task):
            message = (
                "Admin tasks can only be edited by admins."
                if task.creator_is_admin
                else "You can only edit tasks that you created."
            )
            self._deny("edit_task", message, task_id=task_id)

        if assignee_ids is not None and not permissions.can_manage_assignments(self.actor, self.activity, task):
            self._deny("set_assignees", "You cannot change assignees of this task.", task_id=task_id)

        self.last_batch = None
        # Snapshot before any write so the diff is computed against the session start
        persisted = await self._persisted_assignees(task_id) if assignee_ids is not None else set()

        record = await self.store.update_task(task_id, changes.to_record(task))
        updated = Task.model_validate(record)
        self.tasks = [updated if t.id == task_id else t for t in self.tasks]
        self._tasks_changed()

        if assignee_ids is not None:
            await self._apply_assignees(task_id, persisted, assignee_ids)
        return updated

    async def delete_task(self, task_id: int) -> None:
        self._require_ready()
        task = self.get_task(task_id)
        if not permissions.can_delete_task(self.actor, task):
            message = (
                "Admin tasks can only be deleted by admins."
                if task.creator_is_admin
                else "You can only delete tasks that you created."
            )
            self._deny("delete_task", message, task_id=task_id)

        await self.store.delete_task(task_id)
        self.tasks = [t for t in self.tasks if t.id != task_id]
        self.assignments.pop(task_id, None)
        self.assignees.pop(task_id, None)
        self._tasks_changed()
        logger.info("Task deleted", activity_id=self.activity_id, task_id=task_id)

    # Assignments

    async def set_assignees(self, task_id: int, desired_user_ids: Iterable[Any]) -> AssignmentBatchResult:
        """Reconcile a task's assignees with ``desired_user_ids``."""
        self._require_ready()
        task = self.get_task(task_id)
        if not permissions.can_manage_assignments(self.actor, self.activity, task):
            self._deny("set_assignees", "You cannot change assignees of this task.", task_id=task_id)
        self.last_batch = None
        persisted = await self._persisted_assignees(task_id)
        return await self._apply_assignees(task_id, persisted, desired_user_ids)

    async def _apply_assignees(
        self,
        task_id: int,
        persisted: set[int],
        desired_user_ids: Iterable[Any],
    ) -> AssignmentBatchResult:
        try:
            diff = reconcile_assignments(persisted, desired_user_ids)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid user id: {e}")

        if diff.is_empty:
            self.last_batch = AssignmentBatchResult(task_id=task_id)
            return self.last_batch

        result = await apply_assignment_diff(
            task_id,
            diff,
            add=self.store.add_task_assignment,
            remove=self.store.remove_task_assignment,
        )
        self.last_batch = result

        # The batch is not atomic; trust storage, not the local diff
        try:
            assignments = await self._fetch_assignments(task_id)
        except VolunteerHubError as e:
            self.assignments.pop(task_id, None)
            self.assignees.pop(task_id, None)
            logger.warning(
                "Assignees unknown after batch",
                task_id=task_id,
                error=str(e),
                added=len(result.added),
                removed=len(result.removed),
            )
            raise
        self._cache_assignments(task_id, assignments)
        return result

    # Participation

    async def join(self) -> Activity:
        self._require_ready()
        if not permissions.can_join_activity(self.actor, self.activity):
            self._deny("join", "Only public activities you have not joined can be joined.")
        if self.activity.is_full:
            raise ValidationError("Activity is full. Maximum participants reached.")

        await self.store.join_activity(self.activity_id, self.actor.id)

        self._add_participant_row(Participant(user_id=self.actor.id, name=self.actor.name or "", email=self.actor.email))
        self.recompute()
        logger.info("Joined activity", activity_id=self.activity_id, actor_id=mask_user_id(self.actor.id))
        return self.activity

    async def leave(self, confirmed: bool = False) -> Activity:
        """Leave the activity. Requires ``confirmed=True``."""
        self._require_ready()
        if not permissions.can_leave_activity(self.actor, self.activity):
            self._deny("leave", "You are not a participant of this activity.")
        if not confirmed:
            raise ConfirmationRequiredError("Leaving an activity must be confirmed.")

        await self.store.leave_activity(self.activity_id, self.actor.id)

        self._remove_participant_row(self.actor.id)
        self.recompute()
        logger.info("Left activity", activity_id=self.activity_id, actor_id=mask_user_id(self.actor.id))
        return self.activity

    async def add_participant(self, user_id: Any) -> Activity:
        """Register another user as participant (admin or activity creator)."""
        self._require_ready()
        user_id = _as_user_id(user_id)
        if not permissions.can_manage_participants(self.actor, self.activity):
            self._deny("add_participant", "You can only add participants to activities you created.")
        if self.activity.has_participant(user_id):
            raise ConflictError(f"User {user_id} is already a participant of this activity")
        if self.activity.is_full:
            raise ValidationError("Activity is full. Maximum participants reached.")

        user = next((u for u in self.assignable_users if u.id == user_id and u.is_active), None)
        if user is None:
            raise NotFoundError(f"User not found or inactive: {user_id}")

        await self.store.join_activity(self.activity_id, user_id)

        self._add_participant_row(Participant(user_id=user.id, name=user.name, email=user.email))
        self.recompute()
        logger.info(
            "Participant added",
            activity_id=self.activity_id,
            actor_id=mask_user_id(self.actor.id),
            user_id=mask_user_id(user_id),
        )
        return self.activity

    async def remove_participant(self, user_id: Any) -> Activity:
        """Remove another user from the participant list (admin or activity creator)."""
        self._require_ready()
        user_id = _as_user_id(user_id)
        if not permissions.can_manage_participants(self.actor, self.activity):
            self._deny("remove_participant", "You can only remove participants from activities you created.")
        if not self.activity.has_participant(user_id):
            raise NotFoundError(f"User {user_id} is not a participant of this activity")

        await self.store.leave_activity(self.activity_id, user_id)

        self._remove_participant_row(user_id)
        self.recompute()
        logger.info(
            "Participant removed",
            activity_id=self.activity_id,
            actor_id=mask_user_id(self.actor.id),
            user_id=mask_user_id(user_id),
        )
        return self.activity

    def _add_participant_row(self, participant: Participant) -> None:
        if not self.activity.has_participant(participant.user_id):
            self.activity.participants.append(participant)
        self.activity.participant_count += 1
        if participant.user_id == self.actor.id:
            self.activity.is_joined = True

    def _remove_participant_row(self, user_id: int) -> None:
        self.activity.participants = [p for p in self.activity.participants if p.user_id != user_id]
        self.activity.participant_count = max(0, self.activity.participant_count - 1)
        if user_id == self.actor.id:
            self.activity.is_joined = False

    # Progress

    def set_progress(self, value: Any) -> int:
        """
        Manually set progress while the activity is ongoing.

        The value holds until the next task change, a reload, or the
        activity leaving the ongoing status.
        """
        self._require_ready()
        if not permissions.can_edit_activity(self.actor, self.activity):
            self._deny("set_progress", "Only admins or the activity creator can update progress.")
        if self.activity.status != ActivityStatus.ONGOING:
            raise ValidationError("Progress can only be set while the activity is ongoing.")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError("Progress must be a number between 0 and 100.")
        if not 0 <= value <= 100:
            raise ValidationError("Progress must be a number between 0 and 100.")

        self.manual_progress = round_half_up(value)
        self.activity.progress = self.manual_progress
        logger.info("Progress set manually", activity_id=self.activity_id, progress=self.activity.progress)
        return self.activity.progress

    # Presentation

    def summary(self) -> dict:
        """JSON-ready view of the aggregate with the actor's permissions."""
        self._require_ready()
        activity = self.activity
        return {
            "activity": activity.model_dump(mode="json"),
            "permissions": {
                "can_add_task": permissions.can_add_task(self.actor, activity),
                "can_edit_activity": permissions.can_edit_activity(self.actor, activity),
                "can_manage_participants": permissions.can_manage_participants(self.actor, activity),
                "can_join": permissions.can_join_activity(self.actor, activity),
                "can_leave": permissions.can_leave_activity(self.actor, activity),
                "can_set_progress": permissions.can_set_progress(self.actor, activity),
            },
            "tasks": [
                {
                    **task.model_dump(mode="json"),
                    "assignees": [a.model_dump(mode="json") for a in self.assignments.get(task.id, [])],
                    "can_edit": permissions.can_edit_task(self.actor, task),
                    "can_delete": permissions.can_delete_task(self.actor, task),
                    "can_manage_assignees": permissions.can_manage_assignments(self.actor, activity, task),
                }
                for task in self.tasks
            ],
            "assignable_users": [u.model_dump(mode="json") for u in self.assignable_users],
        }
