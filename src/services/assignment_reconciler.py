"""Assignment reconciliation - turn a desired assignee set into add/remove operations."""

from typing import Any, Awaitable, Callable, Iterable, Optional
from pydantic import BaseModel, Field

from src.utils.errors import PartialBatchFailure
from src.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

AssignmentOp = Callable[[int, int], Awaitable[Any]]


class AssignmentDiff(BaseModel):
    """Users to add to and remove from a task."""
    to_add: list[int] = Field(default_factory=list, description="Desired but not persisted")
    to_remove: list[int] = Field(default_factory=list, description="Persisted but not desired")

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


class AssignmentFailure(BaseModel):
    """One add or remove that the store rejected."""
    operation: str = Field(..., description="add or remove")
    user_id: int = Field(..., description="User the operation targeted")
    error: str = Field(..., description="Error message from the store")


class AssignmentBatchResult(BaseModel):
    """Outcome of applying an AssignmentDiff, pair by pair."""
    task_id: int = Field(..., description="Task the batch was applied to")
    added: list[int] = Field(default_factory=list)
    removed: list[int] = Field(default_factory=list)
    failures: list[AssignmentFailure] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialBatchFailure(
                f"{len(self.failures)} assignment operation(s) failed for task {self.task_id}",
                failures=self.failures,
            )


def _as_id_set(user_ids: Optional[Iterable[Any]]) -> set[int]:
    # Pickers hand over string ids; storage returns ints
    return {int(user_id) for user_id in (user_ids or [])}


def reconcile_assignments(persisted: Optional[Iterable[Any]], desired: Optional[Iterable[Any]]) -> AssignmentDiff:
    """
    Diff a persisted assignee set against the desired one.

    ``persisted`` must be the snapshot taken when the edit session started,
    not a value re-read while the batch is running.
    """
    persisted_ids = _as_id_set(persisted)
    desired_ids = _as_id_set(desired)
    return AssignmentDiff(
        to_add=sorted(desired_ids - persisted_ids),
        to_remove=sorted(persisted_ids - desired_ids),
    )


async def apply_assignment_diff(
    task_id: int,
    diff: AssignmentDiff,
    add: AssignmentOp,
    remove: AssignmentOp,
) -> AssignmentBatchResult:
    """
    Issue removals, then additions, one pair at a time.

    Not transactional: a failing pair is logged and recorded, and the rest of
    the batch still runs. Callers must re-fetch the task's assignees afterwards.
    """
    result = AssignmentBatchResult(task_id=task_id)

    for user_id in diff.to_remove:
        try:
            await remove(task_id, user_id)
            result.removed.append(user_id)
        except Exception as e:
            logger.warning(
                "Failed to remove user from task",
                task_id=task_id,
                user_id=mask_user_id(user_id),
                error=str(e),
            )
            result.failures.append(AssignmentFailure(operation="remove", user_id=user_id, error=str(e)))

    for user_id in diff.to_add:
        try:
            await add(task_id, user_id)
            result.added.append(user_id)
        except Exception as e:
            logger.warning(
                "Failed to add user to task",
                task_id=task_id,
                user_id=mask_user_id(user_id),
                error=str(e),
            )
            result.failures.append(AssignmentFailure(operation="add", user_id=user_id, error=str(e)))

    logger.info(
        "Assignment batch applied",
        task_id=task_id,
        added=len(result.added),
        removed=len(result.removed),
        failed=len(result.failures),
    )
    return result
