"""Assignment model - a user assigned to a task."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, model_validator


class AssignmentStatus(str, Enum):
    """Per-assignee status, not interpreted by the engine."""
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Assignment(BaseModel):
    """Row of task_users, optionally joined with the user's name and email."""
    task_id: int = Field(..., description="Task ID")
    user_id: int = Field(..., description="Assigned user ID")
    status: AssignmentStatus = Field(default=AssignmentStatus.ASSIGNED, description="Assignment status")
    name: Optional[str] = Field(None, description="Assignee display name")
    email: Optional[str] = Field(None, description="Assignee email")

    @model_validator(mode="before")
    @classmethod
    def _flatten_user(cls, data: Any) -> Any:
        # PostgREST embeds the joined user as {"users": {"name": ..., "email": ...}}
        if isinstance(data, dict) and isinstance(data.get("users"), dict):
            data = dict(data)
            user = data.pop("users")
            data.setdefault("name", user.get("name"))
            data.setdefault("email", user.get("email"))
        return data
