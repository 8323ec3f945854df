"""Task models - units of work under an activity."""

from enum import Enum
from typing import Any, Optional
from datetime import date
from pydantic import BaseModel, Field, field_validator, model_validator

from src.models.user import is_admin_role
from src.utils.dates import parse_day


class TaskStatus(str, Enum):
    """Task status values."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


def _lenient_day(value: Any) -> Optional[date]:
    return parse_day(value)


def _clean_title(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("Task title is required")
    return value


def _clean_description(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    return value


class Task(BaseModel):
    """Task record as read from storage.

    ``created_by``, ``creator_role`` and ``creator_user_type`` are a snapshot
    of the author taken when the task was created. They are frozen so that a
    later role change of the author does not change who may edit the task.
    """
    id: int = Field(..., description="Task ID")
    activity_id: int = Field(..., frozen=True, description="Owning activity ID")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    start_date: Optional[date] = Field(None, description="Planned start day")
    due_date: Optional[date] = Field(None, description="Due day")
    total_hours: Optional[int] = Field(None, ge=0, description="Hours spent or planned")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Status: pending, in-progress, completed")
    completed: bool = Field(default=False, description="Completion flag, mirrors status == completed")
    created_by: int = Field(..., frozen=True, description="Author user ID")
    creator_role: Optional[int] = Field(None, frozen=True, description="Author role at creation time")
    creator_user_type: Optional[str] = Field(None, frozen=True, description="Author user_type at creation time")
    creator_name: Optional[str] = Field(None, description="Author display name")

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def _lenient_dates(cls, value: Any) -> Optional[date]:
        return _lenient_day(value)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value: Any) -> Any:
        return TaskStatus.PENDING if value in (None, "") else value

    @field_validator("completed", mode="before")
    @classmethod
    def _coerce_completed(cls, value: Any) -> bool:
        return bool(value) if value is not None else False

    @property
    def is_completed(self) -> bool:
        """Completed if either the flag or the status says so."""
        return self.completed is True or self.status == TaskStatus.COMPLETED

    @property
    def creator_is_admin(self) -> bool:
        return is_admin_role(self.creator_role, self.creator_user_type)


class TaskInput(BaseModel):
    """Fields accepted when creating a task."""
    title: str = Field(..., description="Task title (required, non-empty)")
    description: Optional[str] = Field(None, description="Task description")
    start_date: Optional[date] = Field(None, description="Planned start day")
    due_date: Optional[date] = Field(None, description="Due day")
    total_hours: Optional[int] = Field(None, ge=0, description="Hours spent or planned")
    status: TaskStatus = Field(default=TaskStatus.IN_PROGRESS, description="Initial status")

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> Any:
        return _clean_title(value)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> Any:
        return _clean_description(value)

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def _lenient_dates(cls, value: Any) -> Optional[date]:
        return _lenient_day(value)

    @field_validator("total_hours", mode="before")
    @classmethod
    def _blank_hours(cls, value: Any) -> Any:
        return None if value == "" else value

    def to_record(self) -> dict:
        """Storage payload with ``completed`` kept consistent with ``status``."""
        data = self.model_dump(mode="json")
        data["completed"] = self.status == TaskStatus.COMPLETED
        return data


class TaskUpdate(BaseModel):
    """Partial task edit. Only fields that were explicitly set are written."""
    title: Optional[str] = Field(None, description="New title (non-empty when given)")
    description: Optional[str] = Field(None, description="New description")
    start_date: Optional[date] = Field(None, description="New start day")
    due_date: Optional[date] = Field(None, description="New due day")
    total_hours: Optional[int] = Field(None, ge=0, description="New hours")
    status: Optional[TaskStatus] = Field(None, description="New status")
    completed: Optional[bool] = Field(None, description="New completion flag")

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> Any:
        return _clean_description(value)

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def _lenient_dates(cls, value: Any) -> Optional[date]:
        return _lenient_day(value)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Task title is required")
        return _clean_title(value)

    @field_validator("total_hours", mode="before")
    @classmethod
    def _blank_hours(cls, value: Any) -> Any:
        return None if value == "" else value

    @model_validator(mode="after")
    def _has_changes(self) -> "TaskUpdate":
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self

    def to_record(self, current: Task) -> dict:
        """Storage payload for the explicitly set fields.

        ``status`` and ``completed`` are always written together. A status
        wins over a conflicting completion flag; a bare flag moves the status
        to completed, or back to in-progress when un-completing.
        """
        data = self.model_dump(mode="json", include=self.model_fields_set - {"status", "completed"})

        if "status" in self.model_fields_set and self.status is not None:
            status = self.status
        elif "completed" in self.model_fields_set and self.completed is not None:
            if self.completed:
                status = TaskStatus.COMPLETED
            elif current.status == TaskStatus.COMPLETED:
                status = TaskStatus.IN_PROGRESS
            else:
                status = current.status
        else:
            status = None

        if status is not None:
            data["status"] = status.value
            data["completed"] = status == TaskStatus.COMPLETED
        return data
