"""Activity model - a volunteer event with a time window and participant roster."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from src.utils.dates import parse_instant


class ActivityStatus(str, Enum):
    """Temporal status, always derived from the start/end window."""
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class Participant(BaseModel):
    """A user who joined an activity."""
    user_id: int = Field(..., description="Participant user ID")
    name: str = Field(default="", description="Participant display name")
    email: Optional[str] = Field(None, description="Participant email")


class Activity(BaseModel):
    """Activity record plus the fields derived for the current viewer."""
    id: int = Field(..., description="Activity ID")
    title: str = Field(..., description="Activity title")
    description: Optional[str] = Field(None, description="Activity description")
    category: Optional[str] = Field(None, description="Free-form category")
    organization_name: Optional[str] = Field(None, description="Organizing body")
    location: Optional[str] = Field(None, description="Where the activity takes place")
    start_date: Optional[datetime] = Field(None, description="Start of the activity window")
    end_date: Optional[datetime] = Field(None, description="End of the activity window (open-ended if null)")
    is_public: bool = Field(default=True, description="Public activities can be joined by non-creators")
    created_by: int = Field(..., frozen=True, description="Owner user ID")
    creator_name: Optional[str] = Field(None, description="Owner display name")
    participant_count: int = Field(default=0, ge=0, description="Number of participants")
    max_participants: Optional[int] = Field(None, ge=0, description="Capacity, null for unlimited")
    participants: list[Participant] = Field(default_factory=list, description="Joined users")
    is_joined: bool = Field(default=False, description="Whether the current viewer has joined")
    status: ActivityStatus = Field(
        default=ActivityStatus.UPCOMING,
        description="Derived status: upcoming, ongoing, completed"
    )
    progress: Optional[int] = Field(None, ge=0, le=100, description="Derived progress (0-100)")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _lenient_instant(cls, value: Any) -> Optional[datetime]:
        # Malformed timestamps are treated as absent
        return parse_instant(value)

    @field_validator("is_public", "is_joined", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any, info: ValidationInfo) -> bool:
        # MySQL-style 0/1 flags; null falls back to the column default
        if value is None:
            return cls.model_fields[info.field_name].default
        return bool(value)

    @property
    def is_full(self) -> bool:
        return self.max_participants is not None and self.participant_count >= self.max_participants

    def has_participant(self, user_id: int) -> bool:
        return any(p.user_id == user_id for p in self.participants)


class ActivityUpdate(BaseModel):
    """Partial activity edit. Only fields that were explicitly set are written."""
    title: Optional[str] = Field(None, description="New title (non-empty when given)")
    description: Optional[str] = Field(None, description="New description")
    category: Optional[str] = Field(None, description="New category")
    organization_name: Optional[str] = Field(None, description="New organizing body")
    location: Optional[str] = Field(None, description="New location")
    start_date: Optional[datetime] = Field(None, description="New start of the window")
    end_date: Optional[datetime] = Field(None, description="New end of the window, null for open-ended")
    max_participants: Optional[int] = Field(None, ge=0, description="New capacity, null for unlimited")
    is_public: Optional[bool] = Field(None, description="New visibility (admins only)")

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("Activity title is required")
        return value.strip() if isinstance(value, str) else value

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _strict_instant(cls, value: Any, info: ValidationInfo) -> Optional[datetime]:
        # Unlike stored rows, edits with unreadable dates are rejected
        if value is None or value == "":
            return None
        parsed = parse_instant(value)
        if parsed is None:
            raise ValueError(f"Invalid {info.field_name} format. Please provide a valid date.")
        return parsed

    @model_validator(mode="after")
    def _has_changes(self) -> "ActivityUpdate":
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self

    def changes(self) -> dict:
        """Typed values of the explicitly set fields."""
        return {field: getattr(self, field) for field in self.model_fields_set}

    def to_record(self) -> dict:
        return self.model_dump(mode="json", include=self.model_fields_set)
