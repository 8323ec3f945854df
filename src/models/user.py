"""User and Actor models - people who join activities and get assigned to tasks."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

ADMIN_ROLE = 0
ADMIN_USER_TYPE = "admin"


def is_admin_role(role: Any, user_type: Optional[str]) -> bool:
    """Admin privilege is role 0 or user_type 'admin'."""
    try:
        if role is not None and int(role) == ADMIN_ROLE:
            return True
    except (TypeError, ValueError):
        pass
    return isinstance(user_type, str) and user_type.strip().lower() == ADMIN_USER_TYPE


class User(BaseModel):
    """User record as offered by assignment pickers."""
    id: int = Field(..., description="User ID")
    name: str = Field(default="", description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    is_active: bool = Field(default=True, description="Inactive users cannot be assigned")
    role: Optional[int] = Field(None, description="Numeric role, 0 = admin")
    user_type: Optional[str] = Field(None, description="Role label: admin, volunteer")

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role, self.user_type)


class Actor(BaseModel):
    """The viewer performing an action. Request scoped, never persisted."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="User ID of the viewer")
    role: Optional[int] = Field(None, description="Numeric role, 0 = admin")
    user_type: Optional[str] = Field(None, description="Role label: admin, volunteer")
    name: Optional[str] = Field(None, description="Display name, used for participant rows")
    email: Optional[str] = Field(None, description="Email, used for participant rows")
    is_admin: bool = Field(default=False, description="Normalized admin flag, derived at construction")

    @model_validator(mode="before")
    @classmethod
    def _normalize_admin(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            data["is_admin"] = is_admin_role(data.get("role"), data.get("user_type"))
        return data

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(
            id=user.id,
            role=user.role,
            user_type=user.user_type,
            name=user.name,
            email=user.email,
        )
