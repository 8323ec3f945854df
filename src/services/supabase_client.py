"""Supabase client wrapper and the table operations used by the activity engine."""

import os
from typing import Any, Optional

import httpx
from supabase import create_client, Client
from supabase.client import ClientOptions

from src.utils.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    SupabaseError,
    TransientNetworkError,
    VolunteerHubError,
)
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None

# PostgREST / Postgres error codes we map to distinct errors
_NOT_FOUND_CODES = {"PGRST116", "404"}
_FORBIDDEN_CODES = {"42501", "403", "PGRST301"}
_CONFLICT_CODES = {"23505"}

PARTICIPANT_COLUMNS = "user_id, joined_at, users(name, email)"
ASSIGNMENT_COLUMNS = "task_id, user_id, status, assigned_at, users(name, email)"
USER_COLUMNS = "id, name, email, is_active, role, user_type"


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", url=url)

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        return False


def _translate_error(error: Exception, message: str) -> VolunteerHubError:
    """Map a client/transport exception onto the engine's error taxonomy."""
    if isinstance(error, VolunteerHubError):
        return error
    if isinstance(error, (httpx.TransportError, httpx.TimeoutException)):
        return TransientNetworkError(f"{message}: {error}")

    code = str(getattr(error, "code", "") or "")
    text = str(error)
    if code in _NOT_FOUND_CODES:
        return NotFoundError(f"{message}: {text}")
    if code in _FORBIDDEN_CODES:
        return PermissionDeniedError(f"{message}: {text}")
    if code in _CONFLICT_CODES or "duplicate key" in text.lower():
        return ConflictError(f"{message}: {text}")
    return SupabaseError(f"{message}: {text}")


def _flatten_user(row: dict) -> dict:
    """Lift the embedded ``users`` object of a joined row to the top level."""
    row = dict(row)
    user = row.pop("users", None) or {}
    row.setdefault("name", user.get("name"))
    row.setdefault("email", user.get("email"))
    return row


# Activities
async def get_activity(activity_id: int, viewer_id: Optional[int] = None) -> dict:
    """Get an active activity with its participants and the viewer's join state."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activities").select("*").eq("id", activity_id).eq("is_active", True).execute()
            if not result.data:
                raise NotFoundError(f"Activity not found: {activity_id}")
            activity = dict(result.data[0])

            participants = client.table("activity_participants").select(PARTICIPANT_COLUMNS).eq(
                "activity_id", activity_id
            ).order("joined_at").execute()
            rows = [_flatten_user(row) for row in (participants.data or [])]

            activity["participants"] = rows
            activity["participant_count"] = len(rows)
            activity["is_joined"] = viewer_id is not None and any(row.get("user_id") == viewer_id for row in rows)
            return activity
        except Exception as e:
            raise _translate_error(e, "Failed to get activity")


async def get_activities_for_user(user_id: int) -> list[dict]:
    """Active activities the user created or joined."""
    async with SupabaseClient() as client:
        try:
            created = client.table("activities").select("*").eq("created_by", user_id).eq("is_active", True).execute()
            joined = client.table("activity_participants").select("activity_id").eq("user_id", user_id).execute()

            activities = {row["id"]: row for row in (created.data or [])}
            joined_ids = [row["activity_id"] for row in (joined.data or []) if row["activity_id"] not in activities]
            if joined_ids:
                extra = client.table("activities").select("*").in_("id", joined_ids).eq("is_active", True).execute()
                activities.update({row["id"]: row for row in (extra.data or [])})
            return list(activities.values())
        except Exception as e:
            raise _translate_error(e, "Failed to get activities for user")


async def join_activity(activity_id: int, user_id: int) -> dict:
    """Register a user as participant."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_participants").insert({
                "activity_id": activity_id,
                "user_id": user_id,
                "status": "registered"
            }).execute()
            if result.data:
                return result.data[0]
            raise SupabaseError("Failed to join activity: no data returned")
        except Exception as e:
            raise _translate_error(e, "Failed to join activity")


async def leave_activity(activity_id: int, user_id: int) -> None:
    """Remove a user from the participant list."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_participants").delete().eq(
                "activity_id", activity_id
            ).eq("user_id", user_id).execute()
            if not result.data:
                raise NotFoundError(f"User {user_id} is not a participant of activity {activity_id}")
        except Exception as e:
            raise _translate_error(e, "Failed to leave activity")


async def update_activity(activity_id: int, updates: dict) -> dict:
    """Update activity columns and return the stored row."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activities").update({**updates, "updated_at": "now()"}).eq("id", activity_id).execute()
            if result.data:
                return result.data[0]
            raise NotFoundError(f"Activity not found: {activity_id}")
        except Exception as e:
            raise _translate_error(e, "Failed to update activity")


# Tasks
async def get_activity_tasks(activity_id: int) -> list[dict]:
    """Get all tasks of an activity, oldest first."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_tasks").select("*").eq("activity_id", activity_id).order("created_at").execute()
            return result.data if result.data else []
        except Exception as e:
            raise _translate_error(e, "Failed to get tasks")


async def get_tasks_created_by(user_id: int) -> list[dict]:
    """Get all tasks authored by a user, across activities."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_tasks").select("*").eq("created_by", user_id).execute()
            return result.data if result.data else []
        except Exception as e:
            raise _translate_error(e, "Failed to get tasks by creator")


async def create_task(activity_id: int, task_data: dict) -> dict:
    """Create a task. ``task_data`` carries the creator snapshot."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_tasks").insert({**task_data, "activity_id": activity_id}).execute()
            if result.data:
                return result.data[0]
            raise SupabaseError("Failed to create task: no data returned")
        except Exception as e:
            raise _translate_error(e, "Failed to create task")


async def update_task(task_id: int, updates: dict) -> dict:
    """Update a task and return the stored row."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_tasks").update({**updates, "updated_at": "now()"}).eq("id", task_id).execute()
            if result.data:
                return result.data[0]
            raise NotFoundError(f"Task not found: {task_id}")
        except Exception as e:
            raise _translate_error(e, "Failed to update task")


async def delete_task(task_id: int) -> None:
    """Delete a task; its assignments cascade."""
    async with SupabaseClient() as client:
        try:
            result = client.table("activity_tasks").delete().eq("id", task_id).execute()
            if not result.data:
                raise NotFoundError(f"Task not found: {task_id}")
        except Exception as e:
            raise _translate_error(e, "Failed to delete task")


# Task assignments
async def get_task_assignments(task_id: int) -> list[dict]:
    """Get the users assigned to a task, in assignment order."""
    async with SupabaseClient() as client:
        try:
            result = client.table("task_users").select(ASSIGNMENT_COLUMNS).eq("task_id", task_id).order("assigned_at").execute()
            return [_flatten_user(row) for row in (result.data or [])]
        except Exception as e:
            raise _translate_error(e, "Failed to get task assignments")


async def add_task_assignment(task_id: int, user_id: int) -> dict:
    """Assign a user to a task."""
    async with SupabaseClient() as client:
        try:
            result = client.table("task_users").insert({
                "task_id": task_id,
                "user_id": user_id,
                "status": "assigned"
            }).execute()
            if result.data:
                return result.data[0]
            raise SupabaseError("Failed to assign user: no data returned")
        except Exception as e:
            raise _translate_error(e, "Failed to assign user to task")


async def remove_task_assignment(task_id: int, user_id: int) -> None:
    """Remove a user from a task."""
    async with SupabaseClient() as client:
        try:
            result = client.table("task_users").delete().eq("task_id", task_id).eq("user_id", user_id).execute()
            if not result.data:
                raise NotFoundError(f"User {user_id} is not assigned to task {task_id}")
        except Exception as e:
            raise _translate_error(e, "Failed to remove user from task")


# Users
async def list_active_users() -> list[dict]:
    """All active users, for assignment pickers."""
    async with SupabaseClient() as client:
        try:
            result = client.table("users").select(USER_COLUMNS).eq("is_active", True).order("name").execute()
            return result.data if result.data else []
        except Exception as e:
            raise _translate_error(e, "Failed to list users")
