"""Test helper functions."""

import json
from typing import Any, Dict, Iterable, Optional
from unittest.mock import AsyncMock, Mock

STORE_FUNCTIONS = (
    "get_activity",
    "get_activity_tasks",
    "get_task_assignments",
    "list_active_users",
    "create_task",
    "update_task",
    "delete_task",
    "add_task_assignment",
    "remove_task_assignment",
    "join_activity",
    "leave_activity",
    "get_tasks_created_by",
    "get_activities_for_user",
    "update_activity",
)


def create_mock_store(
    activity: Optional[dict] = None,
    tasks: Optional[list[dict]] = None,
    assignments: Optional[Dict[int, list[dict]]] = None,
    users: Optional[Iterable[dict]] = None,
) -> Mock:
    """Mock of the supabase_client module with every store function as AsyncMock."""
    store = Mock()
    for name in STORE_FUNCTIONS:
        setattr(store, name, AsyncMock())

    if assignments is None:
        assignments = {}
    store.get_activity.return_value = activity
    store.get_activity_tasks.return_value = tasks or []
    store.get_task_assignments.side_effect = lambda task_id: list(assignments.get(task_id, []))
    store.list_active_users.return_value = list(users or [])
    return store


def create_vercel_request(
    query: Optional[Dict[str, Any]] = None,
    user: Optional[Dict[str, Any]] = None,
    method: str = "GET",
    path: str = "/api/activities/detail",
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    return {
        "method": method,
        "path": path,
        "headers": {"content-type": "application/json"},
        "body": "",
        "query": query or {},
        "user": user,
    }


def parse_body(response: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(response["body"])
