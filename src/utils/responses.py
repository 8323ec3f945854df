"""Response helpers for the serverless handlers."""

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.models.user import Actor
from src.utils.errors import (
    AggregateStateError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TransientNetworkError,
    ValidationError,
    VolunteerHubError,
)

# Most specific first
_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AggregateStateError, 409),
    (TransientNetworkError, 503),
)


def json_response(status_code: int, body: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, default=str),
    }


def status_for_error(error: Exception) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_response(error: Exception) -> dict:
    """Map an error onto a JSON response; unknown errors hide their message."""
    status_code = status_for_error(error)
    message = str(error) if isinstance(error, VolunteerHubError) else "Internal server error"
    return json_response(status_code, {"success": False, "message": message, "error_type": type(error).__name__})


def actor_from_request(request: dict) -> Actor:
    """Build the Actor from the authenticated user attached upstream."""
    user = request.get("user")
    if not user:
        raise PermissionDeniedError("Authentication required")
    try:
        return Actor.model_validate(user)
    except PydanticValidationError as e:
        raise PermissionDeniedError(f"Invalid user context: {e.error_count()} error(s)")
