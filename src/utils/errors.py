"""Error handling utilities."""

from typing import Optional


class VolunteerHubError(Exception):
    """Base exception for the volunteer activities backend."""
    pass


class ValidationError(VolunteerHubError):
    """Input rejected before any storage call was issued."""
    pass


class ConfirmationRequiredError(ValidationError):
    """Irreversible action attempted without explicit confirmation."""
    pass


class PermissionDeniedError(VolunteerHubError):
    """Actor is not allowed to perform the action."""
    pass


class AggregateStateError(VolunteerHubError):
    """Mutation attempted on an aggregate that is not ready."""
    pass


class SupabaseError(VolunteerHubError):
    """Supabase operation error."""
    pass


class NotFoundError(SupabaseError):
    """Entity is gone (404 or no matching row)."""
    pass


class ConflictError(SupabaseError):
    """Unique constraint violated (duplicate join or assignment)."""
    pass


class TransientNetworkError(SupabaseError):
    """Network failure talking to Supabase. Not retried."""
    pass


class PartialBatchFailure(VolunteerHubError):
    """Some add/remove operations of an assignment batch failed."""

    def __init__(self, message: str, failures: Optional[list] = None):
        super().__init__(message)
        self.failures = failures or []
