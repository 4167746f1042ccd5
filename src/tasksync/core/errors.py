# src/tasksync/core/errors.py

"""
Error taxonomy shared by the session, repository and API adapters.

Every failure reaching a caller is one of these, carrying a message that can be
shown to the user as a single notice line.
"""

from __future__ import annotations


class TaskSyncError(Exception):
    """Base class. `message` is always human-readable."""

    default_message = "Something went wrong."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = (message or "").strip() or self.default_message
        self.status_code = status_code
        super().__init__(self.message)


class AuthError(TaskSyncError):
    """Bad, expired or missing credential. Forces a sign-out."""

    default_message = "Your session is not valid. Please sign in again."


class ValidationError(TaskSyncError):
    """Malformed task or user draft. The cache is untouched."""

    default_message = "The submitted data is not valid."


class NotFoundError(TaskSyncError):
    """Target id no longer exists or is no longer visible. The cache is stale."""

    default_message = "That item no longer exists."


class PermissionDeniedError(TaskSyncError):
    """The current role may not perform the action."""

    default_message = "You are not allowed to do that."


class RemoteError(TaskSyncError):
    """Transport or server failure. Transient; no automatic retry."""

    default_message = "The server could not be reached. Try again later."


def friendly_error_message(err: Exception) -> str:
    if isinstance(err, TaskSyncError):
        return err.message
    msg = str(err).strip()
    return msg or f"Unexpected error ({err.__class__.__name__})."
