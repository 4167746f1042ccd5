# src/tasksync/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum


class Role(StrEnum):
    EMPLOYEE = "Employee"
    MANAGER = "Manager"
    ADMIN = "Admin"

    @classmethod
    def parse(cls, raw: str | None) -> Role:
        """Case-insensitive lookup; unknown or missing roles get the least privilege."""
        if not raw:
            return cls.EMPLOYEE
        for role in cls:
            if role.value.lower() == raw.strip().lower():
                return role
        return cls.EMPLOYEE


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(StrEnum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CLOSED = "closed"

    @property
    def is_finished(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CLOSED)


class ChangeKind(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class SessionState(StrEnum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(slots=True, frozen=True)
class Identity:
    id: str
    display_name: str
    email: str
    role: Role


@dataclass(slots=True, frozen=True)
class Task:
    """
    Server-owned task as seen by this client.

    assigned_to / created_by are weak references (identity ids); resolve them
    through the user directory when a name is needed.
    """

    id: str
    title: str
    description: str
    priority: TaskPriority
    status: TaskStatus
    created_by: str
    created_at: datetime | None
    due_date: date | None = None
    assigned_to: str | None = None


@dataclass(slots=True, frozen=True)
class TaskDraft:
    title: str
    description: str = ""
    priority: TaskPriority | str = TaskPriority.MEDIUM
    status: TaskStatus | str = TaskStatus.OPEN
    due_date: date | None = None
    assigned_to: Identity | None = None


@dataclass(slots=True, frozen=True)
class UserProfile:
    """Registration / user-directory payload."""

    full_name: str
    email: str
    password: str
    role: Role = Role.EMPLOYEE
    phone: str | None = None
    confirm_password: str | None = None


@dataclass(slots=True, frozen=True)
class ChangeSignal:
    """Payload-less "something changed" notice from the push channel."""

    kind: ChangeKind
