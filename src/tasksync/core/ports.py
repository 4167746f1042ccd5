# src/tasksync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
HTTP, Socket.IO and on-disk adapters live in tasksync.api; tests use in-memory fakes.
"""

from collections.abc import AsyncIterator, Mapping
from typing import Protocol

from ..tasks.task_models import ChangeSignal, Identity, Task, TaskDraft, TaskStatus, UserProfile

ScopeHint = Mapping[str, str]
# Query parameters narrowing a task listing server-side, e.g. {"assignedTo": "u1"}.


class CredentialStore(Protocol):
    """A single, process-durable slot holding the bearer credential."""

    def get(self) -> str | None: ...
    def set(self, credential: str) -> None: ...
    def clear(self) -> None: ...


class CredentialSink(Protocol):
    """
    Outbound side of the API boundary: where the bearer credential is attached
    so that every subsequent request is authorized.
    """

    def attach_credential(self, credential: str) -> None: ...
    def detach_credential(self) -> None: ...


class AuthApi(Protocol):
    async def verify(self, credential: str) -> Identity: ...
    async def login(self, email: str, password: str) -> str: ...
    async def register(self, profile: UserProfile) -> Identity: ...


class TaskApi(Protocol):
    async def list_tasks(self, scope: ScopeHint) -> list[Task]: ...
    async def create_task(self, draft: TaskDraft) -> Task: ...
    async def update_task(self, task_id: str, *, status: TaskStatus) -> Task: ...
    async def delete_task(self, task_id: str) -> None: ...


class UserDirectoryApi(Protocol):
    async def list_users(self) -> list[Identity]: ...
    async def create_user(self, profile: UserProfile) -> Identity: ...


class PushSource(Protocol):
    """
    Live change notifications.

    connect() raises if the channel cannot be opened. signals() then yields
    ChangeSignal until the channel drops (the iterator ends or raises).
    Reconnecting is connect() again. No ordering or delivery guarantee.
    """

    async def connect(self) -> None: ...
    def signals(self) -> AsyncIterator[ChangeSignal]: ...
    async def disconnect(self) -> None: ...
