# src/tasksync/core/board.py

"""
TaskBoard: the one caller that drives the session, repository and sync channel.

- every successful mutation is followed by exactly one repository.list();
  a failed follow-up refresh turns into a warning on the result, never a rollback,
- AuthError from any remote call forces a sign-out,
- NotFoundError asks the sync channel for a refresh (the cache is known stale),
- the sync channel is open exactly while the session is authenticated.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

from ..tasks.sync_channel import SyncChannel
from ..tasks.task_models import Identity, SessionState, Task, TaskDraft, TaskPriority, TaskStatus, UserProfile
from ..tasks.task_repository import TaskRepository, TaskSnapshot
from ..tasks.task_views import TaskCounts, ViewProjector
from .errors import AuthError, NotFoundError, PermissionDeniedError, TaskSyncError
from .policy import AccessPolicy
from .ports import PushSource, UserDirectoryApi
from .session import Session, validate_profile

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class MutationResult(Generic[T]):
    value: T
    refreshed: bool
    warning: str | None = None


class TaskBoard:
    def __init__(
            self,
            session: Session,
            repository: TaskRepository,
            users: UserDirectoryApi,
            policy: AccessPolicy,
            *,
            push: PushSource | None = None,
            projector: ViewProjector | None = None,
            debounce_seconds: float = 0.25,
            reconnect_initial_seconds: float = 1.0,
            reconnect_max_seconds: float = 60.0,
    ) -> None:
        self.session = session
        self.repository = repository
        self.policy = policy
        self.projector = projector or ViewProjector(repository.snapshot)
        self.channel = SyncChannel(
            self._background_refresh,
            push,
            debounce_seconds=debounce_seconds,
            reconnect_initial_seconds=reconnect_initial_seconds,
            reconnect_max_seconds=reconnect_max_seconds,
        )
        self._users = users

    @property
    def identity(self) -> Identity | None:
        return self.session.identity

    # ---- session lifecycle ----

    async def start(self) -> SessionState:
        """Restore the stored session; if it is valid, go live and load tasks."""
        state = await self.session.restore()
        if state == SessionState.AUTHENTICATED:
            try:
                await self._go_live()
            except AuthError as e:
                logger.info("Restored session ended during the first load: %s", e.message)
        return self.session.state

    async def login(self, email: str, password: str) -> Identity:
        if self.session.is_authenticated:
            await self.sign_out()
        try:
            identity = await self.session.login(email, password)
        except AuthError:
            # The credential may already be stored; a failed sign-in must not leave it behind.
            self.session.sign_out()
            raise
        await self._go_live()
        return identity

    async def sign_in(self, credential: str) -> Identity:
        if self.session.is_authenticated:
            await self.sign_out()
        try:
            identity = await self.session.sign_in(credential)
        except AuthError:
            self.session.sign_out()
            raise
        await self._go_live()
        return identity

    async def register(self, profile: UserProfile) -> Identity:
        return await self.session.register(profile)

    async def sign_out(self) -> None:
        await self.channel.close()
        self.repository.clear()
        self.session.sign_out()

    async def close(self) -> None:
        """Component teardown: stop live updates, keep the stored credential."""
        await self.channel.close()
        self.repository.clear()

    # ---- tasks ----

    async def refresh(self) -> TaskSnapshot:
        return await self._call(self.repository.list())

    async def create_task(self, draft: TaskDraft) -> MutationResult[Task]:
        task = await self._call(self.repository.create(draft))
        return await self._after_mutation(task, "Task created")

    async def update_status(self, task_id: str, status: TaskStatus | str) -> MutationResult[Task]:
        task = await self._call(self.repository.update_status(task_id, status))
        return await self._after_mutation(task, "Status updated")

    async def delete_task(self, task_id: str) -> MutationResult[None]:
        await self._call(self.repository.delete(task_id))
        return await self._after_mutation(None, "Task deleted")

    def counts(self) -> TaskCounts:
        return self.projector.counts()

    def overdue(self) -> list[Task]:
        return self.projector.overdue()

    def filtered(
            self,
            status: TaskStatus | str | None = None,
            priority: TaskPriority | str | None = None,
    ) -> list[Task]:
        return self.projector.filtered(status, priority)

    # ---- user directory ----

    async def list_users(self) -> list[Identity]:
        self._require_user_admin()
        return await self._call(self._users.list_users())

    async def find_user(self, email: str) -> Identity | None:
        wanted = (email or "").strip().lower()
        for user in await self.list_users():
            if user.email.lower() == wanted:
                return user
        return None

    async def create_user(self, profile: UserProfile) -> Identity:
        identity = self._require_user_admin()
        if profile.role not in self.policy.assignable_roles(identity.role):
            raise PermissionDeniedError(f"A {identity.role.value} cannot create {profile.role.value} accounts.")
        validate_profile(profile)
        user = await self._call(self._users.create_user(profile))
        logger.info("Created user %s (%s)", user.email, user.role.value)
        return user

    # ---- internals ----

    def _require_user_admin(self) -> Identity:
        identity = self.session.require_identity()
        if not self.policy.can_manage_users(identity.role):
            raise PermissionDeniedError("Only managers and admins can manage users.")
        return identity

    async def _go_live(self) -> None:
        self.channel.open()
        try:
            await self.refresh()
        except TaskSyncError as e:
            if self.session.is_authenticated:
                logger.warning("Initial task load failed: %s", e.message)
            else:
                raise

    async def _after_mutation(self, value: T, what: str) -> MutationResult[T]:
        try:
            await self._call(self.repository.list())
        except TaskSyncError as e:
            logger.warning("%s, but the refresh failed: %s", what, e.message)
            return MutationResult(value, refreshed=False, warning=f"{what}, but the list may be out of date ({e.message})")
        return MutationResult(value, refreshed=True)

    async def _background_refresh(self) -> None:
        await self._call(self.repository.list())

    async def _call(self, op: Awaitable[T]) -> T:
        try:
            return await op
        except AuthError:
            if self.session.is_authenticated:
                logger.warning("Credential rejected by the server; signing out")
                await self.sign_out()
            raise
        except NotFoundError:
            self.channel.request_refresh()
            raise