# src/tasksync/tasks/task_repository.py

"""
Scoped, read-through task cache.

The cache is only ever replaced as a whole by list(); mutators never touch it.
After a successful create/update_status/delete the caller issues exactly one
list() (see core.board), so a failed refresh never rolls back a mutation.

Guards on list():
- a response that arrives after clear() (sign-out) is dropped,
- a response to a request issued before the last applied one is dropped,
- tasks outside the client-side view scope are filtered out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from types import MappingProxyType

from ..core.errors import NotFoundError, PermissionDeniedError, ValidationError
from ..core.policy import ASSIGNEE_ROLES, AccessPolicy
from ..core.ports import TaskApi
from ..core.session import Session
from .task_models import Identity, Task, TaskDraft, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

TaskSnapshot = Mapping[str, Task]
CacheListener = Callable[[TaskSnapshot], None]


class TaskRepository:
    def __init__(self, api: TaskApi, session: Session, policy: AccessPolicy) -> None:
        self._api = api
        self._session = session
        self._policy = policy

        self._cache: dict[str, Task] = {}
        self._epoch = 0  # bumped by clear()
        self._issued = 0  # sequence of list() requests
        self._applied = 0  # sequence of the listing currently in the cache
        self._listeners: list[CacheListener] = []

    # ---- cache reads ----

    def snapshot(self) -> TaskSnapshot:
        # The dict is never mutated after it is installed, so a read-only view is a stable snapshot.
        return MappingProxyType(self._cache)

    def get(self, task_id: str) -> Task | None:
        return self._cache.get(task_id)

    def add_listener(self, listener: CacheListener) -> None:
        self._listeners.append(listener)

    # ---- remote operations ----

    async def list(self) -> TaskSnapshot:
        """Fetch the scoped task set and replace the cache with it."""
        identity = self._session.require_identity()
        epoch = self._epoch
        self._issued += 1
        seq = self._issued

        scope = self._policy.scope_hint(identity.role, identity.id)
        tasks = await self._api.list_tasks(scope)

        if epoch != self._epoch or self._session.identity != identity:
            logger.info("Discarding task listing #%d: session changed while it was in flight", seq)
            return self.snapshot()

        if seq < self._applied:
            logger.debug("Discarding task listing #%d: #%d already applied", seq, self._applied)
            return self.snapshot()

        visible = self._policy.view_scope_filter(identity.role, identity.id)
        fresh: dict[str, Task] = {}
        hidden = 0
        for task in tasks:
            if visible(task):
                fresh[task.id] = task
            else:
                hidden += 1

        if hidden:
            logger.warning(
                "Server returned %d task(s) outside the %s view scope; ignoring them",
                hidden,
                identity.role.value,
            )

        self._cache = fresh
        self._applied = seq
        logger.debug("Task cache replaced by listing #%d (%d tasks)", seq, len(fresh))
        self._notify()
        return self.snapshot()

    async def create(self, draft: TaskDraft) -> Task:
        identity = self._session.require_identity()
        clean = self._validate_draft(draft, identity)
        task = await self._api.create_task(clean)
        logger.info("Created task %s (%r)", task.id, task.title)
        return task

    async def update_status(self, task_id: str, new_status: TaskStatus | str) -> Task:
        self._session.require_identity()
        status = _parse_enum(TaskStatus, new_status, "status")

        if task_id not in self._cache:
            raise NotFoundError(f"Task {task_id} is not in your current view.")

        task = await self._api.update_task(task_id, status=status)
        logger.info("Task %s -> %s", task_id, status.value)
        return task

    async def delete(self, task_id: str) -> None:
        identity = self._session.require_identity()

        task = self._cache.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} is not in your current view.")
        if not self._policy.can_delete(identity.role, task, identity.id):
            raise PermissionDeniedError("You can only delete tasks you created.")

        await self._api.delete_task(task_id)
        logger.info("Deleted task %s", task_id)

    def clear(self) -> None:
        """Drop the cache and invalidate any listing still in flight."""
        self._epoch += 1
        self._cache = {}
        self._notify()

    # ---- helpers ----

    def _validate_draft(self, draft: TaskDraft, identity: Identity) -> TaskDraft:
        title = (draft.title or "").strip()
        if not title:
            raise ValidationError("Title is required.")

        priority = _parse_enum(TaskPriority, draft.priority, "priority")
        status = _parse_enum(TaskStatus, draft.status, "status")

        assignee = draft.assigned_to
        if assignee is None and not self._policy.can_assign(identity.role):
            # Employees only see tasks assigned to them.
            assignee = identity

        if assignee is not None:
            if assignee.id == identity.id:
                allowed = assignee.role in ASSIGNEE_ROLES
            else:
                allowed = assignee.role in self._policy.assignee_roles(identity.role)
            if not allowed:
                raise ValidationError(
                    f"A {identity.role.value} cannot assign tasks to {assignee.display_name or assignee.id} "
                    f"({assignee.role.value})."
                )

        return replace(
            draft,
            title=title,
            description=(draft.description or "").strip(),
            priority=priority,
            status=status,
            assigned_to=assignee,
        )

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Task cache listener failed")


def _parse_enum(enum_cls, raw, field: str):
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field} {raw!r}; expected one of: {allowed}.") from None
