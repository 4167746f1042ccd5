# tests/test_task_repository.py

from __future__ import annotations

import asyncio

import pytest

from tasksync.core.errors import AuthError, NotFoundError, PermissionDeniedError, ValidationError
from tasksync.tasks.task_models import TaskDraft, TaskPriority, TaskStatus
from tasksync.tasks.task_repository import TaskRepository

from .fakes import ADMIN, EMPLOYEE, EMPLOYEE_2, MANAGER, World, make_task, wait_for


class ScriptedListing:
    """TaskApi whose list_tasks() responses are released by the test in any order."""

    def __init__(self) -> None:
        self.pending: list[asyncio.Future] = []

    async def list_tasks(self, scope):
        fut = asyncio.get_running_loop().create_future()
        self.pending.append(fut)
        return await fut


@pytest.mark.asyncio
async def test_employee_with_no_tasks_gets_empty_listing(empty_world: World) -> None:
    session = await empty_world.signed_in_session(EMPLOYEE)
    repo = empty_world.repository(session)

    snapshot = await repo.list()

    assert dict(snapshot) == {}
    assert empty_world.server.scopes == [{"assignedTo": EMPLOYEE.id}]


@pytest.mark.asyncio
async def test_list_replaces_cache_with_scoped_tasks(world: World) -> None:
    session = await world.signed_in_session(EMPLOYEE)
    repo = world.repository(session)

    snapshot = await repo.list()
    assert set(snapshot) == {"t1", "t3"}

    del world.server.tasks["t1"]
    snapshot = await repo.list()
    assert set(snapshot) == {"t3"}
    assert repo.get("t1") is None


@pytest.mark.asyncio
async def test_snapshot_is_read_only(world: World) -> None:
    session = await world.signed_in_session(ADMIN)
    repo = world.repository(session)
    snapshot = await repo.list()

    with pytest.raises(TypeError):
        snapshot["x"] = make_task("x")  # type: ignore[index]


@pytest.mark.asyncio
async def test_list_requires_a_session(world: World) -> None:
    session = world.session()
    await session.restore()
    repo = world.repository(session)

    with pytest.raises(AuthError):
        await repo.list()
    assert world.server.list_calls == 0


@pytest.mark.asyncio
async def test_manager_listing_uses_manager_hint(world: World) -> None:
    session = await world.signed_in_session(MANAGER)
    repo = world.repository(session)

    snapshot = await repo.list()

    assert world.server.scopes == [{"manager": "true"}]
    assert set(snapshot) == {"t3", "t4", "t5"}


@pytest.mark.asyncio
async def test_tasks_outside_view_scope_are_dropped(world: World) -> None:
    # Server ignores the hint and leaks another employee's task.
    world.server.extra_listing = [make_task("leak", assigned_to=EMPLOYEE_2.id)]
    session = await world.signed_in_session(EMPLOYEE)
    repo = world.repository(session)

    snapshot = await repo.list()

    assert "leak" not in snapshot
    assert set(snapshot) == {"t1", "t3"}


@pytest.mark.asyncio
async def test_admin_creates_task_for_manager_defaults_to_open(world: World) -> None:
    session = await world.signed_in_session(ADMIN)
    repo = world.repository(session)

    created = await repo.create(TaskDraft(title="Quarterly report", priority="high", assigned_to=MANAGER))
    snapshot = await repo.list()

    task = snapshot[created.id]
    assert task.status == TaskStatus.OPEN
    assert task.priority == TaskPriority.HIGH
    assert task.assigned_to == MANAGER.id
    assert task.due_date is None
    assert task.created_by == ADMIN.id


@pytest.mark.asyncio
async def test_create_does_not_touch_the_cache(world: World) -> None:
    session = await world.signed_in_session(ADMIN)
    repo = world.repository(session)
    await repo.list()
    before = dict(repo.snapshot())

    created = await repo.create(TaskDraft(title="Pending"))

    assert dict(repo.snapshot()) == before
    assert repo.get(created.id) is None


@pytest.mark.asyncio
async def test_employee_draft_without_assignee_is_assigned_to_self(empty_world: World) -> None:
    session = await empty_world.signed_in_session(EMPLOYEE)
    repo = empty_world.repository(session)

    created = await repo.create(TaskDraft(title="  Fix the printer  "))
    snapshot = await repo.list()

    assert created.assigned_to == EMPLOYEE.id
    assert snapshot[created.id].title == "Fix the printer"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "who, assignee",
    [
        (EMPLOYEE, EMPLOYEE_2),
        (MANAGER, ADMIN),
        (ADMIN, ADMIN),
    ],
)
async def test_forbidden_assignments(empty_world: World, who, assignee) -> None:
    session = await empty_world.signed_in_session(who)
    repo = empty_world.repository(session)

    with pytest.raises(ValidationError):
        await repo.create(TaskDraft(title="Nope", assigned_to=assignee))
    assert empty_world.server.mutations == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "draft",
    [
        TaskDraft(title="   "),
        TaskDraft(title="x", priority="urgent"),
        TaskDraft(title="x", status="done"),
    ],
)
async def test_invalid_drafts(empty_world: World, draft: TaskDraft) -> None:
    session = await empty_world.signed_in_session(ADMIN)
    repo = empty_world.repository(session)

    with pytest.raises(ValidationError):
        await repo.create(draft)
    assert empty_world.server.mutations == []


@pytest.mark.asyncio
async def test_update_status_out_of_scope_is_not_found(world: World) -> None:
    session = await world.signed_in_session(EMPLOYEE)
    repo = world.repository(session)
    await repo.list()
    before = dict(repo.snapshot())

    with pytest.raises(NotFoundError):
        await repo.update_status("t2", TaskStatus.COMPLETED)

    assert dict(repo.snapshot()) == before
    assert world.server.mutations == []


@pytest.mark.asyncio
async def test_update_status_rejects_unknown_status(world: World) -> None:
    session = await world.signed_in_session(EMPLOYEE)
    repo = world.repository(session)
    await repo.list()

    with pytest.raises(ValidationError):
        await repo.update_status("t1", "finished")


@pytest.mark.asyncio
async def test_update_status_accepts_plain_string(world: World) -> None:
    session = await world.signed_in_session(EMPLOYEE)
    repo = world.repository(session)
    await repo.list()

    task = await repo.update_status("t1", "in-progress")

    assert task.status == TaskStatus.IN_PROGRESS
    # Cache still holds the old listing until the next list().
    assert repo.get("t1").status == TaskStatus.OPEN


@pytest.mark.asyncio
async def test_delete_permissions(world: World) -> None:
    emp_session = await world.signed_in_session(EMPLOYEE)
    repo = world.repository(emp_session)
    await repo.list()
    with pytest.raises(PermissionDeniedError):
        await repo.delete("t1")

    mgr_session = await world.signed_in_session(MANAGER)
    repo = world.repository(mgr_session)
    await repo.list()
    with pytest.raises(PermissionDeniedError):
        await repo.delete("t5")
    await repo.delete("t3")

    assert world.server.mutations == [("delete", "t3")]


@pytest.mark.asyncio
async def test_delete_unknown_task(world: World) -> None:
    session = await world.signed_in_session(ADMIN)
    repo = world.repository(session)
    await repo.list()

    with pytest.raises(NotFoundError):
        await repo.delete("missing")


@pytest.mark.asyncio
async def test_sign_out_during_listing_discards_response(world: World) -> None:
    session = await world.signed_in_session(ADMIN)
    repo = world.repository(session)
    world.server.gate = asyncio.Event()

    pending = asyncio.create_task(repo.list())
    await world.server.list_started.wait()

    repo.clear()
    session.sign_out()
    world.server.gate.set()
    snapshot = await pending

    assert dict(snapshot) == {}
    assert dict(repo.snapshot()) == {}


@pytest.mark.asyncio
async def test_older_listing_never_overwrites_newer_one(world: World) -> None:
    session = await world.signed_in_session(ADMIN)
    api = ScriptedListing()
    repo = TaskRepository(api, session, world.policy)

    first = asyncio.create_task(repo.list())
    second = asyncio.create_task(repo.list())
    await wait_for(lambda: len(api.pending) == 2)

    api.pending[1].set_result([make_task("new")])
    await second
    api.pending[0].set_result([make_task("old")])
    await first

    assert set(repo.snapshot()) == {"new"}


@pytest.mark.asyncio
async def test_listeners_see_every_replacement(world: World) -> None:
    session = await world.signed_in_session(ADMIN)
    repo = world.repository(session)
    seen: list[set[str]] = []
    repo.add_listener(lambda snap: seen.append(set(snap)))

    await repo.list()
    repo.clear()

    assert seen == [{"t1", "t2", "t3", "t4", "t5"}, set()]
