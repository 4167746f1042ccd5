# tests/conftest.py

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from .fakes import ADMIN, EMPLOYEE, EMPLOYEE_2, MANAGER, World, make_task

TODAY = date(2026, 10, 19)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the composition root.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any .env file.
    """
    return SimpleNamespace(
        app_name="tasksync-test",
        log_level="DEBUG",
        api_base_url="http://api.test",
        push_url="http://api.test",
        push_enabled=False,
        request_timeout_seconds=2.0,
        connect_timeout_seconds=1.0,
        task_update_method="PATCH",
        data_dir=tmp_path,
        credential_path=tmp_path / "credential.json",
        refresh_debounce_seconds=0.0,
        reconnect_initial_seconds=0.05,
        reconnect_max_seconds=0.2,
        manager_scope="own",
    )


@pytest.fixture()
def seeded_tasks():
    """
    A small mixed board:
    t1 admin -> employee, t2 admin -> employee2, t3 manager -> employee,
    t4 manager unassigned, t5 admin -> manager (open, due three days ago).
    """
    return [
        make_task("t1", created_by=ADMIN.id, assigned_to=EMPLOYEE.id),
        make_task("t2", created_by=ADMIN.id, assigned_to=EMPLOYEE_2.id),
        make_task("t3", created_by=MANAGER.id, assigned_to=EMPLOYEE.id),
        make_task("t4", created_by=MANAGER.id),
        make_task(
            "t5",
            created_by=ADMIN.id,
            assigned_to=MANAGER.id,
            due_date=TODAY - timedelta(days=3),
        ),
    ]


@pytest.fixture()
def world(seeded_tasks) -> World:
    return World(seeded_tasks)


@pytest.fixture()
def empty_world() -> World:
    return World()
