# src/tasksync/tasks/task_views.py

"""Dashboard aggregates and list filters over a task snapshot. Pure: no I/O, no state."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime

from .task_models import Task, TaskPriority, TaskStatus

Clock = Callable[[], datetime]


@dataclass(slots=True, frozen=True)
class TaskCounts:
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    overdue: int = 0


def is_overdue(task: Task, today: date) -> bool:
    if task.due_date is None or task.status.is_finished:
        return False
    return task.due_date < today


def count_tasks(tasks: Iterable[Task], today: date) -> TaskCounts:
    total = completed = in_progress = overdue = 0
    for task in tasks:
        total += 1
        if task.status == TaskStatus.COMPLETED:
            completed += 1
        elif task.status == TaskStatus.IN_PROGRESS:
            in_progress += 1
        if is_overdue(task, today):
            overdue += 1
    return TaskCounts(total=total, completed=completed, in_progress=in_progress, overdue=overdue)


def filter_tasks(
    tasks: Iterable[Task],
    status: TaskStatus | str | None = None,
    priority: TaskPriority | str | None = None,
) -> list[Task]:
    """Empty/None filters do not constrain; both filters must match."""
    out: list[Task] = []
    for task in tasks:
        if status and task.status != status:
            continue
        if priority and task.priority != priority:
            continue
        out.append(task)
    return out


class ViewProjector:
    """
    Re-derives presentation data from the repository snapshot on every call.

    `snapshot` is a zero-arg callable (usually TaskRepository.snapshot) so the
    projector never holds on to a stale collection. `clock` is injectable for tests.
    """

    def __init__(self, snapshot: Callable[[], Mapping[str, Task]], clock: Clock | None = None) -> None:
        self._snapshot = snapshot
        self._clock = clock or datetime.now

    def _tasks(self) -> list[Task]:
        tasks = list(self._snapshot().values())
        tasks.sort(key=lambda t: (t.created_at is None, t.created_at or datetime.min, t.id))
        return tasks

    def counts(self) -> TaskCounts:
        return count_tasks(self._tasks(), self._clock().date())

    def overdue(self) -> list[Task]:
        today = self._clock().date()
        return [t for t in self._tasks() if is_overdue(t, today)]

    def filtered(
        self,
        status: TaskStatus | str | None = None,
        priority: TaskPriority | str | None = None,
    ) -> list[Task]:
        return filter_tasks(self._tasks(), status=status, priority=priority)
