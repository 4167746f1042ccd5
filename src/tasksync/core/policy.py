# src/tasksync/core/policy.py

"""
Role-based access decisions.

The whole role table lives in ROLE_RULES; every other function only reads it.
This is the client-side mirror of the server's rules: it shapes the scope hint
sent with listings and decides which mutations the client attempts at all.
The server still re-validates everything.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from ..tasks.task_models import Role, Task

TaskPredicate = Callable[[Task], bool]


class ViewScope(StrEnum):
    ASSIGNED = "assigned"  # assigned_to == self
    MANAGER = "manager"  # see ManagerScope
    ALL = "all"


class ManagerScope(StrEnum):
    """What "manager view" means; chosen per deployment (TASKSYNC_MANAGER_SCOPE)."""

    OWN = "own"  # created by or assigned to the manager
    ALL = "all"

    @classmethod
    def parse(cls, raw: str | None) -> ManagerScope:
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.OWN


@dataclass(slots=True, frozen=True)
class RoleRule:
    view_scope: ViewScope
    can_assign: bool
    can_delete_own: bool
    can_delete_any: bool
    can_manage_users: bool
    assignable_roles: frozenset[Role]


ROLE_RULES: dict[Role, RoleRule] = {
    Role.EMPLOYEE: RoleRule(
        view_scope=ViewScope.ASSIGNED,
        can_assign=False,
        can_delete_own=True,
        can_delete_any=False,
        can_manage_users=False,
        assignable_roles=frozenset(),
    ),
    Role.MANAGER: RoleRule(
        view_scope=ViewScope.MANAGER,
        can_assign=True,
        can_delete_own=True,
        can_delete_any=False,
        can_manage_users=True,
        assignable_roles=frozenset({Role.EMPLOYEE, Role.MANAGER}),
    ),
    Role.ADMIN: RoleRule(
        view_scope=ViewScope.ALL,
        can_assign=True,
        can_delete_own=True,
        can_delete_any=True,
        can_manage_users=True,
        assignable_roles=frozenset({Role.EMPLOYEE, Role.MANAGER, Role.ADMIN}),
    ),
}

# Tasks may only ever be assigned to non-Admin identities.
ASSIGNEE_ROLES: frozenset[Role] = frozenset({Role.EMPLOYEE, Role.MANAGER})


class AccessPolicy:
    """Pure decisions over (role, action). Holds only the manager-scope product choice."""

    def __init__(self, manager_scope: ManagerScope = ManagerScope.OWN) -> None:
        self.manager_scope = manager_scope

    @staticmethod
    def rule(role: Role) -> RoleRule:
        return ROLE_RULES[role]

    def view_scope_filter(self, role: Role, self_id: str) -> TaskPredicate:
        scope = ROLE_RULES[role].view_scope

        if scope == ViewScope.ASSIGNED:
            return lambda task: task.assigned_to == self_id

        if scope == ViewScope.MANAGER and self.manager_scope == ManagerScope.OWN:
            return lambda task: task.created_by == self_id or task.assigned_to == self_id

        return lambda task: True

    def scope_hint(self, role: Role, self_id: str) -> dict[str, str]:
        """Query parameters sent with a listing request."""
        scope = ROLE_RULES[role].view_scope
        if scope == ViewScope.ASSIGNED:
            return {"assignedTo": self_id}
        if scope == ViewScope.MANAGER:
            return {"manager": "true"}
        return {}

    @staticmethod
    def can_assign(role: Role) -> bool:
        return ROLE_RULES[role].can_assign

    @staticmethod
    def can_delete(role: Role, task: Task, self_id: str) -> bool:
        rule = ROLE_RULES[role]
        if rule.can_delete_any:
            return True
        return rule.can_delete_own and task.created_by == self_id

    @staticmethod
    def can_manage_users(role: Role) -> bool:
        return ROLE_RULES[role].can_manage_users

    @staticmethod
    def assignable_roles(role: Role) -> frozenset[Role]:
        return ROLE_RULES[role].assignable_roles

    def assignee_roles(self, role: Role) -> frozenset[Role]:
        """Roles a task created by `role` may be assigned to."""
        if not self.can_assign(role):
            return frozenset()
        return self.assignable_roles(role) & ASSIGNEE_ROLES
