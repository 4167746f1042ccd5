# src/tasksync/api/http_client.py

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

import httpx

from ..core.errors import (
    AuthError,
    NotFoundError,
    PermissionDeniedError,
    RemoteError,
    TaskSyncError,
    ValidationError,
)
from ..core.ports import ScopeHint
from ..tasks.task_models import Identity, Role, Task, TaskDraft, TaskPriority, TaskStatus, UserProfile

logger = logging.getLogger(__name__)


class HttpApiClient:
    """
    REST adapter for the auth, task and user-directory endpoints.

    One httpx.AsyncClient is shared by all calls; the bearer credential is kept
    in its default headers (attach_credential / detach_credential), so the
    Session decides when requests are authorized.
    """

    def __init__(
            self,
            base_url: str,
            *,
            timeout_seconds: float = 10.0,
            connect_timeout_seconds: float = 5.0,
            update_method: str = "PATCH",
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        timeout = httpx.Timeout(
            timeout=max(0.5, float(timeout_seconds)),
            connect=max(0.5, float(connect_timeout_seconds)),
        )
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self._update_method = (update_method or "PATCH").upper()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---- credential sink ----

    def attach_credential(self, credential: str) -> None:
        self._client.headers["Authorization"] = f"Bearer {credential}"

    def detach_credential(self) -> None:
        self._client.headers.pop("Authorization", None)

    @property
    def has_credential(self) -> bool:
        return "Authorization" in self._client.headers

    # ---- auth ----

    async def verify(self, credential: str) -> Identity:
        try:
            data = await self._request(
                "GET",
                "/api/auth/verify",
                headers={"Authorization": f"Bearer {credential}"},
            )
        except PermissionDeniedError as e:
            raise AuthError(e.message, status_code=e.status_code) from e

        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(user, dict):
            raise RemoteError("The server did not return a user profile.")
        return parse_identity(user)

    async def login(self, email: str, password: str) -> str:
        data = await self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise RemoteError("The server did not return a token.")
        return str(token)

    async def register(self, profile: UserProfile) -> Identity:
        data = await self._request("POST", "/api/auth/register", json=profile_to_json(profile))
        return _identity_from_response(data, profile)

    # ---- tasks ----

    async def list_tasks(self, scope: ScopeHint) -> list[Task]:
        data = await self._request("GET", "/api/tasks", params=dict(scope))
        if isinstance(data, dict):
            data = data.get("tasks")
        if not isinstance(data, list):
            raise RemoteError("Unexpected task list format from the server.")

        tasks: list[Task] = []
        for raw in data:
            task = parse_task(raw)
            if task is None:
                logger.warning("Skipping malformed task entry: %r", raw)
                continue
            tasks.append(task)
        return tasks

    async def create_task(self, draft: TaskDraft) -> Task:
        data = await self._request("POST", "/api/tasks", json=draft_to_json(draft))
        return _task_from_response(data)

    async def update_task(self, task_id: str, *, status: TaskStatus) -> Task:
        data = await self._request(self._update_method, f"/api/tasks/{task_id}", json={"status": status.value})
        return _task_from_response(data)

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}")

    # ---- user directory ----

    async def list_users(self) -> list[Identity]:
        data = await self._request("GET", "/api/users")
        if isinstance(data, dict):
            data = data.get("users")
        if not isinstance(data, list):
            raise RemoteError("Unexpected user list format from the server.")
        return [parse_identity(u) for u in data if isinstance(u, dict)]

    async def create_user(self, profile: UserProfile) -> Identity:
        data = await self._request("POST", "/api/users", json=profile_to_json(profile))
        return _identity_from_response(data, profile)

    # ---- transport ----

    async def _request(
            self,
            method: str,
            path: str,
            *,
            json: Any = None,
            params: dict[str, str] | None = None,
            headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, json=json, params=params or None, headers=headers)
        except httpx.TimeoutException as e:
            raise RemoteError("The server did not answer in time.") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"Could not reach the server ({e.__class__.__name__}).") from e

        logger.debug("%s %s -> %s", method, path, resp.status_code)

        if resp.is_error:
            raise error_from_response(resp)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError("The server sent a response that is not JSON.") from e


def error_from_response(resp: httpx.Response) -> TaskSyncError:
    code = resp.status_code
    message = _server_message(resp)

    if code == 401:
        return AuthError(message, status_code=code)
    if code == 403:
        return PermissionDeniedError(message, status_code=code)
    if code == 404:
        return NotFoundError(message, status_code=code)
    if code in (400, 409, 422):
        return ValidationError(message, status_code=code)
    return RemoteError(message or f"Server error (HTTP {code}).", status_code=code)


def _server_message(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return None


# ---- payload mapping ----


def _ref_id(raw: Any) -> str | None:
    """assignedTo / createdBy come either as a plain id or as a populated user object."""
    if raw is None:
        return None
    if isinstance(raw, dict):
        raw = raw.get("_id") or raw.get("id")
        if raw is None:
            return None
    s = str(raw).strip()
    return s or None


def _parse_date(raw: Any) -> date | None:
    if not raw or not isinstance(raw, str):
        return None
    try:
        return date.fromisoformat(raw.strip()[:10])
    except ValueError:
        return None


def _parse_datetime(raw: Any) -> datetime | None:
    if not raw or not isinstance(raw, str):
        return None
    try:
        dt = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _enum_or(enum_cls, raw: Any, default):
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def parse_task(raw: Any) -> Task | None:
    if not isinstance(raw, dict):
        return None
    task_id = _ref_id(raw.get("_id") or raw.get("id"))
    if not task_id:
        return None

    return Task(
        id=task_id,
        title=str(raw.get("title") or ""),
        description=str(raw.get("description") or ""),
        priority=_enum_or(TaskPriority, raw.get("priority"), TaskPriority.MEDIUM),
        status=_enum_or(TaskStatus, raw.get("status"), TaskStatus.OPEN),
        created_by=_ref_id(raw.get("createdBy")) or "",
        created_at=_parse_datetime(raw.get("createdAt")),
        due_date=_parse_date(raw.get("dueDate")),
        assigned_to=_ref_id(raw.get("assignedTo")),
    )


def parse_identity(raw: dict[str, Any]) -> Identity:
    return Identity(
        id=_ref_id(raw.get("_id") or raw.get("id")) or "",
        display_name=str(raw.get("fullName") or raw.get("name") or raw.get("email") or ""),
        email=str(raw.get("email") or ""),
        role=Role.parse(raw.get("role")),
    )


def draft_to_json(draft: TaskDraft) -> dict[str, Any]:
    body: dict[str, Any] = {
        "title": draft.title,
        "description": draft.description,
        "priority": str(draft.priority),
        "status": str(draft.status),
    }
    if draft.due_date is not None:
        body["dueDate"] = draft.due_date.isoformat()
    if draft.assigned_to is not None:
        body["assignedTo"] = draft.assigned_to.id
    return body


def profile_to_json(profile: UserProfile) -> dict[str, Any]:
    body: dict[str, Any] = {
        "fullName": profile.full_name,
        "email": profile.email,
        "password": profile.password,
        "role": profile.role.value,
    }
    if profile.phone:
        body["phone"] = profile.phone
    return body


def _task_from_response(data: Any) -> Task:
    if isinstance(data, dict) and isinstance(data.get("task"), dict):
        data = data["task"]
    task = parse_task(data)
    if task is None:
        raise RemoteError("The server did not return the saved task.")
    return task


def _identity_from_response(data: Any, profile: UserProfile) -> Identity:
    if isinstance(data, dict) and isinstance(data.get("user"), dict):
        return parse_identity(data["user"])
    if isinstance(data, dict) and (data.get("_id") or data.get("id")):
        return parse_identity(data)
    # Some servers only acknowledge registration; echo back what was sent.
    return Identity(id="", display_name=profile.full_name, email=profile.email, role=profile.role)
