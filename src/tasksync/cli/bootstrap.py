# src/tasksync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the HTTP client, credential store and push source into a TaskBoard.
"""

from __future__ import annotations

import logging

from ..api.credential_store import FileCredentialStore
from ..api.http_client import HttpApiClient
from ..api.push_client import SocketIOPushSource
from ..config import get_settings
from ..core.board import TaskBoard
from ..core.policy import AccessPolicy, ManagerScope
from ..core.ports import CredentialStore, PushSource
from ..core.session import Session
from ..core.state import AppState
from ..tasks.task_repository import TaskRepository

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.credential_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    api = HttpApiClient(
        settings.api_base_url,
        timeout_seconds=settings.request_timeout_seconds,
        connect_timeout_seconds=settings.connect_timeout_seconds,
        update_method=settings.task_update_method,
    )
    store: CredentialStore = FileCredentialStore(settings.credential_path)
    policy = AccessPolicy(ManagerScope.parse(settings.manager_scope))
    session = Session(api, store, api)

    push: PushSource | None = None
    if settings.push_enabled:
        push = SocketIOPushSource(settings.push_url, credential=store.get)
    else:
        logger.info("Push disabled; the task list refreshes only on demand.")

    board = TaskBoard(
        session,
        TaskRepository(api, session, policy),
        api,
        policy,
        push=push,
        debounce_seconds=settings.refresh_debounce_seconds,
        reconnect_initial_seconds=settings.reconnect_initial_seconds,
        reconnect_max_seconds=settings.reconnect_max_seconds,
    )

    resources = (api,) if push is None else (push, api)
    return AppState(settings=settings, board=board, resources=resources)
