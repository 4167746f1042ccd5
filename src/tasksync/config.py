# src/tasksync/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Components get settings injected; only the CLI calls get_settings().
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKSYNC"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Remote endpoints ----
    api_base_url: str
    push_url: str
    push_enabled: bool
    request_timeout_seconds: float
    connect_timeout_seconds: float
    task_update_method: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    credential_path: Path

    # ---- Sync tuning ----
    refresh_debounce_seconds: float
    reconnect_initial_seconds: float
    reconnect_max_seconds: float

    # ---- Access policy ----
    manager_scope: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tasksync").strip() or "tasksync"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_base_url = _env(_k("API_BASE_URL"), "http://localhost:5000").strip().rstrip("/")
        push_url = _env(_k("PUSH_URL"), "").strip() or api_base_url
        push_enabled = _env_bool(_k("PUSH_ENABLED"), True)
        request_timeout_seconds = _env_float(_k("REQUEST_TIMEOUT_SECONDS"), 10.0)
        connect_timeout_seconds = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        task_update_method = _env(_k("TASK_UPDATE_METHOD"), "PATCH").strip().upper() or "PATCH"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasksync"))
        credential_path = _env_path(_k("CREDENTIAL_PATH"), data_dir / "credential.json")

        refresh_debounce_seconds = _env_float(_k("REFRESH_DEBOUNCE_SECONDS"), 0.25)
        reconnect_initial_seconds = _env_float(_k("RECONNECT_INITIAL_SECONDS"), 1.0)
        reconnect_max_seconds = _env_float(_k("RECONNECT_MAX_SECONDS"), 60.0)

        manager_scope = _env(_k("MANAGER_SCOPE"), "own").strip().lower() or "own"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_base_url=api_base_url,
            push_url=push_url,
            push_enabled=push_enabled,
            request_timeout_seconds=request_timeout_seconds,
            connect_timeout_seconds=connect_timeout_seconds,
            task_update_method=task_update_method,
            data_dir=data_dir,
            credential_path=credential_path,
            refresh_debounce_seconds=refresh_debounce_seconds,
            reconnect_initial_seconds=reconnect_initial_seconds,
            reconnect_max_seconds=reconnect_max_seconds,
            manager_scope=manager_scope,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Load .env (without overriding the real environment) and build Settings once."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
