# src/tasksync/api/credential_store.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class FileCredentialStore:
    """
    Bearer credential persisted in one JSON file (default: <data_dir>/credential.json).

    The file holds a secret: it is written atomically, chmod 600, and must live
    under a gitignored local dir. A corrupt file reads as "no credential".
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable credential file %s: %r", self._path, e)
            return None
        token = data.get("token") if isinstance(data, dict) else None
        return str(token) if token else None

    def set(self, credential: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps({"token": credential}), "utf-8")
        os.replace(tmp, self._path)
        try:
            os.chmod(self._path, 0o600)
        except OSError:
            # Best-effort: not critical on Windows or restricted FS.
            pass
        logger.debug("Credential saved to %s", self._path)

    def clear(self) -> None:
        try:
            self._path.unlink()
            logger.debug("Credential removed from %s", self._path)
        except FileNotFoundError:
            pass


class MemoryCredentialStore:
    """Process-local slot; used when nothing should touch the disk."""

    def __init__(self, credential: str | None = None) -> None:
        self._credential = credential

    def get(self) -> str | None:
        return self._credential

    def set(self, credential: str) -> None:
        self._credential = credential

    def clear(self) -> None:
        self._credential = None
