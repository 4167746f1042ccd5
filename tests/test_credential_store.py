# tests/test_credential_store.py

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from tasksync.api.credential_store import FileCredentialStore, MemoryCredentialStore


def test_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "credential.json"
    store = FileCredentialStore(path)
    assert store.get() is None

    store.set("tok-1")
    assert store.get() == "tok-1"
    assert not path.with_suffix(".tmp").exists()

    # A second instance reads what the first one wrote.
    assert FileCredentialStore(path).get() == "tok-1"


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_file_store_is_private(tmp_path: Path) -> None:
    store = FileCredentialStore(tmp_path / "credential.json")
    store.set("tok")
    mode = stat.S_IMODE(store.path.stat().st_mode)
    assert mode == 0o600


def test_corrupt_file_reads_as_no_credential(tmp_path: Path) -> None:
    path = tmp_path / "credential.json"
    path.write_text("{not json", "utf-8")
    assert FileCredentialStore(path).get() is None

    path.write_text('["tok"]', "utf-8")
    assert FileCredentialStore(path).get() is None


def test_clear_is_idempotent(tmp_path: Path) -> None:
    store = FileCredentialStore(tmp_path / "credential.json")
    store.clear()

    store.set("tok")
    store.clear()
    store.clear()
    assert store.get() is None
    assert not store.path.exists()


def test_memory_store() -> None:
    store = MemoryCredentialStore("seed")
    assert store.get() == "seed"
    store.set("other")
    assert store.get() == "other"
    store.clear()
    assert store.get() is None
