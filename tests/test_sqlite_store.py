from __future__ import annotations

import sqlite3

import pytest

from adapters.sqlite_store import SQLiteSubscriptionStore
from core.errors import StorageError


def test_not_a_database_raises_storage_error(tmp_path) -> None:
    path = tmp_path / "subscriptions.db"
    path.write_bytes(b"this is not an sqlite file, just some bytes" * 10)

    with pytest.raises(StorageError):
        SQLiteSubscriptionStore(str(path)).initialize()


def test_corrupted_row_raises_storage_error(tmp_path) -> None:
    path = tmp_path / "subscriptions.db"
    store = SQLiteSubscriptionStore(str(path))
    store.initialize()
    store.subscribe(1, "octocat")

    with sqlite3.connect(path) as conn:
        conn.execute("UPDATE subscriptions SET last_check_time = 'yesterday'")
    conn.close()

    with pytest.raises(StorageError):
        SQLiteSubscriptionStore(str(path)).initialize()


def test_initialize_is_idempotent(tmp_path, clock) -> None:
    path = tmp_path / "subscriptions.db"
    store = SQLiteSubscriptionStore(str(path), clock=clock)
    store.initialize()
    store.subscribe(1, "octocat")
    store.touch_global_check()
    last_check = store.get_last_global_check()

    store.initialize()

    assert len(store.list_all()) == 1
    assert store.get_last_global_check() == last_check
