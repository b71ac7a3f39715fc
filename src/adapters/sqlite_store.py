"""SQLite subscription store.

Implements the core SubscriptionStorePort using a simple SQLite database.
Every call runs inside one committed transaction, so a successful return
means the change is on disk.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from adapters.timestamps import format_timestamp, parse_timestamp, utcnow
from core.errors import AlreadySubscribedError, StorageError
from core.models import Subscription

LOGGER = logging.getLogger(__name__)

_GLOBAL_CHECK_KEY = "last_global_check"


def _repo_key(repo: Optional[str]) -> str:
    # NULLs never collide in a UNIQUE index, so the constraint uses '' instead.
    return repo or ""


def _row_to_subscription(row: sqlite3.Row) -> Subscription:
    return Subscription(
        id=row["id"],
        user_id=int(row["user_id"]),
        username=row["username"],
        repo=row["repo"],
        last_commit_sha=row["last_commit_sha"],
        last_check_time=parse_timestamp(row["last_check_time"]),
        is_active=bool(row["is_active"]),
    )


class SQLiteSubscriptionStore:
    """Thin SQLite wrapper that satisfies the SubscriptionStorePort contract."""

    def __init__(self, db_path: str, clock: Callable[[], datetime] = utcnow) -> None:
        self._db_path = db_path
        self._clock = clock

    @property
    def path(self) -> str:
        return self._db_path

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open subscription database {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            LOGGER.error("SQLite error on %s: %s", self._db_path, exc)
            raise StorageError(f"Subscription database error in {self._db_path}: {exc}") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - subscriptions: one row per (user_id, username, repo) triple, never deleted
        - meta: process-wide bookkeeping such as last_global_check
        """

        with self._transaction() as conn:
            # subscriptions keeps dedup state alongside the soft-delete flag so
            # an unsubscribe/resubscribe cycle keeps last_commit_sha.
            # Fields:
            # - id: opaque identifier generated at creation (PRIMARY KEY)
            # - user_id: Telegram chat id of the subscriber
            # - username: watched GitHub account
            # - repo: watched repository, NULL for the whole account
            # - repo_key: repo or '' for the uniqueness constraint
            # - last_commit_sha: high-water mark, NULL until the first check
            # - last_check_time: most recent check attempt
            # - is_active: 0 after unsubscribe
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id TEXT PRIMARY KEY,
                    user_id INTEGER NOT NULL,
                    username TEXT NOT NULL,
                    repo TEXT,
                    repo_key TEXT NOT NULL,
                    last_commit_sha TEXT,
                    last_check_time TEXT NOT NULL,
                    is_active INTEGER NOT NULL,
                    UNIQUE (user_id, username, repo_key)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "INSERT OR IGNORE INTO meta (key, value) VALUES (?, ?)",
                (_GLOBAL_CHECK_KEY, format_timestamp(self._clock())),
            )
            count = conn.execute("SELECT COUNT(*) FROM subscriptions").fetchone()[0]
            try:
                # Parse every row once so a corrupted record fails startup.
                rows = conn.execute("SELECT * FROM subscriptions").fetchall()
                for row in rows:
                    _row_to_subscription(row)
                parse_timestamp(self._read_meta(conn, _GLOBAL_CHECK_KEY))
            except (TypeError, ValueError) as exc:
                raise StorageError(f"Malformed subscription database {self._db_path}: {exc}") from exc
        LOGGER.info("Loaded %s subscriptions from %s", count, self._db_path)

    @staticmethod
    def _read_meta(conn: sqlite3.Connection, key: str) -> str:
        row = conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise StorageError(f"Missing meta key: {key}")
        return row["value"]

    def _select(self, where: str = "", params: tuple = ()) -> list[Subscription]:
        query = "SELECT * FROM subscriptions"
        if where:
            query = f"{query} WHERE {where}"
        with self._transaction() as conn:
            rows = conn.execute(f"{query} ORDER BY rowid", params).fetchall()
        return [_row_to_subscription(row) for row in rows]

    def subscribe(self, user_id: int, username: str, repo: Optional[str] = None) -> Subscription:
        repo = repo or None
        now = format_timestamp(self._clock())
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? AND username = ? AND repo_key = ?",
                (user_id, username, _repo_key(repo)),
            ).fetchone()

            if row is not None:
                existing = _row_to_subscription(row)
                if existing.is_active:
                    raise AlreadySubscribedError(user_id, existing.target)
                conn.execute(
                    "UPDATE subscriptions SET is_active = 1, last_check_time = ? WHERE id = ?",
                    (now, existing.id),
                )
                subscription_id = existing.id
            else:
                subscription_id = uuid.uuid4().hex
                conn.execute(
                    """
                    INSERT INTO subscriptions (
                        id, user_id, username, repo, repo_key,
                        last_commit_sha, last_check_time, is_active
                    ) VALUES (?, ?, ?, ?, ?, NULL, ?, 1)
                    """,
                    (subscription_id, user_id, username, repo, _repo_key(repo), now),
                )

            row = conn.execute("SELECT * FROM subscriptions WHERE id = ?", (subscription_id,)).fetchone()
        return _row_to_subscription(row)

    def unsubscribe(self, user_id: int, username: str, repo: Optional[str] = None) -> bool:
        repo = repo or None
        with self._transaction() as conn:
            cur = conn.execute(
                """
                UPDATE subscriptions SET is_active = 0
                WHERE user_id = ? AND username = ? AND repo_key = ? AND is_active = 1
                """,
                (user_id, username, _repo_key(repo)),
            )
            return cur.rowcount > 0

    def list_for_user(self, user_id: int) -> list[Subscription]:
        return self._select("user_id = ? AND is_active = 1", (user_id,))

    def list_active(self) -> list[Subscription]:
        return self._select("is_active = 1")

    def list_all(self) -> list[Subscription]:
        return self._select()

    def record_check_result(self, subscription_id: str, new_last_commit_sha: Optional[str] = None) -> None:
        now = format_timestamp(self._clock())
        with self._transaction() as conn:
            if new_last_commit_sha is None:
                cur = conn.execute(
                    "UPDATE subscriptions SET last_check_time = ? WHERE id = ?",
                    (now, subscription_id),
                )
            else:
                cur = conn.execute(
                    "UPDATE subscriptions SET last_check_time = ?, last_commit_sha = ? WHERE id = ?",
                    (now, new_last_commit_sha, subscription_id),
                )
            if cur.rowcount == 0:
                raise StorageError(f"Unknown subscription id: {subscription_id}")

    def touch_global_check(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                (_GLOBAL_CHECK_KEY, format_timestamp(self._clock())),
            )

    def get_last_global_check(self) -> datetime:
        with self._transaction() as conn:
            raw = self._read_meta(conn, _GLOBAL_CHECK_KEY)
        return parse_timestamp(raw)
