"""JSON file subscription store.

Implements the core SubscriptionStorePort on top of a single JSON document:

    {"subscriptions": [...], "lastGlobalCheck": "<iso timestamp>"}

The whole document lives in memory and is rewritten atomically after every
mutation. If the write fails the in-memory copy is rolled back, so memory and
disk never disagree once a call has returned.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from adapters.timestamps import format_timestamp, parse_timestamp, utcnow
from core.errors import AlreadySubscribedError, StorageError
from core.models import Subscription

LOGGER = logging.getLogger(__name__)


def _subscription_to_dict(subscription: Subscription) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": subscription.id,
        "userId": subscription.user_id,
        "username": subscription.username,
        "lastCheckTime": format_timestamp(subscription.last_check_time),
        "isActive": subscription.is_active,
    }
    # Optional fields are omitted rather than written as null.
    if subscription.repo is not None:
        payload["repo"] = subscription.repo
    if subscription.last_commit_sha is not None:
        payload["lastCommitSha"] = subscription.last_commit_sha
    return payload


def _subscription_from_dict(raw: dict[str, Any]) -> Subscription:
    return Subscription(
        id=str(raw["id"]),
        user_id=int(raw["userId"]),
        username=str(raw["username"]),
        repo=raw.get("repo") or None,
        last_commit_sha=raw.get("lastCommitSha") or None,
        last_check_time=parse_timestamp(raw["lastCheckTime"]),
        is_active=bool(raw["isActive"]),
    )


class JsonSubscriptionStore:
    """File-backed store that satisfies the SubscriptionStorePort contract."""

    def __init__(self, path: str, clock: Callable[[], datetime] = utcnow) -> None:
        self._path = path
        self._clock = clock
        self._subscriptions: list[Subscription] = []
        self._last_global_check = clock()

    @property
    def path(self) -> str:
        return self._path

    def initialize(self) -> None:
        """Load the document, or create and persist an empty one."""

        if os.path.exists(self._path):
            self._subscriptions, self._last_global_check = self._read()
            LOGGER.info("Loaded %s subscriptions from %s", len(self._subscriptions), self._path)
            return

        self._subscriptions = []
        self._last_global_check = self._clock()
        self._flush()
        LOGGER.info("Created new subscriptions file at %s", self._path)

    def _read(self) -> tuple[list[Subscription], datetime]:
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                document = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read subscriptions file {self._path}: {exc}") from exc

        try:
            raw_subscriptions = document["subscriptions"]
            if not isinstance(raw_subscriptions, list):
                raise TypeError("'subscriptions' must be a list")
            subscriptions = [_subscription_from_dict(entry) for entry in raw_subscriptions]
            last_global_check = parse_timestamp(document["lastGlobalCheck"])
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed subscriptions file {self._path}: {exc}") from exc
        return subscriptions, last_global_check

    def _flush(self) -> None:
        document = {
            "subscriptions": [_subscription_to_dict(sub) for sub in self._subscriptions],
            "lastGlobalCheck": format_timestamp(self._last_global_check),
        }
        directory = os.path.dirname(os.path.abspath(self._path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".subscriptions-", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2, ensure_ascii=False)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as exc:
            LOGGER.error("Failed to save subscriptions to %s: %s", self._path, exc)
            raise StorageError(f"Cannot write subscriptions file {self._path}: {exc}") from exc

    def _commit(self, subscriptions: list[Subscription], last_global_check: datetime) -> None:
        """Swap in the new state and flush it, rolling back on failure."""

        previous = (self._subscriptions, self._last_global_check)
        self._subscriptions = subscriptions
        self._last_global_check = last_global_check
        try:
            self._flush()
        except StorageError:
            self._subscriptions, self._last_global_check = previous
            raise

    def _find_index(self, user_id: int, username: str, repo: Optional[str]) -> Optional[int]:
        for index, subscription in enumerate(self._subscriptions):
            if subscription.matches(user_id, username, repo):
                return index
        return None

    def subscribe(self, user_id: int, username: str, repo: Optional[str] = None) -> Subscription:
        repo = repo or None
        index = self._find_index(user_id, username, repo)
        updated = list(self._subscriptions)

        if index is not None:
            existing = updated[index]
            if existing.is_active:
                raise AlreadySubscribedError(user_id, existing.target)
            # Reactivation keeps last_commit_sha so dedup memory survives.
            subscription = replace(existing, is_active=True, last_check_time=self._clock())
            updated[index] = subscription
        else:
            subscription = Subscription(
                id=uuid.uuid4().hex,
                user_id=user_id,
                username=username,
                repo=repo,
                last_commit_sha=None,
                last_check_time=self._clock(),
                is_active=True,
            )
            updated.append(subscription)

        self._commit(updated, self._last_global_check)
        return subscription

    def unsubscribe(self, user_id: int, username: str, repo: Optional[str] = None) -> bool:
        repo = repo or None
        index = self._find_index(user_id, username, repo)
        if index is None or not self._subscriptions[index].is_active:
            return False

        updated = list(self._subscriptions)
        updated[index] = replace(updated[index], is_active=False)
        self._commit(updated, self._last_global_check)
        return True

    def list_for_user(self, user_id: int) -> list[Subscription]:
        return [sub for sub in self._subscriptions if sub.user_id == user_id and sub.is_active]

    def list_active(self) -> list[Subscription]:
        return [sub for sub in self._subscriptions if sub.is_active]

    def list_all(self) -> list[Subscription]:
        return list(self._subscriptions)

    def record_check_result(self, subscription_id: str, new_last_commit_sha: Optional[str] = None) -> None:
        for index, subscription in enumerate(self._subscriptions):
            if subscription.id == subscription_id:
                break
        else:
            raise StorageError(f"Unknown subscription id: {subscription_id}")

        changes: dict[str, Any] = {"last_check_time": self._clock()}
        if new_last_commit_sha is not None:
            changes["last_commit_sha"] = new_last_commit_sha

        updated = list(self._subscriptions)
        updated[index] = replace(subscription, **changes)
        self._commit(updated, self._last_global_check)

    def touch_global_check(self) -> None:
        self._commit(list(self._subscriptions), self._clock())

    def get_last_global_check(self) -> datetime:
        return self._last_global_check
