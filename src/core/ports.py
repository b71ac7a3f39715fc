"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage, commit source, and
notification adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from core.models import Commit, CommitSummary, Subscription


class SubscriptionStorePort(Protocol):
    """Durable subscription record. Every mutation is flushed before returning."""

    def initialize(self) -> None:
        ...

    def subscribe(self, user_id: int, username: str, repo: Optional[str] = None) -> Subscription:
        ...

    def unsubscribe(self, user_id: int, username: str, repo: Optional[str] = None) -> bool:
        ...

    def list_for_user(self, user_id: int) -> list[Subscription]:
        ...

    def list_active(self) -> list[Subscription]:
        ...

    def list_all(self) -> list[Subscription]:
        ...

    def record_check_result(self, subscription_id: str, new_last_commit_sha: Optional[str] = None) -> None:
        ...

    def touch_global_check(self) -> None:
        ...

    def get_last_global_check(self) -> datetime:
        ...


class CommitSourcePort(Protocol):
    """Recent commits for an account or repository, newest first."""

    async def fetch_recent(self, username: str, repo: Optional[str] = None) -> Sequence[Commit]:
        ...


class CommitDetailsPort(Protocol):
    """Optional capability of a commit source: per-commit file statistics."""

    async def fetch_details(self, username: str, sha: str, repo: Optional[str] = None) -> Commit:
        ...


class NotificationSinkPort(Protocol):
    """Delivers an already rendered notification to one chat."""

    async def deliver(self, user_id: int, text: str) -> None:
        ...


class EnricherPort(Protocol):
    """Produces a best-effort summary for a commit."""

    async def summarize(self, commit: Commit) -> CommitSummary:
        ...
