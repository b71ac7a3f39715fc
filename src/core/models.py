"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class Subscription:
    """One user's interest in one (account, optional repository) pair."""

    id: str
    user_id: int
    username: str
    repo: Optional[str]
    last_commit_sha: Optional[str]
    last_check_time: datetime
    is_active: bool

    @property
    def target(self) -> str:
        if self.repo:
            return f"{self.username}/{self.repo}"
        return self.username

    def matches(self, user_id: int, username: str, repo: Optional[str]) -> bool:
        return self.user_id == user_id and self.username == username and self.repo == repo


@dataclass(frozen=True)
class CommitStats:
    additions: int
    deletions: int
    total: int


@dataclass(frozen=True)
class CommitFile:
    filename: str
    status: str
    additions: int
    deletions: int
    changes: int


@dataclass(frozen=True)
class Commit:
    """Provider-neutral commit as returned by a commit source."""

    sha: str
    message: str
    author_name: Optional[str]
    author_date: Optional[datetime]
    url: str
    repository: Optional[str] = None
    stats: Optional[CommitStats] = None
    files: Tuple[CommitFile, ...] = ()

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def title(self) -> str:
        return self.message.strip().splitlines()[0] if self.message.strip() else ""


@dataclass(frozen=True)
class CommitSummary:
    """Best-effort analysis attached to a notification when available."""

    text: str
    impact: Optional[str] = None
    categories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CommitNotification:
    """Exactly one notification payload per new commit."""

    subscription: Subscription
    commit: Commit
    summary: Optional[CommitSummary] = None


@dataclass
class CycleReport:
    """Counters collected during one check cycle."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    checked: int = 0
    failed: int = 0
    new_commits: int = 0
    delivered: int = 0
    delivery_failures: int = 0
    failed_targets: list[str] = field(default_factory=list)
