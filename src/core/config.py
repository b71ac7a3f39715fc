"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MonitoringConfig:
    """Check cycle settings for the monitoring scheduler."""

    interval_minutes: float
    max_notifications_per_subscription: int


@dataclass(frozen=True)
class GitHubConfig:
    """Commit source settings for the GitHub adapter."""

    per_page: int
    max_repos: int
    active_days: int
    timeout_seconds: float


@dataclass(frozen=True)
class StorageConfig:
    """Subscription store backend selection."""

    backend: str
    path: str


@dataclass(frozen=True)
class NotificationConfig:
    """Notification formatting settings consumed by notifier adapters."""

    format: str
    message_chars: int
    show_files: int


@dataclass(frozen=True)
class AnalysisConfig:
    """Optional AI summary settings."""

    enabled: bool
    model: str
    timeout_seconds: float
