"""Static configuration for commitscope.

All user-editable settings (monitoring, GitHub, storage, notifications,
analysis, logging) live in a single JSON file for quick edits without
touching Python. Secrets stay in the environment (.env).
"""

import json
import os

from core.config import (
    AnalysisConfig,
    GitHubConfig,
    MonitoringConfig,
    NotificationConfig,
    StorageConfig,
)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Settings are loaded from config.json; COMMITSCOPE_CONFIG overrides the path.
CONFIG_PATH = os.getenv("COMMITSCOPE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json; a missing file means "use defaults"."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Check cycle cadence and the per-subscription notification cap (0 = no cap).
_monitoring = _CONFIG.get("monitoring", {})
MONITORING = MonitoringConfig(
    interval_minutes=float(_monitoring.get("interval_minutes", 5)),
    max_notifications_per_subscription=int(_monitoring.get("max_notifications_per_subscription", 10)),
)

# GitHub fetch window. Account subscriptions look at the most recently
# updated repositories that were active within active_days.
_github = _CONFIG.get("github", {})
GITHUB = GitHubConfig(
    per_page=int(_github.get("per_page", 10)),
    max_repos=int(_github.get("max_repos", 5)),
    active_days=int(_github.get("active_days", 365)),
    timeout_seconds=float(_github.get("timeout_seconds", 15)),
)

# Storage backend: "json" (single document) or "sqlite".
_storage = _CONFIG.get("storage", {})
_backend = _storage.get("backend", "json")
_default_path = "data/subscriptions.db" if _backend == "sqlite" else "data/subscriptions.json"
STORAGE = StorageConfig(
    backend=_backend,
    path=_resolve_path(_storage.get("path", _default_path)),
)

# Notification rendering shared by every sink.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATIONS = NotificationConfig(
    format=_notifications.get("format", "html"),
    message_chars=int(_notifications.get("message_chars", 3500)),
    show_files=int(_notifications.get("show_files", 5)),
)

# Optional AI summaries; also requires OPENAI_API_KEY in the environment.
_analysis = _CONFIG.get("analysis", {})
ANALYSIS = AnalysisConfig(
    enabled=bool(_analysis.get("enabled", False)),
    model=_analysis.get("model", "gpt-4o-mini"),
    timeout_seconds=float(_analysis.get("timeout_seconds", 20)),
)

# Logging configuration; console logging at INFO unless disabled.
LOGGING = _CONFIG.get(
    "logging",
    {
        "enabled": True,
        "level": "INFO",
        "console": True,
        "redact": {"enabled": True, "patterns": ["BOT_TOKEN", "GITHUB_TOKEN", "OPENAI_API_KEY"]},
    },
)
