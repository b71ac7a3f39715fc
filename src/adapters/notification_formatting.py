"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from typing import Callable

from core.config import NotificationConfig
from core.models import Commit, CommitNotification

DIVIDER = "──────────────"
UNKNOWN_AUTHOR = "unknown author"


def format_commit_date(commit: Commit) -> str:
    if commit.author_date is None:
        return "unknown date"
    return commit.author_date.astimezone().strftime("%H:%M %d-%m-%Y")


def top_files(commit: Commit, limit: int) -> list:
    """Return the most changed files, largest first."""

    if limit <= 0:
        return []
    return sorted(commit.files, key=lambda entry: entry.changes, reverse=True)[:limit]


def clip(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[: max(limit - 1, 0)].rstrip() + "…"


def _format_markdown(notification: CommitNotification, show_files: int, message_chars: int) -> str:
    """Create the Markdown notification body."""

    # Telegram Markdown is supported by passing parse_mode="md".
    def escape_md(value: str) -> str:
        for ch in r"*_[`":
            value = value.replace(ch, f"\\{ch}")
        return value

    subscription = notification.subscription
    commit = notification.commit
    target = escape_md(subscription.target)
    repository = commit.repository if not subscription.repo else None

    lines = [
        f"**New commit in {target}**" + (f" ({escape_md(repository)})" if repository else ""),
        DIVIDER,
        "",
        escape_md(clip(commit.message.strip(), message_chars // 2)),
        "",
        f"**Author:** {escape_md(commit.author_name or UNKNOWN_AUTHOR)}",
        f"**Date:**   {format_commit_date(commit)}",
        f"**Commit:** `{commit.short_sha}`",
    ]

    if commit.stats:
        lines.append(f"**Changes:** +{commit.stats.additions} / -{commit.stats.deletions}")
    files = top_files(commit, show_files)
    if files:
        lines.extend(["", "**Files:**"])
        lines.extend(
            f"- {escape_md(entry.filename)} (+{entry.additions}/-{entry.deletions})" for entry in files
        )

    summary = notification.summary
    if summary:
        lines.extend(["", "**Summary:**", escape_md(summary.text)])
        if summary.impact:
            lines.append(f"**Impact:** {escape_md(summary.impact)}")

    if commit.url:
        lines.extend(["", "**Link:**", commit.url])
    lines.append(DIVIDER)
    return "\n".join(lines)


def _format_html(notification: CommitNotification, show_files: int, message_chars: int) -> str:
    """Create the HTML notification body used with the Bot API parse mode."""

    subscription = notification.subscription
    commit = notification.commit
    target = html.escape(subscription.target)
    repository = commit.repository if not subscription.repo else None

    header = f"<b>New commit in {target}</b>"
    if repository:
        header += f" ({html.escape(repository)})"

    parts = [
        header,
        DIVIDER,
        "",
        html.escape(clip(commit.message.strip(), message_chars // 2)),
        "",
        f"<b>Author:</b> {html.escape(commit.author_name or UNKNOWN_AUTHOR)}",
        f"<b>Date:</b> {html.escape(format_commit_date(commit))}",
        f"<b>Commit:</b> <code>{html.escape(commit.short_sha)}</code>",
    ]

    if commit.stats:
        parts.append(f"<b>Changes:</b> +{commit.stats.additions} / -{commit.stats.deletions}")
    files = top_files(commit, show_files)
    if files:
        parts.extend(["", "<b>Files:</b>"])
        parts.extend(
            f"• <code>{html.escape(entry.filename)}</code> (+{entry.additions}/-{entry.deletions})"
            for entry in files
        )

    summary = notification.summary
    if summary:
        parts.extend(["", "<b>Summary:</b>", html.escape(summary.text)])
        if summary.impact:
            parts.append(f"<b>Impact:</b> {html.escape(summary.impact)}")
        if summary.categories:
            parts.append(f"<b>Categories:</b> {html.escape(', '.join(summary.categories))}")

    if commit.url:
        safe_link = html.escape(commit.url)
        parts.extend(["", f"<a href=\"{safe_link}\">Open on GitHub</a>"])
    parts.append(DIVIDER)
    return "\n".join(parts)


def format_notification(
    notification: CommitNotification,
    mode: str,
    show_files: int = 5,
    message_chars: int = 3500,
) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(notification, show_files, message_chars)
    if mode == "html":
        return _format_html(notification, show_files, message_chars)
    raise ValueError(f"Unsupported notification format: {mode}")


def build_renderer(config: NotificationConfig) -> Callable[[CommitNotification], str]:
    """Bind notification settings into the renderer the core notifier expects."""

    if config.format not in ("markdown", "html"):
        raise ValueError(f"Unsupported notification format: {config.format}")

    def render(notification: CommitNotification) -> str:
        return format_notification(
            notification,
            config.format,
            show_files=config.show_files,
            message_chars=config.message_chars,
        )

    return render


def parse_mode_for(config: NotificationConfig) -> str:
    """Return the Telethon parse mode matching the configured format."""

    return "html" if config.format == "html" else "md"
