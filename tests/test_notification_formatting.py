from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import pytest

from adapters.notification_formatting import build_renderer, clip, format_notification, top_files
from core.config import NotificationConfig
from core.models import Commit, CommitFile, CommitNotification, CommitStats, CommitSummary, Subscription


def _notification(
    *,
    repo: Optional[str] = "hello",
    message: str = "Fix <script> handling",
    summary: Optional[CommitSummary] = None,
    files: tuple = (),
    repository: Optional[str] = None,
) -> CommitNotification:
    subscription = Subscription(
        id="sub-1",
        user_id=1,
        username="octocat",
        repo=repo,
        last_commit_sha=None,
        last_check_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        is_active=True,
    )
    commit = Commit(
        sha="0123456789abcdef",
        message=message,
        author_name="Mona & Co",
        author_date=datetime(2024, 1, 2, 12, 30, tzinfo=timezone.utc),
        url="https://github.com/octocat/hello/commit/0123456789abcdef",
        repository=repository,
        stats=CommitStats(additions=10, deletions=2, total=12) if files else None,
        files=files,
    )
    return CommitNotification(subscription=subscription, commit=commit, summary=summary)


def test_html_escapes_and_links() -> None:
    text = format_notification(_notification(), "html")

    assert "<b>New commit in octocat/hello</b>" in text
    assert "Fix &lt;script&gt; handling" in text
    assert "Mona &amp; Co" in text
    assert "<code>0123456</code>" in text
    assert 'href="https://github.com/octocat/hello/commit/0123456789abcdef"' in text


def test_account_subscription_shows_repository() -> None:
    text = format_notification(_notification(repo=None, repository="hello"), "html")
    assert "<b>New commit in octocat</b> (hello)" in text


def test_summary_section_only_when_present() -> None:
    plain = format_notification(_notification(), "html")
    enriched = format_notification(
        _notification(summary=CommitSummary(text="Sanitizes input", impact="high", categories=("security",))),
        "html",
    )

    assert "Summary" not in plain
    assert "Sanitizes input" in enriched
    assert "<b>Impact:</b> high" in enriched
    assert "security" in enriched


def test_files_are_sorted_by_changes_and_limited() -> None:
    files = (
        CommitFile("small.py", "modified", 1, 0, 1),
        CommitFile("big.py", "modified", 40, 10, 50),
        CommitFile("mid.py", "added", 5, 0, 5),
    )
    text = format_notification(_notification(files=files), "markdown", show_files=2)

    assert "big.py" in text
    assert "mid.py" in text
    assert "small.py" not in text
    assert text.index("big.py") < text.index("mid.py")
    assert "+10 / -2" in text


def test_markdown_escapes_control_characters() -> None:
    text = format_notification(_notification(message="use *args and [links]"), "markdown")
    assert "use \\*args and \\[links]" in text


def test_long_messages_are_clipped() -> None:
    text = format_notification(_notification(message="x" * 500), "html", message_chars=100)
    assert "x" * 60 not in text
    assert "…" in text


def test_unknown_mode_raises() -> None:
    with pytest.raises(ValueError):
        format_notification(_notification(), "plain")
    with pytest.raises(ValueError):
        build_renderer(NotificationConfig(format="plain", message_chars=100, show_files=1))


def test_renderer_binds_config() -> None:
    render = build_renderer(NotificationConfig(format="markdown", message_chars=3500, show_files=0))
    assert render(_notification()).startswith("**New commit in octocat/hello**")


def test_helpers() -> None:
    assert clip("abc", 10) == "abc"
    assert clip("abcdef", 4) == "abc…"
    assert top_files(_notification().commit, 3) == []
