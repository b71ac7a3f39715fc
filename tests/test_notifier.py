from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from core.errors import EnrichmentError, NotificationError
from core.models import Commit, CommitSummary, Subscription
from core.notifier import CommitNotifier


def _subscription() -> Subscription:
    return Subscription(
        id="sub-1",
        user_id=99,
        username="octocat",
        repo="hello",
        last_commit_sha=None,
        last_check_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        is_active=True,
    )


def _commit() -> Commit:
    return Commit(
        sha="abcdef1234567",
        message="Fix login redirect\n\nLonger body",
        author_name="Mona",
        author_date=datetime(2024, 1, 2, tzinfo=timezone.utc),
        url="https://github.com/octocat/hello/commit/abcdef1234567",
    )


class RecordingSink:
    def __init__(self, error: Exception = None) -> None:
        self.error = error
        self.sent: list[tuple[int, str]] = []

    async def deliver(self, user_id: int, text: str) -> None:
        if self.error:
            raise self.error
        self.sent.append((user_id, text))


class StaticEnricher:
    async def summarize(self, commit: Commit) -> CommitSummary:
        return CommitSummary(text="Fixes the redirect", impact="low")


class FailingEnricher:
    async def summarize(self, commit: Commit) -> CommitSummary:
        raise EnrichmentError("model unavailable")


def _render(notification) -> str:
    summary = notification.summary.text if notification.summary else "-"
    return f"{notification.commit.short_sha}|{summary}"


def test_notify_without_enricher_sends_plain_payload() -> None:
    sink = RecordingSink()
    notifier = CommitNotifier(sink=sink, render=_render)

    delivered = asyncio.run(notifier.notify(_subscription(), _commit()))

    assert delivered
    assert sink.sent == [(99, "abcdef1|-")]


def test_summary_is_attached_when_available() -> None:
    sink = RecordingSink()
    notifier = CommitNotifier(sink=sink, render=_render, enricher=StaticEnricher())

    asyncio.run(notifier.notify(_subscription(), _commit()))

    assert sink.sent == [(99, "abcdef1|Fixes the redirect")]


def test_failed_enrichment_matches_missing_enricher() -> None:
    plain = asyncio.run(CommitNotifier(RecordingSink(), _render).build(_subscription(), _commit()))
    failed = asyncio.run(
        CommitNotifier(RecordingSink(), _render, enricher=FailingEnricher()).build(_subscription(), _commit())
    )

    assert failed == plain
    assert failed.summary is None


def test_delivery_failure_returns_false() -> None:
    notifier = CommitNotifier(sink=RecordingSink(error=NotificationError("blocked")), render=_render)

    assert asyncio.run(notifier.notify(_subscription(), _commit())) is False


def test_unexpected_delivery_error_returns_false() -> None:
    notifier = CommitNotifier(sink=RecordingSink(error=RuntimeError("boom")), render=_render)

    assert asyncio.run(notifier.notify(_subscription(), _commit())) is False
