"""Commit notification building and dispatch.

The notifier turns one new commit into one notification payload, attaches a
best-effort summary when an enricher is configured, and hands the rendered
text to the delivery sink.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from core.errors import CollaboratorError
from core.models import Commit, CommitNotification, CommitSummary, Subscription
from core.ports import EnricherPort, NotificationSinkPort

LOGGER = logging.getLogger(__name__)

Renderer = Callable[[CommitNotification], str]


class CommitNotifier:
    """Builds, enriches, renders, and delivers commit notifications."""

    def __init__(
        self,
        sink: NotificationSinkPort,
        render: Renderer,
        enricher: Optional[EnricherPort] = None,
    ) -> None:
        self._sink = sink
        self._render = render
        self._enricher = enricher

    async def _summarize(self, commit: Commit) -> Optional[CommitSummary]:
        # A missing enricher and a failed one end up on the same path.
        if self._enricher is None:
            return None
        try:
            return await self._enricher.summarize(commit)
        except Exception:
            LOGGER.warning("Summary failed for %s, sending without it", commit.short_sha, exc_info=True)
            return None

    async def build(self, subscription: Subscription, commit: Commit) -> CommitNotification:
        summary = await self._summarize(commit)
        return CommitNotification(subscription=subscription, commit=commit, summary=summary)

    async def notify(self, subscription: Subscription, commit: Commit) -> bool:
        """Deliver one notification; return False when delivery failed."""

        notification = await self.build(subscription, commit)
        text = self._render(notification)
        try:
            await self._sink.deliver(subscription.user_id, text)
        except CollaboratorError:
            LOGGER.exception(
                "Delivery failed for user %s (%s@%s)",
                subscription.user_id,
                subscription.target,
                commit.short_sha,
            )
            return False
        except Exception:
            LOGGER.exception("Unexpected delivery error for user %s", subscription.user_id)
            return False

        LOGGER.info("Notified user %s about %s@%s", subscription.user_id, subscription.target, commit.short_sha)
        return True
