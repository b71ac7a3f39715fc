"""Monitoring scheduler: the recurring check cycle.

One scheduler instance owns one ticker task. The first cycle runs as soon as
the scheduler starts, then one tick fires every interval. A tick that arrives
while the previous cycle is still running is skipped, never queued, so cycles
never overlap. Inside a cycle subscriptions are checked strictly one after
another: fetch, detect, persist, notify.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from core.detector import find_new_commits, next_high_water_mark
from core.errors import CollaboratorError, StorageError
from core.models import Commit, CycleReport, Subscription
from core.notifier import CommitNotifier
from core.ports import CommitSourcePort, SubscriptionStorePort

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MonitoringScheduler:
    """Runs check cycles over every active subscription."""

    def __init__(
        self,
        store: SubscriptionStorePort,
        source: CommitSourcePort,
        notifier: CommitNotifier,
        max_notifications_per_subscription: int = 10,
    ) -> None:
        self._store = store
        self._source = source
        self._notifier = notifier
        self._max_notifications = max_notifications_per_subscription
        self._running = False
        self._ticker: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._cycle_in_progress = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_in_progress

    def start(self, interval_minutes: float) -> None:
        """Switch to running and fire the first cycle immediately.

        Must be called from inside a running event loop.
        """

        if self._running:
            LOGGER.warning("Monitoring is already running")
            return
        if interval_minutes <= 0:
            raise ValueError(f"interval_minutes must be positive, got {interval_minutes}")

        loop = asyncio.get_running_loop()
        self._running = True
        self._ticker = loop.create_task(self._tick_forever(interval_minutes * 60))
        LOGGER.info("Monitoring started with %s minute interval", interval_minutes)

    def stop(self) -> None:
        """Stop scheduling new cycles. An in-flight cycle runs to completion."""

        if not self._running:
            return
        self._running = False
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        LOGGER.info("Monitoring stopped")

    async def wait_idle(self) -> None:
        """Wait for the in-flight cycle, if any, to finish."""

        task = self._cycle_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def _tick_forever(self, interval_seconds: float) -> None:
        while True:
            self._on_tick()
            await asyncio.sleep(interval_seconds)

    def _on_tick(self) -> None:
        if self._cycle_task is not None and not self._cycle_task.done():
            LOGGER.warning("Previous check cycle is still running, skipping this tick")
            return
        self._cycle_task = asyncio.ensure_future(self.run_cycle())
        self._cycle_task.add_done_callback(self._log_cycle_crash)

    @staticmethod
    def _log_cycle_crash(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Check cycle crashed", exc_info=exc)

    async def run_cycle(self) -> Optional[CycleReport]:
        """Run one full pass over the active subscriptions.

        Returns None when another cycle is already in progress.
        """

        if self._cycle_in_progress:
            LOGGER.warning("Check cycle already in progress, skipping")
            return None

        self._cycle_in_progress = True
        report = CycleReport(started_at=_utcnow())
        try:
            await self._check_all(report)
        finally:
            # lastGlobalCheck advances once per cycle regardless of outcomes.
            try:
                self._store.touch_global_check()
            except StorageError:
                LOGGER.exception("Failed to record global check time")
            self._cycle_in_progress = False

        report.finished_at = _utcnow()
        LOGGER.info(
            "Check cycle complete: checked=%s, failed=%s, new=%s, delivered=%s, delivery_failures=%s",
            report.checked,
            report.failed,
            report.new_commits,
            report.delivered,
            report.delivery_failures,
        )
        return report

    async def _check_all(self, report: CycleReport) -> None:
        try:
            subscriptions = self._store.list_active()
        except StorageError:
            LOGGER.exception("Failed to list active subscriptions")
            return

        if not subscriptions:
            LOGGER.info("No active subscriptions to check")
            return

        LOGGER.info("Checking %s subscriptions", len(subscriptions))
        for subscription in subscriptions:
            report.checked += 1
            try:
                await self._check_subscription(subscription, report)
            except Exception:
                # Store failures for one subscription must not stall the rest.
                report.failed += 1
                report.failed_targets.append(subscription.target)
                LOGGER.exception("Error checking subscription %s (%s)", subscription.id, subscription.target)

    async def _check_subscription(self, subscription: Subscription, report: CycleReport) -> None:
        try:
            commits = await self._source.fetch_recent(subscription.username, subscription.repo)
        except CollaboratorError as exc:
            LOGGER.warning("Fetch failed for %s: %s", subscription.target, exc)
            self._record_failed_attempt(subscription, report)
            return
        except Exception:
            LOGGER.exception("Unexpected fetch error for %s", subscription.target)
            self._record_failed_attempt(subscription, report)
            return

        new_commits = find_new_commits(subscription.last_commit_sha, commits)
        LOGGER.info(
            "%s: fetched=%s, last known=%s, new=%s",
            subscription.target,
            len(commits),
            subscription.last_commit_sha or "none",
            len(new_commits),
        )

        # Persist the new high-water mark before dispatch.
        self._store.record_check_result(subscription.id, next_high_water_mark(new_commits))
        if not new_commits:
            return

        report.new_commits += len(new_commits)
        to_send = new_commits
        if self._max_notifications > 0 and len(new_commits) > self._max_notifications:
            to_send = new_commits[: self._max_notifications]
            LOGGER.warning(
                "%s: %s new commits, notifying about the newest %s",
                subscription.target,
                len(new_commits),
                self._max_notifications,
            )

        for commit in to_send:
            try:
                detailed = await self._with_details(subscription, commit)
                delivered = await self._notifier.notify(subscription, detailed)
            except Exception:
                LOGGER.exception("Notification for %s@%s failed", subscription.target, commit.short_sha)
                delivered = False
            if delivered:
                report.delivered += 1
            else:
                report.delivery_failures += 1

    def _record_failed_attempt(self, subscription: Subscription, report: CycleReport) -> None:
        self._store.record_check_result(subscription.id)
        report.failed += 1
        report.failed_targets.append(subscription.target)

    async def _with_details(self, subscription: Subscription, commit: Commit) -> Commit:
        """Return the commit with file statistics when the source can provide them."""

        fetch_details = getattr(self._source, "fetch_details", None)
        repo = subscription.repo or commit.repository
        if fetch_details is None or not repo:
            return commit
        try:
            return await fetch_details(subscription.username, commit.sha, repo)
        except Exception:
            LOGGER.warning("Detail lookup failed for %s, using basic commit", commit.short_sha, exc_info=True)
            return commit
