"""Application entry point for the commitscope bot."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

import settings
from adapters.github_source import GitHubCommitSource
from adapters.json_store import JsonSubscriptionStore
from adapters.notification_formatting import build_renderer, parse_mode_for
from adapters.openai_enricher import OpenAICommitEnricher
from adapters.sqlite_store import SQLiteSubscriptionStore
from adapters.telegram_commands import ChatCommands, register_commands
from adapters.telegram_notifier import TelegramBotSink
from client import bot_token, build_client
from core.config import StorageConfig
from core.notifier import CommitNotifier
from core.ports import SubscriptionStorePort
from core.scheduler import MonitoringScheduler

NAME = "COMMITSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/commitscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon logs every reconnect at INFO.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


def build_store(config: StorageConfig) -> SubscriptionStorePort:
    """Select the storage adapter based on configuration."""

    if config.backend == "json":
        return JsonSubscriptionStore(config.path)
    if config.backend == "sqlite":
        directory = os.path.dirname(config.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return SQLiteSubscriptionStore(config.path)
    raise RuntimeError("storage.backend must be 'json' or 'sqlite'")


def _build_enricher() -> Optional[OpenAICommitEnricher]:
    logger = logging.getLogger(__name__)
    if not settings.ANALYSIS.enabled:
        logger.info("AI summaries disabled")
        return None
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        logger.warning("AI summaries enabled but OPENAI_API_KEY is missing; sending plain notifications")
        return None
    logger.info("AI summaries enabled (model %s)", settings.ANALYSIS.model)
    return OpenAICommitEnricher(api_key, settings.ANALYSIS)


async def _serve(client, store: SubscriptionStorePort) -> None:
    logger = logging.getLogger(__name__)

    await client.start(bot_token=bot_token())

    source = GitHubCommitSource(settings.GITHUB, token=os.getenv("GITHUB_TOKEN"))
    enricher = _build_enricher()
    notifier = CommitNotifier(
        sink=TelegramBotSink(client, parse_mode=parse_mode_for(settings.NOTIFICATIONS)),
        render=build_renderer(settings.NOTIFICATIONS),
        enricher=enricher,
    )
    scheduler = MonitoringScheduler(
        store=store,
        source=source,
        notifier=notifier,
        max_notifications_per_subscription=settings.MONITORING.max_notifications_per_subscription,
    )

    # Commands go through the same store instance as the scheduler, so every
    # mutation is funneled through one serialized API.
    register_commands(client, ChatCommands(store, settings.MONITORING.interval_minutes))

    active = store.list_active()
    logger.info("Monitoring initialized with %s active subscriptions", len(active))
    for subscription in active:
        logger.info("  - user %s: %s", subscription.user_id, subscription.target)

    scheduler.start(settings.MONITORING.interval_minutes)
    logger.info("Bot connected. Listening for commands...")
    try:
        await client.run_until_disconnected()
    finally:
        scheduler.stop()
        await scheduler.wait_idle()
        await source.close()
        if enricher is not None:
            await enricher.close()


def _run() -> None:
    _print_banner()
    load_dotenv()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting commitscope")

    store = build_store(settings.STORAGE)
    store.initialize()

    client = build_client()
    try:
        client.loop.run_until_complete(_serve(client, store))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        if client.is_connected():
            client.loop.run_until_complete(client.disconnect())
    logger.info("commitscope stopped")


def _open_existing_store() -> Optional[SubscriptionStorePort]:
    if not os.path.exists(settings.STORAGE.path):
        return None
    store = build_store(settings.STORAGE)
    store.initialize()
    return store


def _status() -> None:
    console = Console()
    store = _open_existing_store()
    if store is None:
        console.print(f"[yellow]No subscription store at {settings.STORAGE.path}[/yellow]")
        return

    table = Table(title="Subscriptions")
    table.add_column("id", overflow="fold")
    table.add_column("user")
    table.add_column("target")
    table.add_column("last commit")
    table.add_column("last check")
    table.add_column("active")
    for subscription in store.list_all():
        table.add_row(
            subscription.id[:8],
            str(subscription.user_id),
            subscription.target,
            (subscription.last_commit_sha or "-")[:7],
            subscription.last_check_time.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            "yes" if subscription.is_active else "[dim]no[/dim]",
        )
    console.print(table)
    last_check = store.get_last_global_check().astimezone().strftime("%Y-%m-%d %H:%M:%S")
    console.print(f"Last global check: {last_check}")


def _panel() -> None:
    _print_banner()
    from frontend.app import SubscriptionsPanelApp

    SubscriptionsPanelApp(open_store=_open_existing_store).run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="commitscope")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot and the commit monitor")
    subparsers.add_parser("status", help="Print every stored subscription")
    subparsers.add_parser("panel", help="Browse subscriptions in a read-only TUI")

    args = parser.parse_args(argv)
    if args.command == "status":
        _status()
        return
    if args.command == "panel":
        _panel()
        return
    _run()


if __name__ == "__main__":
    main()
