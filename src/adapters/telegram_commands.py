"""Telegram chat commands for managing subscriptions.

Command parsing and reply text live in ``ChatCommands`` so they can be tested
without a Telegram connection; ``register_commands`` wires them into Telethon.
"""

from __future__ import annotations

import html
import logging
from typing import Sequence

from telethon import events

from core.errors import AlreadySubscribedError, StorageError
from core.ports import SubscriptionStorePort
from core.validators import parse_target_args

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR = "❌ Something went wrong, please try again later."


class ChatCommands:
    """Reply builders for the subscription commands."""

    def __init__(self, store: SubscriptionStorePort, interval_minutes: float) -> None:
        self._store = store
        self._interval_minutes = interval_minutes

    def start(self) -> str:
        return (
            "🚀 <b>Welcome to commitscope!</b>\n\n"
            "I watch GitHub accounts and repositories and message you about new commits.\n"
            "Use /help to see the available commands."
        )

    def help(self) -> str:
        return (
            "📖 <b>Commands</b>\n\n"
            "/subscribe &lt;username&gt; [repo] - notify me about new commits\n"
            "/unsubscribe &lt;username&gt; [repo] - stop notifications\n"
            "/subscriptions - list my active subscriptions\n"
            "/help - show this message\n\n"
            f"New commits are checked every {self._interval_minutes:g} minute(s).\n\n"
            "<b>Examples:</b>\n"
            "<code>/subscribe octocat</code> - all active repositories of octocat\n"
            "<code>/subscribe octocat Hello-World</code> - a single repository"
        )

    def subscribe(self, user_id: int, args: Sequence[str]) -> str:
        target = parse_target_args(args)
        if target.error:
            return f"❌ {target.error}\n\nUsage: <code>/subscribe &lt;username&gt; [repo]</code>"

        try:
            subscription = self._store.subscribe(user_id, target.username, target.repo)
        except AlreadySubscribedError:
            return "⚠️ You are already subscribed to this target."
        except StorageError:
            LOGGER.exception("Subscribe failed for user %s", user_id)
            return GENERIC_ERROR

        LOGGER.info("User %s subscribed to %s", user_id, subscription.target)
        scope = html.escape(subscription.repo) if subscription.repo else "all active repositories"
        return (
            "✅ <b>Subscription active!</b>\n\n"
            f"👤 <b>User:</b> {html.escape(subscription.username)}\n"
            f"📁 <b>Repository:</b> {scope}\n\n"
            "You will be notified about new commits."
        )

    def unsubscribe(self, user_id: int, args: Sequence[str]) -> str:
        target = parse_target_args(args)
        if target.error:
            return f"❌ {target.error}\n\nUsage: <code>/unsubscribe &lt;username&gt; [repo]</code>"

        try:
            removed = self._store.unsubscribe(user_id, target.username, target.repo)
        except StorageError:
            LOGGER.exception("Unsubscribe failed for user %s", user_id)
            return GENERIC_ERROR

        if not removed:
            return "⚠️ No active subscription found for this target."
        label = f"{target.username}/{target.repo}" if target.repo else target.username
        LOGGER.info("User %s unsubscribed from %s", user_id, label)
        return f"✅ <b>Subscription cancelled:</b> {html.escape(label)}"

    def subscriptions(self, user_id: int) -> str:
        subscriptions = self._store.list_for_user(user_id)
        if not subscriptions:
            return (
                "📭 <b>You have no active subscriptions</b>\n\n"
                "Use <code>/subscribe &lt;username&gt; [repo]</code> to add one."
            )

        lines = [f"📋 <b>Your active subscriptions ({len(subscriptions)}):</b>", ""]
        for index, subscription in enumerate(subscriptions, start=1):
            last_check = subscription.last_check_time.astimezone().strftime("%H:%M %d-%m-%Y")
            lines.append(f"{index}. 👤 <b>{html.escape(subscription.target)}</b>")
            lines.append(f"   📅 Last check: {last_check}")
            if subscription.last_commit_sha:
                lines.append(f"   🔗 Last commit: <code>{subscription.last_commit_sha[:7]}</code>")
        lines.extend(["", "💡 Use <code>/unsubscribe &lt;username&gt; [repo]</code> to cancel."])
        return "\n".join(lines)


def split_command(text: str) -> list[str]:
    """Return command arguments, dropping the command itself (and any @botname)."""

    return (text or "").split()[1:]


def register_commands(client, commands: ChatCommands) -> None:
    """Attach Telethon handlers for every chat command."""

    async def _reply(event, text: str) -> None:
        await event.respond(text, parse_mode="html", link_preview=False)

    @client.on(events.NewMessage(incoming=True, pattern=r"^/start(?:@\w+)?(?:\s|$)"))
    async def on_start(event) -> None:
        await _reply(event, commands.start())

    @client.on(events.NewMessage(incoming=True, pattern=r"^/help(?:@\w+)?(?:\s|$)"))
    async def on_help(event) -> None:
        await _reply(event, commands.help())

    @client.on(events.NewMessage(incoming=True, pattern=r"^/subscribe(?:@\w+)?(?:\s|$)"))
    async def on_subscribe(event) -> None:
        await _reply(event, commands.subscribe(event.chat_id, split_command(event.raw_text)))

    @client.on(events.NewMessage(incoming=True, pattern=r"^/unsubscribe(?:@\w+)?(?:\s|$)"))
    async def on_unsubscribe(event) -> None:
        await _reply(event, commands.unsubscribe(event.chat_id, split_command(event.raw_text)))

    @client.on(events.NewMessage(incoming=True, pattern=r"^/subscriptions(?:@\w+)?(?:\s|$)"))
    async def on_subscriptions(event) -> None:
        try:
            reply = commands.subscriptions(event.chat_id)
        except StorageError:
            LOGGER.exception("Listing subscriptions failed for %s", event.chat_id)
            reply = GENERIC_ERROR
        await _reply(event, reply)
