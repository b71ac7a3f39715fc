"""Telegram notification sink.

Delivers already rendered notifications to a subscriber's chat through the
bot account's Telethon client.
"""

from __future__ import annotations

from telethon import errors

from core.errors import NotificationError


class TelegramBotSink:
    """Sink adapter that sends messages to a user chat via the bot client."""

    def __init__(self, client, parse_mode: str = "html") -> None:
        self._client = client
        self._parse_mode = parse_mode

    async def deliver(self, user_id: int, text: str) -> None:
        """Send the rendered notification to ``user_id``."""

        try:
            await self._client.send_message(
                user_id,
                text,
                parse_mode=self._parse_mode,
                link_preview=False,
            )
        except errors.RPCError as exc:
            raise NotificationError(f"Telegram rejected message to {user_id}: {exc}") from exc
        except (ConnectionError, OSError, ValueError) as exc:
            # ValueError: Telethon cannot resolve the entity for this id.
            raise NotificationError(f"Cannot deliver message to {user_id}: {exc}") from exc
