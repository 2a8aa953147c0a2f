"""Telegram messenger adapter built on a Telethon client.

Formats notifications as Markdown and sends them through an already
started Telethon client (bot or user session).
"""

from __future__ import annotations

from typing import Union

from telethon import errors

from designcast.adapters.notification_formatting import format_notification
from designcast.core.errors import TransportError
from designcast.core.models import MessageContent, SendReceipt


def resolve_target(target: str) -> Union[int, str]:
    """Return a Telethon entity reference for a configured send target.

    Numeric targets (``-100...`` channel ids) must be passed as ints,
    usernames and invite links as strings.
    """

    stripped = target.strip()
    if stripped.lstrip("-").isdigit():
        return int(stripped)
    return stripped


class TelethonMessenger:
    """Messenger adapter that sends and deletes messages with Telethon."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, target: str, content: MessageContent) -> SendReceipt:
        """Send the formatted notification and return its message id."""

        message = format_notification(content, mode="markdown")
        try:
            sent = await self._client.send_message(
                resolve_target(target),
                message,
                parse_mode="Markdown",
                link_preview=False,
            )
        except (errors.RPCError, ValueError, OSError) as e:
            raise TransportError(f"Telegram send failed: {e}") from e
        return SendReceipt(ok=True, external_message_id=str(sent.id))

    async def delete(self, target: str, external_message_id: str) -> bool:
        """Delete a previously sent message; True when Telegram removed it."""

        try:
            affected = await self._client.delete_messages(
                resolve_target(target),
                [int(external_message_id)],
            )
        except (errors.RPCError, ValueError, OSError) as e:
            raise TransportError(f"Telegram delete failed: {e}") from e
        return any(getattr(item, "pts_count", 0) for item in affected or [])
