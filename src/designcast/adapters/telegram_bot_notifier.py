"""Telegram Bot API messenger adapter.

Uses the Bot API for delivery so notifications can be routed to any chat
or channel the bot has been added to.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
import urllib.error
import urllib.request

from designcast.adapters.notification_formatting import format_notification
from designcast.core.errors import TransportError
from designcast.core.models import MessageContent, SendReceipt

LOGGER = logging.getLogger(__name__)


class TelegramBotMessenger:
    """Messenger adapter that sends and deletes messages via the Bot API."""

    def __init__(self, bot_token: str, timeout: float = 10) -> None:
        self._bot_token = bot_token
        self._timeout = timeout

    def _endpoint(self, method: str) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/{method}"

    def _call(self, method: str, payload: dict) -> dict:
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(method), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise TransportError(f"Bot API error {e.code}: {body}") from e
        except urllib.error.URLError as e:
            raise TransportError(f"Bot API unreachable: {e.reason}") from e
        except (OSError, http.client.HTTPException) as e:
            raise TransportError(f"Bot API connection failed: {e!r}") from e
        except ValueError as e:
            raise TransportError(f"Bot API returned an unreadable body: {e}") from e

        if not isinstance(body, dict):
            raise TransportError(f"Bot API returned an unexpected body: {body!r}")
        if not body.get("ok"):
            raise TransportError(f"Bot API error: {body.get('description', 'unknown error')}")
        return body

    async def send(self, target: str, content: MessageContent) -> SendReceipt:
        """Send the formatted notification and return its message id."""

        payload = {
            "chat_id": target,
            "text": format_notification(content, mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        # urllib blocks, so the call runs in a worker thread to keep the
        # event loop free while the timeout is pending.
        body = await asyncio.to_thread(self._call, "sendMessage", payload)
        try:
            message_id = str(body["result"]["message_id"])
        except (KeyError, TypeError) as e:
            raise TransportError(f"Bot API response has no message id: {body!r}") from e
        LOGGER.info("Bot API sent message %s to %s", message_id, target)
        return SendReceipt(ok=True, external_message_id=message_id)

    async def delete(self, target: str, external_message_id: str) -> bool:
        """Delete a previously sent message; True when Telegram confirms it."""

        try:
            message_id = int(external_message_id)
        except ValueError as e:
            raise TransportError(f"Invalid Telegram message id: {external_message_id!r}") from e
        payload = {"chat_id": target, "message_id": message_id}
        body = await asyncio.to_thread(self._call, "deleteMessage", payload)
        return bool(body.get("result"))
