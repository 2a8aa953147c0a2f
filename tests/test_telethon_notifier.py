from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from designcast.adapters.telethon_notifier import TelethonMessenger, resolve_target
from designcast.core.errors import TransportError
from designcast.core.models import ContentBlock, MessageContent

CONTENT = MessageContent(
    title="🐛 Fix · Foundations",
    blocks=(ContentBlock(kind="message", lines=("contrast",), emphasis=True),),
    fallback_text="🐛 Fix: contrast",
    link_url="https://www.figma.com/file/abc",
    link_label="View in Figma",
)


class DummySent:
    def __init__(self, message_id: int) -> None:
        self.id = message_id


class DummyAffected:
    def __init__(self, pts_count: int) -> None:
        self.pts_count = pts_count


class DummyClient:
    def __init__(self, pts_count: int = 1, fail: bool = False, error: Optional[Exception] = None) -> None:
        self.pts_count = pts_count
        self.fail = fail
        self.error = error
        self.sent: list = []
        self.deleted: list = []

    async def send_message(self, entity, message, parse_mode=None, link_preview=True):
        if self.fail:
            raise ValueError("Cannot find any entity corresponding to nowhere")
        if self.error is not None:
            raise self.error
        self.sent.append((entity, message, parse_mode, link_preview))
        return DummySent(9)

    async def delete_messages(self, entity, message_ids):
        if self.error is not None:
            raise self.error
        self.deleted.append((entity, message_ids))
        return [DummyAffected(self.pts_count)]


def test_resolve_target() -> None:
    assert resolve_target("-1001234") == -1001234
    assert resolve_target("@updates") == "@updates"


def test_send_uses_markdown_and_returns_id() -> None:
    client = DummyClient()
    receipt = asyncio.run(TelethonMessenger(client).send("-1001234", CONTENT))
    assert receipt.external_message_id == "9"
    entity, message, parse_mode, link_preview = client.sent[0]
    assert entity == -1001234
    assert "**contrast**" in message
    assert parse_mode == "Markdown"
    assert link_preview is False


def test_send_failure_raises_transport_error() -> None:
    with pytest.raises(TransportError):
        asyncio.run(TelethonMessenger(DummyClient(fail=True)).send("nowhere", CONTENT))


def test_delete_reports_affected_messages() -> None:
    client = DummyClient()
    assert asyncio.run(TelethonMessenger(client).delete("@updates", "9")) is True
    assert client.deleted == [("@updates", [9])]
    assert asyncio.run(TelethonMessenger(DummyClient(pts_count=0)).delete("@updates", "9")) is False


def test_lost_connection_raises_transport_error() -> None:
    client = DummyClient(error=ConnectionError("Connection to Telegram failed 5 time(s)"))
    with pytest.raises(TransportError, match="send failed"):
        asyncio.run(TelethonMessenger(client).send("@updates", CONTENT))
    with pytest.raises(TransportError, match="delete failed"):
        asyncio.run(TelethonMessenger(client).delete("@updates", "9"))
