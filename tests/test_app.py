from __future__ import annotations

import asyncio
import logging

from designcast import app, settings
from designcast.core.models import SendReceipt
from designcast.core.processor import NotificationProcessor

FILE_KEY = "FFGrhBbe4JRpbBIuvOPhNP"


class FakeMessenger:
    def __init__(self) -> None:
        self.sent: list = []

    async def send(self, target, content) -> SendReceipt:
        self.sent.append((target, content))
        return SendReceipt(ok=True, external_message_id="7")

    async def delete(self, target, external_message_id) -> bool:
        return True


def _processor() -> NotificationProcessor:
    return NotificationProcessor(
        destinations=settings.DESTINATIONS,
        commit_types=settings.COMMIT_TYPES,
        mention_groups=settings.MENTION_GROUPS,
        messenger=FakeMessenger(),
    )


def _publish(description: str) -> dict:
    return {
        "event_type": "LIBRARY_PUBLISH",
        "file_key": FILE_KEY,
        "file_name": "TestLibrary",
        "description": description,
        "triggered_by": {"handle": "ana"},
        "passcode": "pw",
    }


def test_publish_inspect_and_retract() -> None:
    processor = _processor()

    async def scenario() -> list[dict]:
        sent = await app.handle_request(processor, _publish("feat(buttons): add hover states"), "pw")
        listed = await app.handle_request(processor, {"action": "inspect"}, "pw")
        one = await app.handle_request(processor, {"action": "inspect", "fingerprint": sent["fingerprint"]}, "pw")
        retracted = await app.handle_request(processor, {"action": "retract", "fingerprint": sent["fingerprint"]}, "pw")
        again = await app.handle_request(processor, {"action": "retract", "fingerprint": sent["fingerprint"]}, "pw")
        return [sent, listed, one, retracted, again]

    sent, listed, one, retracted, again = asyncio.run(scenario())

    assert sent["status"] == "sent"
    assert sent["parsed"]["scope"] == "buttons"
    assert sent["decision"] == {"should_send": True, "reason": "always-notify type"}
    assert len(listed["messages"]) == 1
    assert one["message"]["external_message_id"] == "7"
    assert retracted["success"] is True
    assert again["status"] == "not_found"


def test_bad_passcode_is_rejected() -> None:
    result = asyncio.run(app.handle_request(_processor(), _publish("feat: chips"), "other"))
    assert result["error"] == "Authentication failed"


def test_unknown_action_and_missing_retract_arguments() -> None:
    processor = _processor()
    assert "error" in asyncio.run(app.handle_request(processor, {"action": "explode"}, "pw"))
    assert "error" in asyncio.run(app.handle_request(processor, {"action": "retract"}, "pw"))


def test_redacting_formatter_masks_secrets(monkeypatch) -> None:
    monkeypatch.setenv("BOT_API", "123:abc")
    secrets = app._collect_redaction_values({"redact": {"enabled": True, "patterns": ["BOT_API", "UNSET_VAR"]}})
    assert secrets == ["123:abc"]

    formatter = app._RedactingFormatter(secrets, fmt="%(message)s")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "calling bot123:abc/sendMessage", None, None)
    assert formatter.format(record) == "calling bot***/sendMessage"


def test_redaction_masks_configured_secrets(monkeypatch) -> None:
    monkeypatch.setenv("BOT_API", "123456:ABC-token")
    monkeypatch.setenv("FIGMA_WEBHOOK_SECRET", "hook-secret")
    monkeypatch.delenv("API_HASH", raising=False)
    config = {"redact": {"enabled": True, "patterns": ["BOT_API", "API_HASH", "FIGMA_WEBHOOK_SECRET"]}}

    secrets = app._collect_redaction_values(config)
    formatter = app._RedactingFormatter(secrets, fmt="%(message)s")
    record = logging.LogRecord(
        "designcast", logging.ERROR, __file__, 1, "POST /bot%s/sendMessage with %s", ("123456:ABC-token", "hook-secret"), None
    )

    assert secrets == ["123456:ABC-token", "hook-secret"]
    assert formatter.format(record) == "POST /bot***/sendMessage with ***"


def test_redaction_disabled_collects_nothing(monkeypatch) -> None:
    monkeypatch.setenv("BOT_API", "123456:ABC-token")
    assert app._collect_redaction_values({"redact": {"enabled": False, "patterns": ["BOT_API"]}}) == []


def test_configure_logging_skips_when_disabled(monkeypatch) -> None:
    calls: list = []
    monkeypatch.setattr(app, "load_dotenv", lambda: calls.append("dotenv"))
    app._configure_logging({"enabled": False})
    assert calls == []
