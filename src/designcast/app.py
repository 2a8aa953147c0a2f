"""Application entry point for designcast."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional, TextIO

from art import text2art
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from designcast import settings
from designcast.adapters.figma_mapper import PasscodeError, build_event, verify_passcode
from designcast.adapters.telegram_bot_notifier import TelegramBotMessenger
from designcast.adapters.telethon_notifier import TelethonMessenger
from designcast.client import build_client, start_bot
from designcast.core.commit_parser import CommitParser
from designcast.core.guard import GuardState
from designcast.core.policy import decide
from designcast.core.processor import NotificationProcessor

NAME = "DESIGNCAST"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    # stderr keeps stdout clean for the JSON outcome stream.
    print(text2art(NAME, font=FONT, space=1), file=sys.stderr)


class _RedactingFormatter(logging.Formatter):
    """Mask bot tokens and webhook secrets wherever they reach a log line."""

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


def _configure_logging(config: Optional[dict] = None) -> None:
    config = settings.LOGGING if config is None else config
    config = config or {}
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
        path = file_cfg.get("path", "logs/designcast.log")
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


async def _build_messenger():
    # Select the messenger adapter based on configuration to keep the core
    # processor independent from delivery details.
    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        return TelegramBotMessenger(bot_token, timeout=settings.GUARD.send_timeout_seconds), None
    if settings.NOTIFICATION_METHOD == "telethon":
        client = await start_bot(build_client())
        return TelethonMessenger(client), client
    raise RuntimeError("notification_method must be 'bot' or 'telethon'")


def _build_processor(messenger) -> NotificationProcessor:
    return NotificationProcessor(
        destinations=settings.DESTINATIONS,
        commit_types=settings.COMMIT_TYPES,
        mention_groups=settings.MENTION_GROUPS,
        messenger=messenger,
        guard_config=settings.GUARD,
        throttle_config=settings.THROTTLE,
        formatter_config=settings.FORMATTER,
    )


async def handle_request(processor: NotificationProcessor, request: dict, secret: Optional[str]) -> dict:
    """Dispatch one decoded request line to the processor.

    Requests are webhook bodies, or ``{"action": "retract" | "inspect", ...}``.
    """

    action = request.get("action", "publish")
    if action == "retract":
        if request.get("fingerprint"):
            outcome = await processor.retract_by_fingerprint(request["fingerprint"])
        elif request.get("target") and request.get("message_id"):
            outcome = await processor.retract_direct(request["target"], str(request["message_id"]))
        else:
            return {"error": "Either fingerprint or both target and message_id are required"}
        return outcome.to_dict()

    if action == "inspect":
        fingerprint = request.get("fingerprint")
        if fingerprint:
            record = processor.inspect(fingerprint)
            if record is None:
                return {"error": "Message not found", "fingerprint": fingerprint}
            return {"message": record.to_dict()}
        return {"messages": [record.to_dict() for record in processor.inspect()]}

    if action != "publish":
        return {"error": f"Unsupported action: {action}"}

    try:
        verify_passcode(request, secret)
    except PasscodeError as e:
        LOGGER.warning("Rejected webhook: %s", e)
        return {"error": "Authentication failed", "reason": str(e)}

    event = build_event(request)
    LOGGER.info("Received %s for %s", event.event_type, event.destination_label or event.destination_id)
    outcome = await processor.handle_event(event)
    return outcome.to_dict()


async def _serve(stream: TextIO, out: TextIO) -> None:
    messenger, client = await _build_messenger()
    processor = _build_processor(messenger)
    secret = os.getenv("FIGMA_WEBHOOK_SECRET")

    stop = asyncio.Event()
    cleanup_task = asyncio.create_task(processor.run_cleanup(stop))
    try:
        while True:
            # Reading stdin blocks, so it runs in a worker thread and the
            # cleanup task keeps its cadence between requests.
            line = await asyncio.to_thread(stream.readline)
            if not line:
                break
            if not line.strip():
                continue
            try:
                request = json.loads(line)
            except json.JSONDecodeError as e:
                result: dict[str, Any] = {"error": f"Invalid JSON: {e.msg}"}
            else:
                try:
                    result = await handle_request(processor, request, secret)
                except Exception:
                    LOGGER.exception("Error while processing request")
                    result = {"error": "Internal error"}
            out.write(json.dumps(result, ensure_ascii=False) + "\n")
            out.flush()
    finally:
        stop.set()
        await cleanup_task
        if client is not None:
            await client.disconnect()


def _run(input_path: Optional[str]) -> None:
    _print_banner()
    load_dotenv()
    _configure_logging()
    LOGGER.info("Starting designcast with %s destinations", len(settings.DESTINATIONS))

    if input_path:
        with open(input_path, "r", encoding="utf-8") as handle:
            asyncio.run(_serve(handle, sys.stdout))
    else:
        asyncio.run(_serve(sys.stdin, sys.stdout))


def _parse(text: str, destination_id: Optional[str]) -> None:
    console = Console()
    parser = CommitParser(settings.COMMIT_TYPES, breaking_type=settings.FORMATTER.breaking_type)
    parsed = parser.parse(text)

    summary = Table(title="Parsed commit", show_header=False)
    for key, value in parsed.to_dict().items():
        summary.add_row(key, ", ".join(value) if isinstance(value, list) else str(value))
    console.print(summary)

    destinations = settings.DESTINATIONS
    if destination_id:
        destinations = {k: v for k, v in destinations.items() if k == destination_id}

    # A fresh guard: previews never see throttle state.
    guard = GuardState(settings.GUARD)
    decisions = Table(title="Decisions")
    decisions.add_column("Destination")
    decisions.add_column("Notify")
    decisions.add_column("Reason")
    for destination in destinations.values():
        decision = decide(parsed, destination, guard, 0.0, settings.COMMIT_TYPES, settings.THROTTLE)
        decisions.add_row(
            destination.display_name,
            "yes" if decision.should_send else "no",
            decision.reason,
        )
    console.print(decisions)


def _check_config() -> None:
    console = Console()
    table = Table(title=f"Destinations ({settings.CONFIG_PATH})")
    table.add_column("File key")
    table.add_column("Name")
    table.add_column("Target")
    table.add_column("Always")
    table.add_column("Never")
    table.add_column("Throttle (min)")
    for destination in settings.DESTINATIONS.values():
        throttle = destination.throttle_minutes
        table.add_row(
            destination.destination_id,
            destination.display_name,
            destination.send_target,
            ", ".join(sorted(destination.always_notify)),
            ", ".join(sorted(destination.never_notify)),
            ", ".join(f"{k}={v}" for k, v in throttle.items()) if throttle is not None else "off",
        )
    console.print(table)
    console.print(f"{len(settings.COMMIT_TYPES)} commit types, {len(settings.MENTION_GROUPS)} mention groups")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="designcast")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Process newline-delimited JSON requests")
    run_parser.add_argument("--input", help="Read requests from a file instead of stdin")

    parse_parser = subparsers.add_parser("parse", help="Classify a description and preview decisions")
    parse_parser.add_argument("text")
    parse_parser.add_argument("--destination", help="Only preview this file key")

    subparsers.add_parser("check-config", help="Validate config.json and list destinations")

    args = parser.parse_args(argv)
    if args.command == "parse":
        _parse(args.text, args.destination)
        return
    if args.command == "check-config":
        _check_config()
        return
    _run(getattr(args, "input", None))


if __name__ == "__main__":
    main()
