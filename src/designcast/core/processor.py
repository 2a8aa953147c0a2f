"""Core publish-event processing pipeline.

This module is integration-agnostic. It only relies on ports for messaging
and time, enabling other webhook frontends or messengers without changes
here. The pipeline enforces a strict order:

1) Dedup and rate guard (reject early)
2) Event type filter and destination lookup
3) Parse the commit description
4) Evaluate the destination's notification policy
5) Render, send, then record the sent message and the throttle mark
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Mapping, Optional, Union

from designcast.core.commit_parser import CommitParser
from designcast.core.config import FormatterConfig, GuardConfig, ThrottleConfig
from designcast.core.errors import TransportError
from designcast.core.formatter import render
from designcast.core.guard import REASON_DUPLICATE, GuardState
from designcast.core.models import (
    CommitTypeDescriptor,
    DestinationPolicy,
    EventOutcome,
    EventStatus,
    RawEvent,
    RetractOutcome,
    RetractStatus,
    SendOutcome,
    SentMessageRecord,
)
from designcast.core.policy import decide
from designcast.core.ports import ClockPort, MessengerPort, SystemClock
from designcast.core.registry import MessageRegistry

LOGGER = logging.getLogger(__name__)

PUBLISH_EVENT_TYPE = "LIBRARY_PUBLISH"


def _longest_throttle_seconds(destinations: Mapping[str, DestinationPolicy], throttle: ThrottleConfig) -> float:
    minutes = [throttle.default_minutes]
    for destination in destinations.values():
        if destination.throttle_minutes:
            minutes.extend(destination.throttle_minutes.values())
    return max(minutes) * 60


class NotificationProcessor:
    """Orchestrates guarding, parsing, policy, rendering and delivery."""

    def __init__(
        self,
        destinations: Mapping[str, DestinationPolicy],
        commit_types: Mapping[str, CommitTypeDescriptor],
        mention_groups: Mapping[str, str],
        messenger: MessengerPort,
        guard_config: Optional[GuardConfig] = None,
        throttle_config: Optional[ThrottleConfig] = None,
        formatter_config: Optional[FormatterConfig] = None,
        clock: Optional[ClockPort] = None,
        guard: Optional[GuardState] = None,
        registry: Optional[MessageRegistry] = None,
    ) -> None:
        self._destinations = destinations
        self._commit_types = commit_types
        self._mention_groups = mention_groups
        self._messenger = messenger
        self._guard_config = guard_config or GuardConfig()
        self._throttle = throttle_config or ThrottleConfig()
        self._formatter_config = formatter_config or FormatterConfig()
        self._clock = clock or SystemClock()
        self._guard = guard or GuardState(self._guard_config)
        self._registry = registry or MessageRegistry(self._guard_config.message_retention_seconds)
        self._parser = CommitParser(commit_types, breaking_type=self._formatter_config.breaking_type)
        self._longest_throttle_seconds = _longest_throttle_seconds(destinations, self._throttle)

    @property
    def guard(self) -> GuardState:
        return self._guard

    @property
    def registry(self) -> MessageRegistry:
        return self._registry

    @property
    def parser(self) -> CommitParser:
        return self._parser

    async def handle_event(self, event: RawEvent) -> EventOutcome:
        """Process one inbound publish event through the core pipeline."""

        now = event.arrival_timestamp
        admit = self._guard.admit(event.destination_id, event.description, event.triggered_by, now)
        if not admit.admitted:
            status = EventStatus.DUPLICATE if admit.reason == REASON_DUPLICATE else EventStatus.RATE_LIMITED
            return EventOutcome(admit.fingerprint, False, status, admit.reason or status.value)

        fingerprint = admit.fingerprint
        if event.event_type != PUBLISH_EVENT_TYPE:
            LOGGER.info("Ignored %s for %s", event.event_type, event.destination_id)
            return EventOutcome(fingerprint, True, EventStatus.IGNORED, f"ignored {event.event_type}")

        destination = self._destinations.get(event.destination_id)
        if destination is None:
            LOGGER.info("File %s (%s) not monitored", event.destination_id, event.destination_label)
            return EventOutcome(fingerprint, True, EventStatus.NOT_MONITORED, "not monitored")

        parsed = self._parser.parse(event.description)
        decision = decide(parsed, destination, self._guard, now, self._commit_types, self._throttle)
        if not decision.should_send:
            LOGGER.info("Skipped %s: %s", fingerprint, decision.reason)
            return EventOutcome(
                fingerprint,
                True,
                EventStatus.SKIPPED,
                decision.reason,
                parsed=parsed,
                decision=decision,
            )

        content = render(
            parsed,
            destination,
            event.triggered_by,
            event.destination_id,
            self._commit_types,
            self._mention_groups,
            self._formatter_config,
        )

        try:
            receipt = await asyncio.wait_for(
                self._messenger.send(destination.send_target, content),
                timeout=self._guard_config.send_timeout_seconds,
            )
        except asyncio.TimeoutError:
            LOGGER.error("Send to %s timed out for %s", destination.send_target, fingerprint)
            send_outcome = SendOutcome(ok=False, error="send timed out")
        except (TransportError, OSError) as exc:
            LOGGER.error("Send to %s failed for %s: %s", destination.send_target, fingerprint, exc)
            send_outcome = SendOutcome(ok=False, error=str(exc))
        else:
            if receipt.ok:
                send_outcome = SendOutcome(ok=True, external_message_id=receipt.external_message_id)
            else:
                send_outcome = SendOutcome(ok=False, error="send not confirmed")

        if not send_outcome.ok:
            return EventOutcome(
                fingerprint,
                True,
                EventStatus.SEND_FAILED,
                send_outcome.error or "send failed",
                parsed=parsed,
                decision=decision,
                content=content,
                send_outcome=send_outcome,
            )

        sent_at = self._clock.now()
        self._registry.record(
            fingerprint,
            receipt,
            destination.send_target,
            destination.destination_id,
            parsed.type,
            sent_at,
        )
        self._guard.mark_notified(destination.destination_id, sent_at)
        LOGGER.info("Sent %s notification for %s: %s", parsed.type, destination.display_name, parsed.message)
        return EventOutcome(
            fingerprint,
            True,
            EventStatus.SENT,
            decision.reason,
            parsed=parsed,
            decision=decision,
            content=content,
            send_outcome=send_outcome,
        )

    async def retract_by_fingerprint(self, fingerprint: str) -> RetractOutcome:
        return await self._registry.retract(
            fingerprint,
            self._messenger,
            timeout=self._guard_config.send_timeout_seconds,
        )

    async def retract_direct(self, target: str, external_message_id: str) -> RetractOutcome:
        """Delete a message by its platform id, bypassing the registry."""

        try:
            deleted = await asyncio.wait_for(
                self._messenger.delete(target, external_message_id),
                timeout=self._guard_config.send_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return RetractOutcome(RetractStatus.DELETE_FAILED, "delete timed out")
        except (TransportError, OSError) as exc:
            LOGGER.error("Delete of %s in %s failed: %s", external_message_id, target, exc)
            return RetractOutcome(RetractStatus.DELETE_FAILED, f"delete failed: {exc}")
        if not deleted:
            return RetractOutcome(RetractStatus.DELETE_FAILED, "delete not confirmed")
        LOGGER.info("Deleted message %s from %s", external_message_id, target)
        return RetractOutcome(RetractStatus.DELETED, "message deleted")

    def inspect(self, fingerprint: Optional[str] = None) -> Union[Optional[SentMessageRecord], List[SentMessageRecord]]:
        """Return one record by fingerprint, or every record when omitted."""

        if fingerprint is None:
            return self._registry.list()
        return self._registry.get(fingerprint)

    def cleanup(self) -> int:
        now = self._clock.now()
        removed = self._guard.cleanup(now, self._longest_throttle_seconds) + self._registry.cleanup(now)
        if removed:
            LOGGER.debug("Cleanup removed %s entries", removed)
        return removed

    async def run_cleanup(self, stop: asyncio.Event) -> None:
        """Prune guard and registry state periodically until ``stop`` is set."""

        interval = self._guard_config.cleanup_interval_seconds
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                self.cleanup()
