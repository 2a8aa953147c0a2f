"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types. Everything here is immutable;
mutable runtime state lives in ``core.guard`` and ``core.registry``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple

PRIORITY_CRITICAL = "critical"
PRIORITY_HIGH = "high"
PRIORITY_NORMAL = "normal"

PRIORITIES = (PRIORITY_CRITICAL, PRIORITY_HIGH, PRIORITY_NORMAL)


@dataclass(frozen=True)
class RawEvent:
    """One inbound publish event, created per webhook call."""

    event_type: str
    destination_id: str
    destination_label: str
    description: str
    triggered_by: str
    arrival_timestamp: float


@dataclass(frozen=True)
class CommitTypeDescriptor:
    """Display and default-notify settings for one commit type."""

    name: str
    emoji: str
    label: str
    default_notify: bool
    priority: str = PRIORITY_NORMAL
    color: Optional[str] = None


@dataclass(frozen=True)
class ParsedCommit:
    """Structured view of a commit-style description.

    When ``is_valid`` is false only ``reason`` and ``raw_text`` are meaningful.
    """

    is_valid: bool
    raw_text: str
    reason: str = ""
    type: str = ""
    scope: Optional[str] = None
    forced: bool = False
    priority: str = PRIORITY_NORMAL
    components: Tuple[str, ...] = ()
    bullet_points: Tuple[str, ...] = ()
    mentions: Tuple[str, ...] = ()
    dev_complete: bool = False
    message: str = ""

    @classmethod
    def invalid(cls, raw_text: str, reason: str) -> "ParsedCommit":
        return cls(is_valid=False, raw_text=raw_text, reason=reason)

    def to_dict(self) -> dict:
        if not self.is_valid:
            return {"is_valid": False, "reason": self.reason, "raw_text": self.raw_text}
        return {
            "is_valid": True,
            "type": self.type,
            "scope": self.scope,
            "forced": self.forced,
            "priority": self.priority,
            "components": list(self.components),
            "bullet_points": list(self.bullet_points),
            "mentions": list(self.mentions),
            "dev_complete": self.dev_complete,
            "message": self.message,
            "raw_text": self.raw_text,
        }


@dataclass(frozen=True)
class DestinationPolicy:
    """Notification policy for one monitored design library.

    ``throttle_minutes`` maps a throttle key (usually a priority) to the
    minimum number of minutes between notifications. ``None`` disables
    throttling for the destination.
    """

    destination_id: str
    display_name: str
    send_target: str
    always_notify: frozenset = frozenset()
    never_notify: frozenset = frozenset()
    throttle_minutes: Optional[Mapping[str, int]] = None


@dataclass(frozen=True)
class NotificationDecision:
    """Whether to notify, with a human-readable reason."""

    should_send: bool
    reason: str
    # Set when the decision passed through the throttle check.
    throttle_checked: bool = False


@dataclass(frozen=True)
class AdmitResult:
    """Outcome of the dedup and rate guard for one inbound event."""

    fingerprint: str
    admitted: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class SendReceipt:
    """Return receipt from the send capability."""

    ok: bool
    external_message_id: str


@dataclass(frozen=True)
class SentMessageRecord:
    """A sent notification kept around so it can be retracted later."""

    fingerprint: str
    send_target: str
    external_message_id: str
    sent_at: float
    destination_id: str
    commit_type: str

    def to_dict(self) -> dict:
        return {
            "fingerprint": self.fingerprint,
            "send_target": self.send_target,
            "external_message_id": self.external_message_id,
            "sent_at": self.sent_at,
            "destination_id": self.destination_id,
            "commit_type": self.commit_type,
        }


@dataclass(frozen=True)
class ContentBlock:
    """One destination-agnostic block of a notification.

    Kinds: ``mentions``, ``attention``, ``title``, ``bullets``, ``message``,
    ``footer``. Adapters decide how each kind is marked up.

    ``code`` names tokens inside ``lines`` that should render as inline code,
    such as the component names in a title.
    """

    kind: str
    lines: Tuple[str, ...]
    emphasis: bool = False
    code: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MessageContent:
    """Rendered notification, independent of the delivery channel."""

    title: str
    blocks: Tuple[ContentBlock, ...]
    fallback_text: str
    link_url: str
    link_label: str
    priority: str = PRIORITY_NORMAL
    color: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "blocks": [
                {"kind": block.kind, "lines": list(block.lines), "emphasis": block.emphasis}
                for block in self.blocks
            ],
            "fallback_text": self.fallback_text,
            "link_url": self.link_url,
            "link_label": self.link_label,
            "priority": self.priority,
            "color": self.color,
        }


@dataclass(frozen=True)
class SendOutcome:
    """Result of handing rendered content to the send capability."""

    ok: bool
    external_message_id: Optional[str] = None
    error: Optional[str] = None


class EventStatus(str, Enum):
    DUPLICATE = "duplicate"
    RATE_LIMITED = "rate_limited"
    IGNORED = "ignored"
    NOT_MONITORED = "not_monitored"
    SKIPPED = "skipped"
    SENT = "sent"
    SEND_FAILED = "send_failed"


@dataclass(frozen=True)
class EventOutcome:
    """Everything the caller needs to answer one inbound event."""

    fingerprint: str
    admitted: bool
    status: EventStatus
    reason: str
    parsed: Optional[ParsedCommit] = None
    decision: Optional[NotificationDecision] = None
    content: Optional[MessageContent] = None
    send_outcome: Optional[SendOutcome] = None

    def to_dict(self) -> dict:
        payload: dict = {
            "fingerprint": self.fingerprint,
            "admitted": self.admitted,
            "status": self.status.value,
            "reason": self.reason,
        }
        if self.parsed is not None:
            payload["parsed"] = self.parsed.to_dict()
        if self.decision is not None:
            payload["decision"] = {
                "should_send": self.decision.should_send,
                "reason": self.decision.reason,
            }
        if self.content is not None:
            payload["content"] = self.content.to_dict()
        if self.send_outcome is not None:
            payload["send_outcome"] = {
                "ok": self.send_outcome.ok,
                "external_message_id": self.send_outcome.external_message_id,
                "error": self.send_outcome.error,
            }
        return payload


class RetractStatus(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    DELETE_FAILED = "delete_failed"


@dataclass(frozen=True)
class RetractOutcome:
    """Result of retracting a previously sent notification."""

    status: RetractStatus
    reason: str
    record: Optional[SentMessageRecord] = field(default=None, compare=False)

    @property
    def success(self) -> bool:
        return self.status is RetractStatus.DELETED

    def to_dict(self) -> dict:
        payload: dict = {
            "success": self.success,
            "status": self.status.value,
            "reason": self.reason,
        }
        if self.record is not None:
            payload["record"] = self.record.to_dict()
        return payload
