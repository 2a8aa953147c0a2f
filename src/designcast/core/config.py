"""Core configuration dataclasses and table builders.

We keep config file loading outside the core, but these dataclasses define
the shape the core expects so adapters and app layers can build safely. The
builders normalize raw JSON-shaped dicts into immutable lookup tables that
are loaded once at startup and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from designcast.core.errors import ConfigError
from designcast.core.models import (
    PRIORITIES,
    PRIORITY_CRITICAL,
    PRIORITY_NORMAL,
    CommitTypeDescriptor,
    DestinationPolicy,
)

THROTTLE_KEY_PRIORITY = "priority"
THROTTLE_KEY_COMMIT_TYPE = "commit_type"

DEFAULT_COMMIT_TYPES: tuple[dict, ...] = (
    {"name": "feat", "emoji": "✨", "label": "Feature", "notify": True},
    {"name": "fix", "emoji": "🐛", "label": "Fix", "notify": True},
    {"name": "update", "emoji": "🔄", "label": "Update", "notify": True},
    # Patches only go out when forced with "!".
    {"name": "patch", "emoji": "🩹", "label": "Patch", "notify": False},
    {"name": "docs", "emoji": "📚", "label": "Documentation", "notify": False},
    {"name": "style", "emoji": "💄", "label": "Style", "notify": False},
    {"name": "refactor", "emoji": "♻️", "label": "Refactor", "notify": True},
    {"name": "perf", "emoji": "⚡", "label": "Performance", "notify": True},
    {"name": "test", "emoji": "🧪", "label": "Test", "notify": False},
    {"name": "chore", "emoji": "🔧", "label": "Chore", "notify": False},
    {
        "name": "breaking",
        "emoji": "🚨",
        "label": "BREAKING",
        "notify": True,
        "priority": PRIORITY_CRITICAL,
    },
)

BREAKING_TYPE = "breaking"


@dataclass(frozen=True)
class GuardConfig:
    """Dedup, rate limit and retention windows, all in seconds."""

    dedup_window_seconds: float = 5 * 60
    fingerprint_bucket_seconds: float = 10
    rate_window_seconds: float = 30
    max_requests_per_window: int = 5
    message_retention_seconds: float = 24 * 60 * 60
    cleanup_interval_seconds: float = 60
    send_timeout_seconds: float = 10


@dataclass(frozen=True)
class ThrottleConfig:
    """Which value keys the throttle table, and the hard fallback window."""

    key: str = THROTTLE_KEY_PRIORITY
    default_minutes: int = 0


@dataclass(frozen=True)
class FormatterConfig:
    """Notification rendering settings consumed by the formatter."""

    breaking_type: str = BREAKING_TYPE
    attention_group: Optional[str] = "designers"
    source_url_template: str = "https://www.figma.com/file/{source_id}"
    link_label: str = "View in Figma"


def build_commit_types(
    raw_types: Optional[Iterable[dict]] = None,
) -> Mapping[str, CommitTypeDescriptor]:
    """Normalize commit type configs into a read-only lookup keyed by name."""

    if raw_types is None:
        raw_types = DEFAULT_COMMIT_TYPES

    table: dict[str, CommitTypeDescriptor] = {}
    for entry in raw_types:
        name = str(entry.get("name", "")).strip().lower()
        if not name or not name.isalnum():
            raise ConfigError(f"Commit type names must be alphanumeric: {entry!r}")
        if name in table:
            raise ConfigError(f"Duplicate commit type: {name}")
        priority = entry.get("priority", PRIORITY_NORMAL)
        if priority not in PRIORITIES:
            raise ConfigError(f"Unknown priority {priority!r} for commit type {name}")
        table[name] = CommitTypeDescriptor(
            name=name,
            emoji=entry.get("emoji", ""),
            label=entry.get("label", name.capitalize()),
            default_notify=bool(entry.get("notify", True)),
            priority=priority,
            color=entry.get("color"),
        )

    if not table:
        raise ConfigError("At least one commit type is required")
    return MappingProxyType(table)


def _type_set(values: Iterable[str], commit_types: Mapping[str, CommitTypeDescriptor], label: str) -> frozenset:
    normalized = frozenset(str(value).lower() for value in values or [])
    unknown = normalized - set(commit_types)
    if unknown:
        raise ConfigError(f"Unknown commit type(s) in {label}: {', '.join(sorted(unknown))}")
    return normalized


def build_destinations(
    raw_destinations: Iterable[dict],
    commit_types: Mapping[str, CommitTypeDescriptor],
) -> Mapping[str, DestinationPolicy]:
    """Normalize destination configs into a read-only lookup keyed by id.

    Disabled entries are skipped, mirroring how sources are enabled and
    disabled without deleting them from the config file.
    """

    table: dict[str, DestinationPolicy] = {}
    for entry in raw_destinations:
        if not entry.get("enabled", True):
            continue
        destination_id = entry.get("id")
        if not destination_id:
            raise ConfigError(f"Destination entry without id: {entry!r}")
        send_target = entry.get("send_target")
        if not send_target:
            raise ConfigError(f"Destination {destination_id} has no send_target")

        rules = entry.get("rules", {})
        label = f"destination {destination_id}"
        always_notify = _type_set(rules.get("always_notify", []), commit_types, label)
        never_notify = _type_set(rules.get("never_notify", []), commit_types, label)
        overlap = always_notify & never_notify
        if overlap:
            raise ConfigError(
                f"Commit type(s) both always and never notified in {label}: {', '.join(sorted(overlap))}"
            )

        raw_throttle = entry.get("throttle_minutes")
        throttle_minutes = None
        if raw_throttle is not None:
            throttle_minutes = MappingProxyType(
                {str(key).lower(): int(value) for key, value in raw_throttle.items()}
            )

        table[destination_id] = DestinationPolicy(
            destination_id=destination_id,
            display_name=entry.get("name", destination_id),
            send_target=str(send_target),
            always_notify=always_notify,
            never_notify=never_notify,
            throttle_minutes=throttle_minutes,
        )
    return MappingProxyType(table)


def build_mention_groups(raw_groups: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    """Return a read-only mention table with lower-cased keys."""

    return MappingProxyType({str(key).lower(): str(value) for key, value in (raw_groups or {}).items()})


def build_guard_config(raw: Optional[Mapping]) -> GuardConfig:
    raw = raw or {}
    defaults = GuardConfig()
    return GuardConfig(
        dedup_window_seconds=float(raw.get("dedup_window_seconds", defaults.dedup_window_seconds)),
        fingerprint_bucket_seconds=float(
            raw.get("fingerprint_bucket_seconds", defaults.fingerprint_bucket_seconds)
        ),
        rate_window_seconds=float(raw.get("rate_window_seconds", defaults.rate_window_seconds)),
        max_requests_per_window=int(raw.get("max_requests_per_window", defaults.max_requests_per_window)),
        message_retention_seconds=float(
            raw.get("message_retention_seconds", defaults.message_retention_seconds)
        ),
        cleanup_interval_seconds=float(raw.get("cleanup_interval_seconds", defaults.cleanup_interval_seconds)),
        send_timeout_seconds=float(raw.get("send_timeout_seconds", defaults.send_timeout_seconds)),
    )


def build_throttle_config(raw: Optional[Mapping]) -> ThrottleConfig:
    raw = raw or {}
    key = raw.get("key", THROTTLE_KEY_PRIORITY)
    if key not in {THROTTLE_KEY_PRIORITY, THROTTLE_KEY_COMMIT_TYPE}:
        raise ConfigError(f"Unsupported throttle key: {key}")
    return ThrottleConfig(key=key, default_minutes=int(raw.get("default_minutes", 0)))


def build_formatter_config(raw: Optional[Mapping]) -> FormatterConfig:
    raw = raw or {}
    defaults = FormatterConfig()
    return FormatterConfig(
        breaking_type=raw.get("breaking_type", defaults.breaking_type),
        attention_group=raw.get("attention_group", defaults.attention_group),
        source_url_template=raw.get("source_url_template", defaults.source_url_template),
        link_label=raw.get("link_label", defaults.link_label),
    )
