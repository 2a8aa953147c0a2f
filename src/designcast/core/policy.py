"""Notification policy evaluation (core domain)."""

from __future__ import annotations

import math
from typing import Mapping, Optional

from designcast.core.config import THROTTLE_KEY_COMMIT_TYPE, ThrottleConfig
from designcast.core.guard import GuardState
from designcast.core.models import (
    PRIORITY_NORMAL,
    CommitTypeDescriptor,
    DestinationPolicy,
    NotificationDecision,
    ParsedCommit,
)

REASON_FORCED = "forced"
REASON_NEVER_NOTIFY = "never-notify type"
REASON_ALWAYS_NOTIFY = "always-notify type"
REASON_DEFAULT_SILENT = "default non-notifying type"
REASON_CRITERIA_MET = "criteria met"


def _throttle_key(
    commit: ParsedCommit,
    commit_types: Mapping[str, CommitTypeDescriptor],
    throttle: ThrottleConfig,
) -> str:
    if throttle.key == THROTTLE_KEY_COMMIT_TYPE:
        descriptor = commit_types.get(commit.type)
        return descriptor.priority if descriptor else PRIORITY_NORMAL
    return commit.priority


def required_window_minutes(
    commit: ParsedCommit,
    policy: DestinationPolicy,
    commit_types: Mapping[str, CommitTypeDescriptor],
    throttle: ThrottleConfig,
) -> Optional[int]:
    """Return the throttle window for this commit, or None if unthrottled."""

    if policy.throttle_minutes is None:
        return None
    key = _throttle_key(commit, commit_types, throttle)
    if key in policy.throttle_minutes:
        return policy.throttle_minutes[key]
    if PRIORITY_NORMAL in policy.throttle_minutes:
        return policy.throttle_minutes[PRIORITY_NORMAL]
    return throttle.default_minutes


def _throttle_check(
    commit: ParsedCommit,
    policy: DestinationPolicy,
    guard: GuardState,
    now: float,
    commit_types: Mapping[str, CommitTypeDescriptor],
    throttle: ThrottleConfig,
    pass_reason: str,
) -> NotificationDecision:
    window = required_window_minutes(commit, policy, commit_types, throttle)
    last_sent = guard.last_notified_at(policy.destination_id)
    if window is None or last_sent is None:
        return NotificationDecision(True, pass_reason, throttle_checked=True)

    remaining_seconds = window * 60 - (now - last_sent)
    if remaining_seconds > 0:
        remaining_minutes = math.ceil(remaining_seconds / 60)
        return NotificationDecision(
            False,
            f"throttled: {remaining_minutes} minute(s) remaining",
            throttle_checked=True,
        )
    return NotificationDecision(True, pass_reason, throttle_checked=True)


def decide(
    commit: ParsedCommit,
    policy: DestinationPolicy,
    guard: GuardState,
    now: float,
    commit_types: Mapping[str, CommitTypeDescriptor],
    throttle: Optional[ThrottleConfig] = None,
) -> NotificationDecision:
    """Decide whether a parsed commit should notify this destination.

    Evaluation order, first match wins:
    - invalid commits never notify
    - a forced commit ("type!:") always notifies
    - never-notify types are suppressed
    - always-notify types notify unless throttled
    - types that do not notify by default are suppressed
    - everything else notifies unless throttled

    The evaluator never updates the throttle clock; the caller marks the
    destination as notified only after a successful send.
    """

    throttle = throttle or ThrottleConfig()

    if not commit.is_valid:
        return NotificationDecision(False, commit.reason)

    if commit.forced:
        return NotificationDecision(True, REASON_FORCED)

    if commit.type in policy.never_notify:
        return NotificationDecision(False, REASON_NEVER_NOTIFY)

    if commit.type in policy.always_notify:
        return _throttle_check(commit, policy, guard, now, commit_types, throttle, REASON_ALWAYS_NOTIFY)

    descriptor = commit_types.get(commit.type)
    if descriptor is None or not descriptor.default_notify:
        return NotificationDecision(False, REASON_DEFAULT_SILENT)

    return _throttle_check(commit, policy, guard, now, commit_types, throttle, REASON_CRITERIA_MET)
