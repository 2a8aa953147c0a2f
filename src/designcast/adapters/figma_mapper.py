"""Figma-webhook-to-core event mapping adapter.

This keeps Figma payload details (field names, passcode handling) out of the
core pipeline.
"""

from __future__ import annotations

import hmac
import time
from typing import Any, Mapping, Optional

from designcast.core.models import RawEvent

UNKNOWN_HANDLE = "unknown"


class PasscodeError(Exception):
    """The webhook passcode was missing or did not match."""


def verify_passcode(payload: Mapping[str, Any], secret: Optional[str]) -> None:
    """Raise PasscodeError unless the payload carries the configured passcode.

    Figma sends the passcode in the request body rather than a signature
    header, so both the secret and the passcode must be present.
    """

    provided = payload.get("passcode")
    if not secret or not provided:
        raise PasscodeError("Missing webhook secret or passcode")
    if not hmac.compare_digest(str(provided).encode("utf-8"), secret.encode("utf-8")):
        raise PasscodeError("Invalid passcode")


def _triggered_by_handle(payload: Mapping[str, Any]) -> str:
    triggered_by = payload.get("triggered_by")
    if isinstance(triggered_by, Mapping):
        handle = triggered_by.get("handle")
        if isinstance(handle, str) and handle:
            return handle
    return UNKNOWN_HANDLE


def build_event(payload: Mapping[str, Any], arrival_timestamp: Optional[float] = None) -> RawEvent:
    """Build a core RawEvent from a decoded Figma webhook body."""

    return RawEvent(
        event_type=str(payload.get("event_type", "")),
        destination_id=str(payload.get("file_key", "")),
        destination_label=str(payload.get("file_name", "")),
        description=payload.get("description") or "",
        triggered_by=_triggered_by_handle(payload),
        arrival_timestamp=time.time() if arrival_timestamp is None else arrival_timestamp,
    )
