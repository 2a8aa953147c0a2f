"""Deduplication and rate guarding (core domain).

Figma may deliver the same publish webhook more than once, and a burst of
publishes on one library should not flood the channel. ``GuardState`` holds
the process-wide maps for both checks plus the per-destination "last
notified" timestamps used by throttling.
"""

from __future__ import annotations

import hashlib
import logging
import math
import threading
from typing import Dict, List, Optional

from designcast.core.config import GuardConfig
from designcast.core.models import AdmitResult

LOGGER = logging.getLogger(__name__)

REASON_DUPLICATE = "duplicate"
REASON_RATE_LIMITED = "rate limit exceeded"


def compute_fingerprint(
    destination_id: str,
    description: str,
    triggered_by: str,
    now: float,
    bucket_seconds: float = 10,
) -> str:
    """Return a fingerprint hash for one logical publish event.

    ``now`` is rounded down to a bucket so near-simultaneous redeliveries
    collapse onto the same fingerprint.
    """

    bucket = math.floor(now / bucket_seconds)
    payload = f"{destination_id}\n{(description or '').strip()}\n{triggered_by}\n{bucket}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class GuardState:
    """Dedup, rate and throttle bookkeeping shared across events.

    Every public method holds the lock for its whole read-modify-write, so
    two in-flight events never observe stale dedup or rate state.
    """

    def __init__(self, config: Optional[GuardConfig] = None) -> None:
        self._config = config or GuardConfig()
        self._lock = threading.Lock()
        self._seen: Dict[str, float] = {}
        self._windows: Dict[str, List[float]] = {}
        self._last_notified: Dict[str, float] = {}

    @property
    def config(self) -> GuardConfig:
        return self._config

    def fingerprint(self, destination_id: str, description: str, triggered_by: str, now: float) -> str:
        return compute_fingerprint(
            destination_id,
            description,
            triggered_by,
            now,
            self._config.fingerprint_bucket_seconds,
        )

    def admit(self, destination_id: str, description: str, triggered_by: str, now: float) -> AdmitResult:
        """Run the duplicate check, then the rate check.

        A duplicate is rejected before it can consume rate budget.
        """

        fingerprint = self.fingerprint(destination_id, description, triggered_by, now)
        with self._lock:
            first_seen = self._seen.get(fingerprint)
            if first_seen is not None and now - first_seen < self._config.dedup_window_seconds:
                LOGGER.info("Duplicate request %s (%.0fms ago)", fingerprint, (now - first_seen) * 1000)
                return AdmitResult(fingerprint=fingerprint, admitted=False, reason=REASON_DUPLICATE)
            self._seen[fingerprint] = now

            window_start = now - self._config.rate_window_seconds
            recent = [ts for ts in self._windows.get(destination_id, []) if ts > window_start]
            if len(recent) >= self._config.max_requests_per_window:
                self._windows[destination_id] = recent
                LOGGER.warning(
                    "Rate limit exceeded for %s: %s requests in last %ss",
                    destination_id,
                    len(recent),
                    self._config.rate_window_seconds,
                )
                return AdmitResult(fingerprint=fingerprint, admitted=False, reason=REASON_RATE_LIMITED)
            recent.append(now)
            self._windows[destination_id] = recent

        LOGGER.info(
            "Admitted %s for %s (%s/%s in window)",
            fingerprint,
            destination_id,
            len(recent),
            self._config.max_requests_per_window,
        )
        return AdmitResult(fingerprint=fingerprint, admitted=True)

    def last_notified_at(self, destination_id: str) -> Optional[float]:
        with self._lock:
            return self._last_notified.get(destination_id)

    def mark_notified(self, destination_id: str, now: float) -> None:
        """Record a successful send; only call after the send went through."""

        with self._lock:
            self._last_notified[destination_id] = now

    def cleanup(self, now: float, notified_retention_seconds: Optional[float] = None) -> int:
        """Drop expired fingerprints, empty rate windows and stale send marks.

        Send marks are kept for the message retention window or
        ``notified_retention_seconds``, whichever is longer, so a throttle
        window longer than the retention still sees its last send.

        Returns the number of entries removed.
        """

        retention = max(self._config.message_retention_seconds, notified_retention_seconds or 0)
        removed = 0
        with self._lock:
            stale = [
                destination_id
                for destination_id, ts in self._last_notified.items()
                if now - ts >= retention
            ]
            for destination_id in stale:
                del self._last_notified[destination_id]
            removed += len(stale)

            expired = [fp for fp, ts in self._seen.items() if now - ts >= self._config.dedup_window_seconds]
            for fingerprint in expired:
                del self._seen[fingerprint]
            removed += len(expired)

            window_start = now - self._config.rate_window_seconds
            for destination_id in list(self._windows):
                recent = [ts for ts in self._windows[destination_id] if ts > window_start]
                if recent:
                    self._windows[destination_id] = recent
                else:
                    del self._windows[destination_id]
                    removed += 1
        return removed

    def snapshot(self) -> dict:
        """Return sizes of the guarded maps, for logging and tests."""

        with self._lock:
            return {
                "seen_fingerprints": len(self._seen),
                "request_windows": len(self._windows),
                "last_notified": len(self._last_notified),
            }
