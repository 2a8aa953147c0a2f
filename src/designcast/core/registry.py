"""Bookkeeping for sent notifications so they can be retracted."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Dict, List, Optional

from designcast.core.errors import TransportError
from designcast.core.models import (
    RetractOutcome,
    RetractStatus,
    SendReceipt,
    SentMessageRecord,
)
from designcast.core.ports import MessengerPort

LOGGER = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 24 * 60 * 60


class MessageRegistry:
    """Sent-message records keyed by request fingerprint.

    Records expire after ``retention_seconds`` once ``cleanup`` runs. A
    failed delete leaves the record in place so the caller can try again.
    """

    def __init__(self, retention_seconds: float = DEFAULT_RETENTION_SECONDS) -> None:
        self._retention = retention_seconds
        self._lock = threading.Lock()
        self._records: Dict[str, SentMessageRecord] = {}

    def record(
        self,
        fingerprint: str,
        receipt: SendReceipt,
        send_target: str,
        destination_id: str,
        commit_type: str,
        now: float,
    ) -> SentMessageRecord:
        """Store the receipt of a successful send."""

        record = SentMessageRecord(
            fingerprint=fingerprint,
            send_target=send_target,
            external_message_id=receipt.external_message_id,
            sent_at=now,
            destination_id=destination_id,
            commit_type=commit_type,
        )
        with self._lock:
            self._records[fingerprint] = record
        LOGGER.info("Stored message %s for %s", receipt.external_message_id, fingerprint)
        return record

    def get(self, fingerprint: str) -> Optional[SentMessageRecord]:
        with self._lock:
            return self._records.get(fingerprint)

    def list(self) -> List[SentMessageRecord]:
        with self._lock:
            return sorted(self._records.values(), key=lambda record: record.sent_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _forget(self, fingerprint: str, record: SentMessageRecord) -> None:
        with self._lock:
            # Only drop the exact record we deleted; a newer send may have replaced it.
            if self._records.get(fingerprint) is record:
                del self._records[fingerprint]

    async def retract(
        self,
        fingerprint: str,
        messenger: MessengerPort,
        timeout: Optional[float] = None,
    ) -> RetractOutcome:
        """Delete the message sent for ``fingerprint``. Never retries."""

        record = self.get(fingerprint)
        if record is None:
            LOGGER.info("No message tracked for %s (%s stored)", fingerprint, len(self))
            return RetractOutcome(RetractStatus.NOT_FOUND, f"no message tracked for {fingerprint}")

        try:
            deleted = await asyncio.wait_for(
                messenger.delete(record.send_target, record.external_message_id),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            LOGGER.error("Delete of %s timed out", record.external_message_id)
            return RetractOutcome(RetractStatus.DELETE_FAILED, "delete timed out", record)
        except (TransportError, OSError) as exc:
            LOGGER.error("Delete of %s failed: %s", record.external_message_id, exc)
            return RetractOutcome(RetractStatus.DELETE_FAILED, f"delete failed: {exc}", record)

        if not deleted:
            LOGGER.error("Delete of %s was not confirmed", record.external_message_id)
            return RetractOutcome(RetractStatus.DELETE_FAILED, "delete not confirmed", record)

        self._forget(fingerprint, record)
        LOGGER.info("Deleted message %s for %s", record.external_message_id, fingerprint)
        return RetractOutcome(RetractStatus.DELETED, "message deleted", record)

    def cleanup(self, now: float) -> int:
        """Drop records older than the retention window; return removals."""

        with self._lock:
            expired = [fp for fp, record in self._records.items() if now - record.sent_at >= self._retention]
            for fingerprint in expired:
                del self._records[fingerprint]
        return len(expired)
