"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for messaging and time sources so that
the core can be reused with different platforms and driven by a fake clock
in tests.
"""

from __future__ import annotations

import time
from typing import Protocol

from designcast.core.models import MessageContent, SendReceipt


class MessengerPort(Protocol):
    """Send and delete operations required by the core pipeline.

    Implementations raise ``TransportError`` when the platform call fails.
    """

    async def send(self, target: str, content: MessageContent) -> SendReceipt:
        ...

    async def delete(self, target: str, external_message_id: str) -> bool:
        ...


class ClockPort(Protocol):
    """Wall-clock source returning epoch seconds."""

    def now(self) -> float:
        ...


class SystemClock:
    """ClockPort backed by ``time.time``."""

    def now(self) -> float:
        return time.time()
