"""
Activity log

Bounded, append-only ring of operator-facing events. Each entry is
mirrored to the "bot" logger. Decision logic never reads it.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Deque

from .types import Severity

logger = logging.getLogger("bot")

ACTIVITY_LOG_CAPACITY = 100

_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class LogEntry:
    id: str
    timestamp: datetime
    severity: Severity
    message: str
    instrument: str | None = None

    def __str__(self) -> str:
        pair = f" [{self.instrument}]" if self.instrument else ""
        return f"{self.timestamp:%H:%M:%S} {self.severity.value}{pair} {self.message}"


class ActivityLog:
    """FIFO ring buffer of LogEntry objects; the oldest entry is evicted first."""

    def __init__(self, capacity: int = ACTIVITY_LOG_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: Deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(
        self,
        message: str,
        severity: Severity = Severity.INFO,
        instrument: str | None = None,
    ) -> LogEntry:
        severity = Severity(severity)
        entry = LogEntry(
            id=uuid.uuid4().hex[:9],
            timestamp=datetime.now(timezone.utc),
            severity=severity,
            message=message,
            instrument=instrument,
        )
        with self._lock:
            self._entries.append(entry)

        prefix = f"[{instrument}] " if instrument else ""
        logger.log(_LEVELS[severity], f"{prefix}{message}")
        return entry

    def entries(self) -> list[LogEntry]:
        """Entries newest-first, for display."""
        with self._lock:
            return list(reversed(self._entries))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
