"""Core type definitions shared across back-office modules."""

from __future__ import annotations

import time
from enum import StrEnum


class SourceType(StrEnum):
    """Notification category, one per logical backend collection."""

    ORDER = "order"
    REVIEW = "review"
    QUESTION = "question"
    LEAD = "lead"


class ConnectionStatus(StrEnum):
    """Source adapter / push channel health."""

    CONNECTED = "connected"
    DEGRADED = "degraded"
    DISCONNECTED = "disconnected"


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)
