"""Transient operator toasts."""

from __future__ import annotations

import logging
from collections import deque

from pydantic import BaseModel, Field

from backoffice.core.types import now_millis

logger = logging.getLogger(__name__)


class Toast(BaseModel):
    kind: str
    message: str
    icon: str = ""
    duration_ms: int = 4000
    created_at: int = Field(default_factory=now_millis)


class ToastBoard:
    """Bounded history of recently shown toasts, newest last."""

    def __init__(self, history: int = 50, duration_ms: int = 4000) -> None:
        self._toasts: deque[Toast] = deque(maxlen=history)
        self._duration_ms = duration_ms

    def show(self, kind: str, message: str, icon: str = "") -> Toast:
        toast = Toast(kind=kind, message=message, icon=icon, duration_ms=self._duration_ms)
        self._toasts.append(toast)
        logger.info("Toast [%s] %s", kind, message)
        return toast

    def recent(self, limit: int | None = None) -> list[Toast]:
        toasts = list(self._toasts)
        return toasts if limit is None else toasts[-limit:]

    def active(self, now: int | None = None) -> list[Toast]:
        """Toasts still within their display duration."""
        now = now if now is not None else now_millis()
        return [t for t in self._toasts if now - t.created_at < t.duration_ms]

    def __len__(self) -> int:
        return len(self._toasts)
