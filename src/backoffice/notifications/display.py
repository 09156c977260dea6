"""Presentation helpers for the notification feed."""

from __future__ import annotations

from datetime import datetime, timezone

from backoffice.core.types import now_millis
from backoffice.notifications.models import Notification

_MINUTE = 60_000
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR


def format_time_ago(timestamp: int, now: int | None = None) -> str:
    """Relative age label: "Just now", "5m ago", "3h ago", "2d ago" or "5 Mar"."""
    now = now if now is not None else now_millis()
    diff = now - timestamp
    if diff < _MINUTE:
        return "Just now"
    if diff < _HOUR:
        return f"{diff // _MINUTE}m ago"
    if diff < _DAY:
        return f"{diff // _HOUR}h ago"
    if diff < 7 * _DAY:
        return f"{diff // _DAY}d ago"
    moment = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    return f"{moment.day} {moment:%b}"


def newest_first(items: list[Notification]) -> list[Notification]:
    return sorted(items, key=lambda n: n.timestamp, reverse=True)
