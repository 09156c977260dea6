"""Operator notification feed: reconciliation, storage and read state."""

from backoffice.notifications.engine import NotificationEngine
from backoffice.notifications.models import Notification, NotificationCounts, NotificationState
from backoffice.notifications.store import NotificationStore, recompute_counts

__all__ = [
    "Notification",
    "NotificationCounts",
    "NotificationEngine",
    "NotificationState",
    "NotificationStore",
    "recompute_counts",
]
