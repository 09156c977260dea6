"""Notification data models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backoffice.core.types import SourceType, now_millis


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Notification(_CamelModel):
    """One surfaced event in the operator feed."""

    id: str
    source_type: SourceType
    source_id: str
    title: str
    message: str
    timestamp: int = Field(default_factory=now_millis)
    read: bool = False

    @property
    def dedup_key(self) -> str:
        return dedup_key(self.source_type, self.source_id)


class NotificationCounts(_CamelModel):
    """Per-category counters."""

    order: int = 0
    review: int = 0
    question: int = 0
    lead: int = 0

    def get(self, category: SourceType) -> int:
        return getattr(self, category.value)

    @property
    def total(self) -> int:
        return self.order + self.review + self.question + self.lead


class PersistedFeed(_CamelModel):
    """Layout of the ``notifications`` storage key."""

    items: list[Notification] = Field(default_factory=list)
    last_updated: int = Field(default_factory=now_millis)


class NotificationState(_CamelModel):
    """Snapshot handed to consumers."""

    counts: NotificationCounts = Field(default_factory=NotificationCounts)
    items: list[Notification] = Field(default_factory=list)
    pending: NotificationCounts = Field(default_factory=NotificationCounts)
    new_since_seen: NotificationCounts = Field(default_factory=NotificationCounts)
    last_checked: int | None = None


def dedup_key(source_type: SourceType | str, source_id: str) -> str:
    return f"{SourceType(source_type)}-{source_id}"


def notification_id(source_type: SourceType, source_id: str, timestamp: int) -> str:
    return f"{source_type}-{source_id}-{timestamp}"
