"""In-memory source adapters with fixture data for development and tests."""

from __future__ import annotations

import asyncio
from typing import Any

from backoffice.core.types import SourceType
from backoffice.sources.base import BaseSourceAdapter
from backoffice.sources.models import (
    BulkRfq,
    OrderEntity,
    QuestionEntity,
    ReviewEntity,
    SingleLead,
    SourceEntity,
)

_FIXTURE_ORDERS: list[dict[str, Any]] = [
    {
        "id": "ORD-10001",
        "status": "pending",
        "customer_name": "Aarav Mehta",
        "total_amount": 2499,
        "created_at": "2024-05-02T09:15:00Z",
    },
    {
        "id": "ORD-10002",
        "status": "processing",
        "customer_name": "Priya Nair",
        "total_amount": 125000,
        "created_at": "2024-05-02T10:40:00Z",
    },
    {
        "id": "ORD-10003",
        "status": "delivered",
        "customer_name": "Rohan Das",
        "total_amount": 799,
        "created_at": "2024-05-01T17:05:00Z",
    },
]

_FIXTURE_REVIEWS: list[dict[str, Any]] = [
    {
        "id": "REV-501",
        "title": "Lovely fabric",
        "comment": "Soft and true to size.",
        "created_at": "2024-05-02T08:00:00Z",
    },
    {
        "id": "REV-502",
        "comment": "Colour faded after the first wash, expected better quality for the price.",
        "created_at": "2024-05-02T11:30:00Z",
    },
]

_FIXTURE_QUESTIONS: list[dict[str, Any]] = [
    {
        "id": "Q-301",
        "question_text": "Is this available in XXL?",
        "created_at": "2024-05-02T07:45:00Z",
    },
    {
        "id": "Q-302",
        "question_text": "Does it ship to Pune?",
        "answers": [{"is_admin": True, "is_active": True}],
        "created_at": "2024-05-01T12:00:00Z",
    },
]

_FIXTURE_LEADS: list[dict[str, Any]] = [
    {
        "id": "LEAD-71",
        "buyer_name": "Kavya Textiles",
        "product_name": "Cotton Kurta",
        "quantity_required": 500,
        "created_at": "2024-05-02T06:20:00Z",
    },
]

_FIXTURE_RFQS: list[dict[str, Any]] = [
    {
        "id": "RFQ-9",
        "buyer_name": "Sharma Retail",
        "items": [
            {"product_name": "Linen Shirt", "quantity_required": 200},
            {"product_name": "Denim Jacket", "quantity_required": 80},
        ],
        "created_at": "2024-05-02T05:55:00Z",
    },
]


class FixtureSource(BaseSourceAdapter):
    """Serves a mutable in-memory page of entities.

    ``add`` simulates a new backend record, ``fail_with`` makes every fetch
    raise, and ``gate`` (when set) holds each fetch until the event fires.
    """

    entity_type: type[SourceEntity]
    fixtures: list[dict[str, Any]] = []

    def __init__(self, name: str, entities: list[SourceEntity] | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("max_retries", 0)
        super().__init__(name, **kwargs)
        if entities is None:
            entities = [self.entity_type(**data) for data in self.fixtures]
        self._entities: list[SourceEntity] = list(entities)
        self._error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls = 0

    @property
    def entities(self) -> list[SourceEntity]:
        return list(self._entities)

    def add(self, entity: SourceEntity) -> None:
        self._entities.insert(0, entity)

    def fail_with(self, error: Exception | None) -> None:
        self._error = error

    async def _do_fetch(self, limit: int) -> list[Any]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self._error is not None:
            raise self._error
        return self._entities[:limit]


class FixtureOrderSource(FixtureSource):
    category = SourceType.ORDER
    entity_type = OrderEntity
    fixtures = _FIXTURE_ORDERS


class FixtureReviewSource(FixtureSource):
    category = SourceType.REVIEW
    entity_type = ReviewEntity
    fixtures = _FIXTURE_REVIEWS


class FixtureQuestionSource(FixtureSource):
    category = SourceType.QUESTION
    entity_type = QuestionEntity
    fixtures = _FIXTURE_QUESTIONS


class FixtureLeadSource(FixtureSource):
    category = SourceType.LEAD
    entity_type = SingleLead
    fixtures = _FIXTURE_LEADS


class FixtureBulkRfqSource(FixtureSource):
    category = SourceType.LEAD
    entity_type = BulkRfq
    fixtures = _FIXTURE_RFQS


def create_fixture_sources(*, empty: bool = False, **kwargs: Any) -> list[FixtureSource]:
    """One fixture adapter per collection; ``empty`` skips the seed data."""
    seed: list[SourceEntity] | None = [] if empty else None
    return [
        FixtureOrderSource("orders", seed, **kwargs),
        FixtureReviewSource("reviews", seed, **kwargs),
        FixtureQuestionSource("questions", seed, **kwargs),
        FixtureLeadSource("leads", seed, **kwargs),
        FixtureBulkRfqSource("bulk_rfqs", seed, **kwargs),
    ]
