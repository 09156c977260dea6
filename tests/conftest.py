"""Shared test fixtures and helpers."""

from __future__ import annotations

from backoffice.core.config import NotificationConfig
from backoffice.notifications.engine import NotificationEngine
from backoffice.notifications.storage import MemoryStorage
from backoffice.sources.adapters.fixture import create_fixture_sources
from backoffice.sources.models import OrderEntity, QuestionEntity, ReviewEntity, SingleLead
from backoffice.sources.registry import SourceRegistry

BASE_TIME = 1_714_640_000_000  # 2024-05-02T08:53:20Z


class FakeClock:
    """Manually advanced epoch-millis clock."""

    def __init__(self, start: int = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class FakeMonotonic:
    """Manually advanced monotonic clock in seconds."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def make_order(order_id: str, status: str = "pending", amount: float = 1000, customer: str = "Test Customer"):
    return OrderEntity(id=order_id, status=status, total_amount=amount, customer_name=customer)


def make_review(review_id: str, title: str | None = "Great", comment: str | None = None, created_at=None):
    return ReviewEntity(id=review_id, title=title, comment=comment, created_at=created_at)


def make_question(question_id: str, text: str = "Is it in stock?"):
    return QuestionEntity(id=question_id, question_text=text)


def make_lead(lead_id: str, buyer: str = "Acme Traders", product: str = "Cotton Kurta"):
    return SingleLead(id=lead_id, buyer_name=buyer, product_name=product)


def make_engine(
    storage: MemoryStorage | None = None,
    *,
    empty: bool = True,
    clock: FakeClock | None = None,
    monotonic: FakeMonotonic | None = None,
    toasts=None,
    timeout_seconds: float = 1.0,
    **config_overrides,
):
    """Engine over fixture sources; returns ``(engine, sources_by_name, storage)``."""
    storage = storage if storage is not None else MemoryStorage()
    sources = create_fixture_sources(empty=empty, timeout_seconds=timeout_seconds)
    config_overrides.setdefault("poll_interval_seconds", 3600.0)
    config = NotificationConfig(**config_overrides)
    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock
    if monotonic is not None:
        kwargs["monotonic"] = monotonic
    engine = NotificationEngine(SourceRegistry(sources), storage, config, toasts=toasts, **kwargs)
    return engine, {s.name: s for s in sources}, storage
