"""Source entity models returned by the backend collections."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backoffice.core.types import SourceType

ACTIONABLE_ORDER_STATUSES: frozenset[str] = frozenset({"pending", "confirmed", "processing"})


class SourceEntity(BaseModel):
    """Common shape of every polled entity: a stable id and a creation time."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    category: ClassVar[SourceType]

    id: str
    created_at: datetime | None = None

    @property
    def source_id(self) -> str:
        return self.id

    @property
    def dedup_key(self) -> str:
        return f"{self.category}-{self.source_id}"


class OrderEntity(SourceEntity):
    category: ClassVar[SourceType] = SourceType.ORDER

    status: str = ""
    customer_name: str = ""
    total_amount: float = 0.0

    @property
    def is_actionable(self) -> bool:
        return self.status in ACTIONABLE_ORDER_STATUSES


class ReviewEntity(SourceEntity):
    category: ClassVar[SourceType] = SourceType.REVIEW

    title: str | None = None
    comment: str | None = None
    is_active: bool = True


class Answer(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_admin: bool = False
    is_active: bool = True


class QuestionEntity(SourceEntity):
    category: ClassVar[SourceType] = SourceType.QUESTION

    question_text: str = ""
    is_active: bool = True
    answers: list[Answer] = Field(default_factory=list)

    @property
    def needs_attention(self) -> bool:
        """Active and without an active operator-authored answer."""
        if not self.is_active:
            return False
        return not any(a.is_admin and a.is_active for a in self.answers)


class LeadItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_name: str = ""
    quantity_required: int | None = None


class SingleLead(SourceEntity):
    """Single-product B2B enquiry."""

    category: ClassVar[SourceType] = SourceType.LEAD

    kind: Literal["single"] = "single"
    buyer_name: str = ""
    company_name: str | None = None
    product_name: str = ""
    quantity_required: int | None = None


class BulkRfq(SourceEntity):
    """Multi-item bulk request for quotation."""

    category: ClassVar[SourceType] = SourceType.LEAD

    kind: Literal["bulk"] = "bulk"
    buyer_name: str = ""
    company_name: str | None = None
    items: list[LeadItem] = Field(default_factory=list)

    @property
    def source_id(self) -> str:
        # Namespaced so an RFQ can never collide with a single lead id.
        return f"rfq:{self.id}"


LeadEvent = Annotated[Union[SingleLead, BulkRfq], Field(discriminator="kind")]


class FetchResult(BaseModel):
    """Outcome of one source fetch within a reconciliation pass."""

    source_name: str
    category: SourceType
    success: bool
    entities: list[Any] = Field(default_factory=list)
    error: str | None = None
    elapsed_ms: float | None = None
