"""Turn source entities into Notification records."""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, NamedTuple

from backoffice.core.types import now_millis
from backoffice.notifications.models import Notification, notification_id
from backoffice.notifications.templates import TemplateSet
from backoffice.sources.models import (
    BulkRfq,
    LeadEvent,
    OrderEntity,
    QuestionEntity,
    ReviewEntity,
    SingleLead,
    SourceEntity,
)

_REVIEW_SNIPPET_CHARS = 60
_RFQ_LISTED_ITEMS = 3


def format_amount(amount: float, symbol: str = "₹") -> str:
    """Format with Indian digit grouping, e.g. ``₹1,23,456.5``.

    Raises ValueError for NaN or infinite amounts.
    """
    value = Decimal(str(amount))
    if not value.is_finite():
        raise ValueError(f"Amount is not a finite number: {amount!r}")
    with localcontext() as ctx:
        # Room for every integer digit plus two decimals.
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        sign = "-" if value < 0 else ""
        whole, _, frac = f"{abs(value):.2f}".partition(".")
    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    grouped = ",".join(groups + [tail])
    frac = frac.rstrip("0")
    return f"{sign}{symbol}{grouped}{'.' + frac if frac else ''}"


class LeadSummary(NamedTuple):
    template_id: str
    buyer: str
    company: str
    products: str
    item_count: int


def normalize_lead(lead: LeadEvent) -> LeadSummary:
    """Common notification fields for either lead flavour."""
    buyer = lead.buyer_name or lead.company_name or "A buyer"
    company = lead.company_name or ""
    if isinstance(lead, BulkRfq):
        names = [i.product_name for i in lead.items if i.product_name]
        count = len(lead.items)
        if not names:
            products = f"{count} item{'s' if count != 1 else ''}" if count else "multiple products"
        else:
            products = ", ".join(names[:_RFQ_LISTED_ITEMS])
            if len(names) > _RFQ_LISTED_ITEMS:
                products += f" +{len(names) - _RFQ_LISTED_ITEMS} more"
        return LeadSummary("lead_bulk", buyer, company, products, count)

    products = lead.product_name or "a product"
    if lead.quantity_required:
        products = f"{products} (qty {lead.quantity_required})"
    return LeadSummary("lead", buyer, company, products, 1)


def _context(entity: SourceEntity, currency_symbol: str) -> tuple[str, dict[str, Any]]:
    if isinstance(entity, OrderEntity):
        return "order", {
            "order_id": entity.id,
            "customer": entity.customer_name or "Customer",
            "amount": format_amount(entity.total_amount, currency_symbol),
        }
    if isinstance(entity, ReviewEntity):
        summary = entity.title or (entity.comment or "")[:_REVIEW_SNIPPET_CHARS] or "New customer review"
        return "review", {"summary": summary}
    if isinstance(entity, QuestionEntity):
        return "question", {"question": entity.question_text or "Customer asked a question"}
    if isinstance(entity, (SingleLead, BulkRfq)):
        lead = normalize_lead(entity)
        return lead.template_id, {
            "buyer": lead.buyer,
            "company": lead.company,
            "products": lead.products,
            "item_count": lead.item_count,
        }
    raise TypeError(f"No notification builder for {type(entity).__name__}")


class NotificationBuilder:
    """Renders entity snapshots into notifications using a TemplateSet."""

    def __init__(self, templates: TemplateSet | None = None, currency_symbol: str = "₹") -> None:
        self._templates = templates or TemplateSet()
        self._currency_symbol = currency_symbol

    def build(self, entity: SourceEntity, timestamp: int | None = None) -> Notification:
        timestamp = timestamp if timestamp is not None else now_millis()
        template_id, context = _context(entity, self._currency_symbol)
        title, message = self._templates.render(template_id, context)
        return Notification(
            id=notification_id(entity.category, entity.source_id, timestamp),
            source_type=entity.category,
            source_id=entity.source_id,
            title=title,
            message=message,
            timestamp=timestamp,
        )
