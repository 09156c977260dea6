"""Source adapters backed by the back-office REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from backoffice.core.config import SourcesConfig
from backoffice.core.types import SourceType
from backoffice.sources.base import BaseSourceAdapter, SourceError
from backoffice.sources.models import (
    ACTIONABLE_ORDER_STATUSES,
    BulkRfq,
    OrderEntity,
    QuestionEntity,
    ReviewEntity,
    SingleLead,
)

logger = logging.getLogger(__name__)


def create_http_client(config: SourcesConfig) -> httpx.AsyncClient:
    """Build the shared AsyncClient used by every HTTP source."""
    headers = {"Accept": "application/json"}
    if config.api_token:
        headers["Authorization"] = f"Bearer {config.api_token}"
    return httpx.AsyncClient(
        base_url=config.base_url.rstrip("/") + "/",
        timeout=httpx.Timeout(config.timeout_seconds),
        headers=headers,
    )


def _unwrap(payload: Any, collection: str) -> list[dict[str, Any]]:
    """Extract the entity list from the API's ``{success, data}`` envelope.

    Accepts ``data`` as a bare list, ``data.<collection>`` or a bare list
    at the top level.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        raise SourceError(f"Unexpected payload type {type(payload).__name__}")
    if payload.get("success") is False:
        raise SourceError(payload.get("message") or "Backend reported failure")
    data = payload.get("data")
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(collection), list):
        return data[collection]
    raise SourceError(f"Response has no {collection!r} list")


def _doc_id(doc: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if doc.get(key) not in (None, ""):
            return doc[key]
    raise SourceError(f"Document has none of {keys}")


def _nested(doc: dict[str, Any], key: str) -> dict[str, Any]:
    value = doc.get(key)
    return value if isinstance(value, dict) else {}


def _records(doc: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = doc.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class HttpSourceAdapter(BaseSourceAdapter):
    """GETs one collection endpoint and maps each document to an entity."""

    path: str
    collection: str

    def __init__(self, client: httpx.AsyncClient, name: str | None = None, **kwargs: Any) -> None:
        super().__init__(name or self.collection, **kwargs)
        self._http = client

    def _params(self, limit: int) -> dict[str, Any]:
        return {"limit": limit}

    def _parse(self, doc: dict[str, Any]) -> Any:
        raise NotImplementedError

    async def _do_fetch(self, limit: int) -> list[Any]:
        resp = await self._http.get(self.path, params=self._params(limit))
        resp.raise_for_status()
        try:
            payload = resp.json()
        except ValueError as exc:
            raise SourceError(f"Invalid JSON from {self.path}") from exc

        entities = []
        for doc in _unwrap(payload, self.collection):
            if not isinstance(doc, dict):
                logger.warning("Skipping non-object %s entry: %r", self.collection, doc)
                continue
            try:
                entities.append(self._parse(doc))
            except (SourceError, ValueError) as exc:
                # One malformed document must not sink the whole page.
                logger.warning("Skipping malformed %s document: %s", self.collection, exc)
        return entities

    async def close(self) -> None:
        # The client is shared between adapters; the first close wins.
        if not self._http.is_closed:
            await self._http.aclose()


def parse_order(doc: dict[str, Any]) -> OrderEntity:
    user = _nested(doc, "user")
    shipping = _nested(doc, "shippingAddress")
    return OrderEntity(
        id=_doc_id(doc, "orderId", "_id", "id"),
        status=doc.get("status") or doc.get("orderStatus") or "",
        customer_name=user.get("name") or shipping.get("firstName") or doc.get("customerName") or "",
        total_amount=doc.get("totalAmount") or doc.get("subtotal") or 0,
        created_at=doc.get("createdAt"),
    )


def parse_review(doc: dict[str, Any]) -> ReviewEntity:
    return ReviewEntity(
        id=_doc_id(doc, "_id", "id"),
        title=doc.get("title"),
        comment=doc.get("comment"),
        is_active=doc.get("isActive", True),
        created_at=doc.get("createdAt"),
    )


def parse_question(doc: dict[str, Any]) -> QuestionEntity:
    return QuestionEntity(
        id=_doc_id(doc, "_id", "id"),
        question_text=doc.get("question") or doc.get("questionText") or "",
        is_active=doc.get("isActive", True),
        answers=[
            {"is_admin": bool(a.get("isAdmin")), "is_active": a.get("isActive") is not False}
            for a in _records(doc, "answers")
        ],
        created_at=doc.get("createdAt"),
    )


def parse_lead(doc: dict[str, Any]) -> SingleLead:
    return SingleLead(
        id=_doc_id(doc, "_id", "id"),
        buyer_name=doc.get("buyerName") or "",
        company_name=doc.get("companyName"),
        product_name=doc.get("productName") or "",
        quantity_required=doc.get("quantityRequired"),
        created_at=doc.get("createdAt"),
    )


def parse_bulk_rfq(doc: dict[str, Any]) -> BulkRfq:
    return BulkRfq(
        id=_doc_id(doc, "_id", "id"),
        buyer_name=doc.get("buyerName") or "",
        company_name=doc.get("companyName"),
        items=[
            {
                "product_name": item.get("productName") or "",
                "quantity_required": item.get("quantityRequired"),
            }
            for item in _records(doc, "items")
        ],
        created_at=doc.get("createdAt"),
    )


# push event type -> parser for its ``data`` document
PUSH_PARSERS = {
    "new-order": parse_order,
    "new-review": parse_review,
    "new-question": parse_question,
}


def parse_push_document(event_type: str, doc: dict[str, Any]) -> Any:
    """Map a push frame's ``data`` onto the entity a poll would have produced."""
    parser = PUSH_PARSERS.get(event_type)
    if parser is None:
        raise SourceError(f"No entity mapping for push event {event_type!r}")
    if not isinstance(doc, dict):
        raise SourceError(f"Push event {event_type!r} carries no document")
    return parser(doc)


class OrderHttpSource(HttpSourceAdapter):
    category = SourceType.ORDER
    path = "orders"
    collection = "orders"

    def _params(self, limit: int) -> dict[str, Any]:
        return {"limit": limit, "status": ",".join(sorted(ACTIONABLE_ORDER_STATUSES))}

    def _parse(self, doc: dict[str, Any]) -> OrderEntity:
        return parse_order(doc)


class ReviewHttpSource(HttpSourceAdapter):
    category = SourceType.REVIEW
    path = "reviews"
    collection = "reviews"

    def _params(self, limit: int) -> dict[str, Any]:
        return {"limit": limit, "includeInactive": "false"}

    def _parse(self, doc: dict[str, Any]) -> ReviewEntity:
        return parse_review(doc)


class QuestionHttpSource(HttpSourceAdapter):
    category = SourceType.QUESTION
    path = "questions"
    collection = "questions"

    def _parse(self, doc: dict[str, Any]) -> QuestionEntity:
        return parse_question(doc)


class LeadHttpSource(HttpSourceAdapter):
    category = SourceType.LEAD
    path = "leads"
    collection = "leads"

    def _parse(self, doc: dict[str, Any]) -> SingleLead:
        return parse_lead(doc)


class BulkRfqHttpSource(HttpSourceAdapter):
    category = SourceType.LEAD
    path = "bulk-rfqs"
    collection = "rfqs"

    def __init__(self, client: httpx.AsyncClient, name: str | None = None, **kwargs: Any) -> None:
        super().__init__(client, name or "bulk_rfqs", **kwargs)

    def _parse(self, doc: dict[str, Any]) -> BulkRfq:
        return parse_bulk_rfq(doc)


def create_http_sources(config: SourcesConfig, client: httpx.AsyncClient | None = None) -> list[HttpSourceAdapter]:
    """Instantiate one HTTP adapter per backend collection sharing one client."""
    client = client or create_http_client(config)
    kwargs = {"timeout_seconds": config.timeout_seconds, "max_retries": config.max_retries}
    return [
        OrderHttpSource(client, **kwargs),
        ReviewHttpSource(client, **kwargs),
        QuestionHttpSource(client, **kwargs),
        LeadHttpSource(client, **kwargs),
        BulkRfqHttpSource(client, **kwargs),
    ]
