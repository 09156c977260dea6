"""Push channel data models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from backoffice.core.types import now_millis

NEW_ORDER = "new-order"
NEW_QUESTION = "new-question"
NEW_REVIEW = "new-review"

PUSH_EVENT_TYPES = (NEW_ORDER, NEW_QUESTION, NEW_REVIEW)


class PushEvent(BaseModel):
    """One frame delivered by the push channel."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: int = Field(default_factory=now_millis)


class OperatorSession(BaseModel):
    """The signed-in back-office operator the listener acts for."""

    user_id: str | None = None
    role: str | None = None
    token: str | None = None
    authenticated: bool = False
