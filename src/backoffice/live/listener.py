"""Live toasts driven by push events for the signed-in operator."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from backoffice.live.channel import PushChannel
from backoffice.live.models import NEW_ORDER, NEW_QUESTION, NEW_REVIEW, OperatorSession, PushEvent
from backoffice.live.toasts import ToastBoard

logger = logging.getLogger(__name__)


def _order_message(data: dict[str, Any]) -> str:
    return f"New order received: {data.get('orderId') or data.get('_id')}"


# event type -> (toast kind, message builder, icon)
_TOASTS: dict[str, tuple[str, Callable[[dict[str, Any]], str], str]] = {
    NEW_ORDER: ("order", _order_message, "📦"),
    NEW_QUESTION: ("question", lambda data: "New question needs answer", "💬"),
    NEW_REVIEW: ("review", lambda data: "New review pending approval", "⭐"),
}


class LiveChannelListener:
    """Shows a toast per push event while an authorised operator is signed in.

    ``on_event`` receives ``(event_type, data)`` after the toast; the app uses
    it to route push events into the notification engine when enabled.
    """

    def __init__(
        self,
        channel: PushChannel,
        toasts: ToastBoard,
        *,
        required_role: str = "admin",
        on_event: Callable[[str, dict[str, Any]], Any] | None = None,
    ) -> None:
        self._channel = channel
        self._toasts = toasts
        self._required_role = required_role
        self._on_event = on_event
        self._session: OperatorSession | None = None

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def channel(self) -> PushChannel:
        return self._channel

    def start(self, session: OperatorSession) -> bool:
        """Subscribe and connect as ``session``; returns False if it may not receive events."""
        if not session.authenticated or session.role != self._required_role:
            logger.info("Live channel not started: operator role %r is not %r",
                        session.role, self._required_role)
            return False
        if self._session is not None:
            return True
        for event_type in _TOASTS:
            self._channel.subscribe(event_type, self._handle)
        self._channel.connect(session)
        self._session = session
        logger.info("Live channel listening for %s", ", ".join(_TOASTS))
        return True

    def stop(self) -> None:
        """Unsubscribe and tear the channel down (logout or shutdown)."""
        if self._session is None:
            return
        for event_type in _TOASTS:
            self._channel.unsubscribe(event_type)
        self._channel.close()
        self._session = None

    def _handle(self, event: PushEvent) -> None:
        if self._session is None:
            return
        kind, message, icon = _TOASTS[event.type]
        self._toasts.show(kind, message(event.data), icon=icon)
        if self._on_event is not None:
            self._on_event(event.type, event.data)
