"""Push channel transports.

Frames are JSON objects ``{"type": "<event>", "data": {...}, "timestamp": ms}``
with no reply expected. Handlers always run on the asyncio event loop that
connected the channel, never on the socket reader thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

import websocket  # websocket-client
from pydantic import ValidationError

from backoffice.live.models import OperatorSession, PushEvent

logger = logging.getLogger(__name__)

PushHandler = Callable[[PushEvent], Any]

_CONNECT_TIMEOUT = 5  # seconds for the WS handshake


@runtime_checkable
class PushChannel(Protocol):
    """Subscribe/unsubscribe surface shared by every transport."""

    @property
    def connected(self) -> bool: ...

    def subscribe(self, event_type: str, handler: PushHandler) -> None: ...

    def unsubscribe(self, event_type: str) -> None: ...

    def connect(self, session: OperatorSession | None = None) -> None: ...

    def close(self) -> None: ...


class _HandlerTable:
    """Per-event handler registry with isolated dispatch."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[PushHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: PushHandler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str) -> None:
        self._handlers.pop(event_type, None)

    def subscribed(self) -> list[str]:
        return [t for t, hs in self._handlers.items() if hs]

    def dispatch(self, event: PushEvent) -> int:
        handlers = list(self._handlers.get(event.type, ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:
                logger.warning("Push handler for %s raised: %s", event.type, exc)
        return len(handlers)


class MemoryPushChannel(_HandlerTable):
    """In-process channel; ``publish`` dispatches straight to subscribers."""

    def __init__(self) -> None:
        super().__init__()
        self._connected = False
        self.session: OperatorSession | None = None
        self.published: list[PushEvent] = []

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self, session: OperatorSession | None = None) -> None:
        self._connected = True
        self.session = session

    def close(self) -> None:
        self._connected = False
        self.session = None

    def publish(self, event_type: str, data: dict[str, Any] | None = None) -> int:
        event = PushEvent(type=event_type, data=data or {})
        self.published.append(event)
        if not self._connected:
            return 0
        return self.dispatch(event)


class WebSocketPushChannel(_HandlerTable):
    """WebSocket client with a bounded reconnect budget.

    A daemon thread owns the socket. Each frame is parsed there and handed to
    the event loop with ``call_soon_threadsafe``. After ``reconnect_attempts``
    consecutive failures the thread gives up and the channel stays closed;
    polling carries on regardless.

    The handshake carries the operator's credentials from the session passed
    to ``connect``; ``token`` and ``role`` given here are used only when the
    session lacks them. ``close`` forgets the session.
    """

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        user_id: str | None = None,
        role: str | None = None,
        reconnect_attempts: int = 5,
        reconnect_delay: float = 1.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        super().__init__()
        self.url = url
        self._default_token = token
        self._default_user_id = user_id
        self._default_role = role
        self._session: OperatorSession | None = None
        self._reconnect_attempts = reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._loop = loop
        self._ws: websocket.WebSocket | None = None
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._stop.set()
        self._thread: threading.Thread | None = None
        self.connected_event = threading.Event()
        self.gave_up = False

    @property
    def connected(self) -> bool:
        return self.connected_event.is_set()

    @property
    def session(self) -> OperatorSession | None:
        return self._session

    @property
    def headers(self) -> dict[str, str]:
        """Handshake headers for the current session."""
        session = self._session or OperatorSession()
        token = session.token or self._default_token
        user_id = session.user_id or self._default_user_id
        role = session.role or self._default_role
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if user_id:
            headers["X-User-Id"] = user_id
        if role:
            headers["X-User-Role"] = role
        return headers

    def connect(self, session: OperatorSession | None = None) -> None:
        """Start the reader thread; returns immediately."""
        if not self._stop.is_set():
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._session = session
        self.gave_up = False
        stop = threading.Event()
        self._stop = stop
        self._thread = threading.Thread(
            target=self._connect_and_maintain, args=(stop, self.headers),
            name="push-channel", daemon=True,
        )
        self._thread.start()

    def close(self) -> None:
        """Stop the reader thread and wait for it to exit."""
        self._stop.set()
        with self._lock:
            ws, self._ws = self._ws, None
        if ws is not None:
            try:
                ws.close()
            except websocket.WebSocketException as exc:
                logger.debug("Error closing push channel: %s", exc)
        self.connected_event.clear()
        self._session = None

        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=_CONNECT_TIMEOUT + self._reconnect_delay)
            if thread.is_alive():
                logger.warning("Push channel reader did not exit within the join timeout")

    def _connect_and_maintain(self, stop: threading.Event, headers: dict[str, str]) -> None:
        failures = 0
        while not stop.is_set():
            try:
                ws = self._open(stop, headers)
            except (websocket.WebSocketException, OSError) as exc:
                if stop.is_set():
                    return
                failures += 1
                if failures > self._reconnect_attempts:
                    self.gave_up = True
                    logger.warning(
                        "Push channel %s unreachable after %d attempt(s); continuing with polling only",
                        self.url, failures,
                    )
                    stop.set()
                    return
                logger.warning(
                    "Push channel connect failed (%s); retrying in %.1fs", exc, self._reconnect_delay,
                )
                stop.wait(self._reconnect_delay)
                continue

            if ws is None:
                return
            failures = 0
            self._recv_loop(stop, ws)
            if stop.is_set():
                return
            logger.info("Push channel dropped; reconnecting in %.1fs", self._reconnect_delay)
            stop.wait(self._reconnect_delay)

    def _open(self, stop: threading.Event, headers: dict[str, str]) -> websocket.WebSocket | None:
        ws = websocket.WebSocket()
        ws.connect(self.url, timeout=_CONNECT_TIMEOUT, header=headers)
        # The handshake timeout would otherwise also apply to every recv().
        ws.settimeout(None)
        with self._lock:
            if stop.is_set():
                # closed while the handshake was in flight
                ws.close()
                return None
            self._ws = ws
        self.connected_event.set()
        logger.info("Push channel connected to %s", self.url)
        return ws

    def _recv_loop(self, stop: threading.Event, ws: websocket.WebSocket) -> None:
        while not stop.is_set():
            try:
                raw = ws.recv()
            except (websocket.WebSocketException, OSError) as exc:
                if not stop.is_set():
                    logger.info("Push channel closed: %s", exc)
                break
            if raw == "":
                # websocket-client returns "" on a clean close
                break
            if not stop.is_set():
                self._handle_frame(raw)

        with self._lock:
            if self._ws is ws:
                self._ws = None
        if self._stop is stop:
            self.connected_event.clear()

    def _handle_frame(self, raw: str | bytes) -> None:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            event = PushEvent.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Dropping malformed push frame: %s", exc)
            return
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.dispatch, event)
