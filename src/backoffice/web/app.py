"""FastAPI application for the back-office notification engine.

Wires the source registry, the notification engine and the live push
listener, and exposes the feed to UI consumers over REST.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from backoffice import __version__
from backoffice.core.config import Settings
from backoffice.live.channel import MemoryPushChannel, PushChannel, WebSocketPushChannel
from backoffice.live.listener import LiveChannelListener
from backoffice.live.models import OperatorSession
from backoffice.live.toasts import ToastBoard
from backoffice.notifications.engine import NotificationEngine
from backoffice.notifications.storage import JsonFileStorage, KeyValueStorage
from backoffice.sources.registry import SourceRegistry, create_source_registry
from backoffice.web.notification_router import router as notification_router

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str = __version__


def _create_channel(settings: Settings) -> PushChannel:
    live = settings.live
    if not live.enabled:
        return MemoryPushChannel()
    return WebSocketPushChannel(
        live.url,
        token=live.token,
        role=live.required_role,
        reconnect_attempts=live.reconnect_attempts,
        reconnect_delay=live.reconnect_delay_seconds,
    )


def create_app(
    settings: Settings | None = None,
    registry: SourceRegistry | None = None,
    storage: KeyValueStorage | None = None,
    channel: PushChannel | None = None,
    operator: OperatorSession | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with fixture sources and in-memory storage.

    Args:
        settings: Application settings. Defaults to Settings().
        registry: Optional pre-built source registry.
        storage: Optional key-value storage; defaults to the JSON file
            at ``settings.notification.storage_path``.
        channel: Optional push channel; defaults from ``settings.live``.
        operator: Operator to start the live listener for at startup.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    logging.getLogger("backoffice").setLevel(settings.log_level.upper())

    if registry is None:
        registry = create_source_registry(settings.sources)
    if storage is None:
        storage = JsonFileStorage(settings.notification.storage_path)
    if channel is None:
        channel = _create_channel(settings)

    toast_board = ToastBoard(
        history=settings.live.toast_history,
        duration_ms=settings.live.toast_duration_ms,
    )
    engine = NotificationEngine(
        registry,
        storage,
        settings.notification,
        page_size=settings.sources.page_size,
        toasts=toast_board,
    )
    on_event = engine.ingest_push_event if settings.notification.route_push_events else None
    listener = LiveChannelListener(
        channel,
        toast_board,
        required_role=settings.live.required_role,
        on_event=on_event,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await engine.start()
        if operator is not None:
            listener.start(operator)
        try:
            yield
        finally:
            listener.stop()
            await engine.stop()
            await registry.close()

    app = FastAPI(
        title="Back-office Notifier",
        description="Operator notification feed for the e-commerce back office",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store on app state for access in route handlers
    app.state.settings = settings
    app.state.source_registry = registry
    app.state.notification_engine = engine
    app.state.toast_board = toast_board
    app.state.push_channel = channel
    app.state.live_listener = listener

    app.include_router(notification_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", service="backoffice-notifier")

    return app
