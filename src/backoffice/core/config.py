"""Application configuration loaded from environment and config files."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class SourcesConfig(BaseSettings):
    """Backend collection (source adapter) configuration."""

    model_config = {"env_prefix": "BACKOFFICE_SOURCES_"}

    provider: str = "fixture"
    base_url: str = "http://localhost:5000/api"
    api_token: str | None = None
    timeout_seconds: float = 10.0
    max_retries: int = 1
    page_size: int = 100


class NotificationConfig(BaseSettings):
    """Notification feed configuration."""

    model_config = {"env_prefix": "BACKOFFICE_NOTIFICATION_"}

    capacity: int = 100
    poll_interval_seconds: float = 30.0
    min_poll_interval_seconds: float = 30.0
    storage_path: str = "data/notifications.json"
    templates_path: str | None = None
    dedup_max_entries: int | None = None
    route_push_events: bool = False
    currency_symbol: str = "₹"


class LiveChannelConfig(BaseSettings):
    """Push channel (live toasts) configuration."""

    model_config = {"env_prefix": "BACKOFFICE_LIVE_"}

    enabled: bool = False
    url: str = "ws://localhost:5000/ws"
    token: str | None = None
    reconnect_attempts: int = 5
    reconnect_delay_seconds: float = 1.0
    required_role: str = "admin"
    toast_history: int = 50
    toast_duration_ms: int = 4000


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "BACKOFFICE_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    live: LiveChannelConfig = Field(default_factory=LiveChannelConfig)
