"""Tests for settings loading."""

from __future__ import annotations

from backoffice.core.config import LiveChannelConfig, NotificationConfig, Settings, SourcesConfig


class TestDefaults:
    def test_notification_defaults(self):
        config = NotificationConfig()
        assert config.capacity == 100
        assert config.poll_interval_seconds == 30.0
        assert config.dedup_max_entries is None
        assert config.route_push_events is False

    def test_live_defaults_match_reconnect_policy(self):
        config = LiveChannelConfig()
        assert config.reconnect_attempts == 5
        assert config.reconnect_delay_seconds == 1.0
        assert config.required_role == "admin"
        assert config.toast_duration_ms == 4000

    def test_settings_compose_sections(self):
        settings = Settings()
        assert isinstance(settings.sources, SourcesConfig)
        assert settings.sources.provider == "fixture"


class TestEnvironment:
    def test_env_prefixes(self, monkeypatch):
        monkeypatch.setenv("BACKOFFICE_SOURCES_PROVIDER", "http")
        monkeypatch.setenv("BACKOFFICE_SOURCES_BASE_URL", "https://shop.example/api")
        monkeypatch.setenv("BACKOFFICE_NOTIFICATION_CAPACITY", "250")
        monkeypatch.setenv("BACKOFFICE_NOTIFICATION_ROUTE_PUSH_EVENTS", "true")
        monkeypatch.setenv("BACKOFFICE_LIVE_ENABLED", "1")
        monkeypatch.setenv("BACKOFFICE_LOG_LEVEL", "DEBUG")

        settings = Settings()
        assert settings.sources.provider == "http"
        assert settings.sources.base_url == "https://shop.example/api"
        assert settings.notification.capacity == 250
        assert settings.notification.route_push_events is True
        assert settings.live.enabled is True
        assert settings.log_level == "DEBUG"
