"""API tests for the notification feed endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from backoffice.core.config import LiveChannelConfig, NotificationConfig, Settings
from backoffice.live.channel import MemoryPushChannel
from backoffice.live.models import OperatorSession
from backoffice.notifications.storage import MemoryStorage
from backoffice.sources.adapters.fixture import create_fixture_sources
from backoffice.sources.registry import SourceRegistry
from backoffice.web.app import create_app


def _settings(**notification) -> Settings:
    notification.setdefault("poll_interval_seconds", 3600.0)
    return Settings(
        notification=NotificationConfig(**notification),
        live=LiveChannelConfig(enabled=False),
    )


@pytest.fixture
def client():
    app = create_app(
        settings=_settings(),
        registry=SourceRegistry(create_fixture_sources()),
        storage=MemoryStorage(),
    )
    with TestClient(app) as client:
        yield client


class TestNotificationAPI:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_list_notifications(self, client: TestClient) -> None:
        resp = client.get("/api/notifications")
        assert resp.status_code == 200
        data = resp.json()
        assert data["counts"] == {"order": 2, "review": 2, "question": 1, "lead": 2}
        assert data["total"] == 7
        assert data["pending"]["order"] == 2
        assert data["lastChecked"] is not None
        item = data["items"][0]
        assert {"id", "sourceType", "sourceId", "title", "message", "timestamp", "read", "timeAgo"} <= set(item)
        assert item["timeAgo"] == "Just now"
        timestamps = [i["timestamp"] for i in data["items"]]
        assert timestamps == sorted(timestamps, reverse=True)

    def test_filter_by_category(self, client: TestClient) -> None:
        data = client.get("/api/notifications", params={"category": "lead"}).json()
        assert {i["sourceType"] for i in data["items"]} == {"lead"}
        assert len(data["items"]) == 2

    def test_filter_by_unknown_category(self, client: TestClient) -> None:
        assert client.get("/api/notifications", params={"category": "invoice"}).status_code == 422

    def test_mark_read(self, client: TestClient) -> None:
        item = client.get("/api/notifications", params={"category": "review"}).json()["items"][0]
        resp = client.post(f"/api/notifications/{item['id']}/read")
        assert resp.status_code == 200
        assert resp.json()["read"] is True
        assert resp.json()["counts"]["review"] == 1

    def test_mark_read_unknown(self, client: TestClient) -> None:
        assert client.post("/api/notifications/nope/read").status_code == 404

    def test_mark_all_read(self, client: TestClient) -> None:
        resp = client.post("/api/notifications/read-all")
        assert resp.json()["changed"] == 7
        assert client.get("/api/notifications").json()["total"] == 0

    def test_mark_category_seen(self, client: TestClient) -> None:
        resp = client.post("/api/notifications/categories/question/seen")
        assert resp.status_code == 200
        assert resp.json()["newSinceSeen"]["question"] == 0
        # Seen is not read.
        assert client.get("/api/notifications").json()["counts"]["question"] == 1

    def test_mark_unknown_category_seen(self, client: TestClient) -> None:
        assert client.post("/api/notifications/categories/invoice/seen").status_code == 422

    def test_refresh(self, client: TestClient) -> None:
        resp = client.post("/api/notifications/refresh")
        assert resp.status_code == 200
        assert resp.json() == {"created": 0, "failedSources": [], "skipped": False}

    def test_visibility(self, client: TestClient) -> None:
        assert client.post("/api/notifications/visibility", json={"visible": False}).json()["visible"] is False
        # Back within the minimum interval: no extra pass.
        resp = client.post("/api/notifications/visibility", json={"visible": True})
        assert resp.json()["skipped"] is True

    def test_toasts(self, client: TestClient) -> None:
        toasts = client.get("/api/notifications/toasts").json()
        assert toasts[-1]["message"] == "2 new orders received"

    def test_sources_health(self, client: TestClient) -> None:
        health = client.get("/api/sources/health").json()
        assert health["orders"] == "connected"
        assert set(health) == {"orders", "reviews", "questions", "leads", "bulk_rfqs"}


class TestLiveSessionAPI:
    def setup_method(self) -> None:
        self.channel = MemoryPushChannel()

    def _app(self, **notification):
        return create_app(
            settings=_settings(**notification),
            registry=SourceRegistry(create_fixture_sources(empty=True)),
            storage=MemoryStorage(),
            channel=self.channel,
        )

    def test_admin_session_receives_toasts(self) -> None:
        with TestClient(self._app()) as client:
            resp = client.post("/api/live/session", json={"user_id": "u1", "role": "admin", "token": "op-token"})
            assert resp.status_code == 200
            assert (self.channel.session.user_id, self.channel.session.token) == ("u1", "op-token")
            self.channel.publish("new-question", {"_id": "q1"})
            assert client.get("/api/notifications/toasts").json()[-1]["message"] == "New question needs answer"
            # Push events only toast unless routing is enabled.
            assert client.get("/api/notifications").json()["total"] == 0

            client.delete("/api/live/session")
            assert not self.channel.connected
            assert self.channel.session is None

    def test_non_admin_forbidden(self) -> None:
        with TestClient(self._app()) as client:
            resp = client.post("/api/live/session", json={"role": "viewer"})
            assert resp.status_code == 403

    def test_push_routing_creates_notifications(self) -> None:
        app = self._app(route_push_events=True)
        with TestClient(app) as client:
            client.post("/api/live/session", json={"role": "admin"})
            self.channel.publish("new-review", {"_id": "r1", "title": "Lovely"})
            items = client.get("/api/notifications").json()["items"]
            assert [(i["sourceType"], i["message"]) for i in items] == [("review", "Lovely")]

    def test_operator_at_startup(self) -> None:
        app = create_app(
            settings=_settings(),
            registry=SourceRegistry(create_fixture_sources(empty=True)),
            storage=MemoryStorage(),
            channel=self.channel,
            operator=OperatorSession(role="admin", authenticated=True),
        )
        with TestClient(app):
            assert self.channel.connected
        assert not self.channel.connected
