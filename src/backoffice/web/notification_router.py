"""FastAPI router for the operator notification feed."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from backoffice.core.types import SourceType, now_millis
from backoffice.live.models import OperatorSession
from backoffice.notifications.display import format_time_ago, newest_first

router = APIRouter()


class VisibilityRequest(BaseModel):
    visible: bool


class LiveSessionRequest(BaseModel):
    user_id: str | None = None
    role: str
    token: str | None = None


def _engine(request: Request):
    engine = getattr(request.app.state, "notification_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Notification engine not available")
    return engine


def _report_summary(report) -> dict[str, Any]:
    if report is None:
        return {"created": 0, "failedSources": [], "skipped": True}
    return {
        "created": len(report.created),
        "failedSources": report.failed_sources,
        "skipped": False,
    }


@router.get("/api/notifications")
async def list_notifications(request: Request, category: SourceType | None = None) -> dict[str, Any]:
    """Feed snapshot, newest first, with unread and pending counters."""
    state = _engine(request).get_state(category)
    now = now_millis()
    return {
        "counts": state.counts.model_dump(),
        "total": state.counts.total,
        "pending": state.pending.model_dump(),
        "newSinceSeen": state.new_since_seen.model_dump(),
        "lastChecked": state.last_checked,
        "items": [
            {**n.model_dump(mode="json", by_alias=True), "timeAgo": format_time_ago(n.timestamp, now)}
            for n in newest_first(state.items)
        ],
    }


@router.post("/api/notifications/read-all")
async def mark_all_read(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    changed = engine.mark_all_as_read()
    return {"changed": changed, "counts": engine.counts.model_dump()}


@router.post("/api/notifications/refresh")
async def refresh(request: Request) -> dict[str, Any]:
    """Run a reconciliation pass now (or join the one in flight)."""
    report = await _engine(request).refresh_now()
    return _report_summary(report)


@router.post("/api/notifications/visibility")
async def set_visibility(body: VisibilityRequest, request: Request) -> dict[str, Any]:
    report = await _engine(request).set_visible(body.visible)
    return {"visible": body.visible, **_report_summary(report)}


@router.get("/api/notifications/toasts")
async def list_toasts(request: Request, limit: int | None = None) -> list[dict[str, Any]]:
    toasts = getattr(request.app.state, "toast_board", None)
    if toasts is None:
        return []
    return [t.model_dump() for t in toasts.recent(limit)]


@router.post("/api/notifications/categories/{category}/seen")
async def mark_category_seen(category: SourceType, request: Request) -> dict[str, Any]:
    engine = _engine(request)
    engine.mark_category_as_seen(category)
    return {"category": category.value, "newSinceSeen": engine.get_state().new_since_seen.model_dump()}


@router.post("/api/notifications/{notification_id}/read")
async def mark_read(notification_id: str, request: Request) -> dict[str, Any]:
    engine = _engine(request)
    notification = engine.mark_as_read(notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail=f"Notification {notification_id!r} not found")
    return {"id": notification.id, "read": notification.read, "counts": engine.counts.model_dump()}


@router.get("/api/sources/health")
async def sources_health(request: Request) -> dict[str, str]:
    return {name: status.value for name, status in _engine(request).registry.health_check_all().items()}


@router.post("/api/live/session")
async def start_live_session(body: LiveSessionRequest, request: Request) -> dict[str, Any]:
    """Sign an operator in to live toasts."""
    listener = getattr(request.app.state, "live_listener", None)
    if listener is None:
        raise HTTPException(status_code=503, detail="Live channel not available")
    session = OperatorSession(user_id=body.user_id, role=body.role, token=body.token, authenticated=True)
    if not listener.start(session):
        raise HTTPException(status_code=403, detail=f"Role {body.role!r} may not receive live events")
    return {"active": True, "connected": listener.channel.connected}


@router.delete("/api/live/session")
async def stop_live_session(request: Request) -> dict[str, Any]:
    listener = getattr(request.app.state, "live_listener", None)
    if listener is not None:
        listener.stop()
    return {"active": False}
