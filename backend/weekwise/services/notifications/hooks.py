"""Notification hooks called by the scheduled jobs.

Every attempt, sent or skipped, leaves an audit row so the history of what a
user was told can be reconstructed.
"""
from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from weekwise.core.config import settings
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services.audit import record_action
from weekwise.services.notifications.base import NotificationResult
from weekwise.services.notifications.factory import get_notification_service

logger = logging.getLogger(__name__)


def notify_draft_plan(
    db: Session,
    user_id: UUID,
    *,
    plan_id: UUID,
    week_start: str,
    session_count: int,
    request_id: Optional[str] = None,
) -> NotificationResult:
    extra = {"plan_id": str(plan_id), "week_start": week_start, "session_count": session_count}
    if not settings.notifications_enabled:
        return _record(db, user_id, "draft_plan", _disabled(), request_id, extra)

    service = get_notification_service()
    start = perf_counter()
    with trace(
        "notifications.draft_plan",
        metadata={"provider": settings.notifications_provider, **extra},
        user_id=str(user_id),
        request_id=request_id,
    ):
        result = service.notify_draft_plan_ready(
            user_id=user_id,
            plan_id=plan_id,
            week_start=week_start,
            session_count=session_count,
            request_id=request_id,
        )
    _sent_metrics("draft_plan", start)
    return _record(db, user_id, "draft_plan", result, request_id, extra)


def notify_session_nudge(
    db: Session,
    user_id: UUID,
    *,
    day: str,
    session_titles: List[str],
    request_id: Optional[str] = None,
) -> NotificationResult:
    extra = {"day": day, "sessions": session_titles}
    if not settings.notifications_enabled:
        return _record(db, user_id, "session_nudge", _disabled(), request_id, extra)
    if not session_titles:
        return _record(
            db,
            user_id,
            "session_nudge",
            NotificationResult(status="skipped", reason="nothing pending"),
            request_id,
            extra,
        )

    service = get_notification_service()
    start = perf_counter()
    with trace(
        "notifications.session_nudge",
        metadata={"provider": settings.notifications_provider, "day": day, "pending": len(session_titles)},
        user_id=str(user_id),
        request_id=request_id,
    ):
        result = service.notify_session_nudge(
            user_id=user_id,
            day=day,
            session_titles=session_titles,
            request_id=request_id,
        )
    _sent_metrics("session_nudge", start)
    return _record(db, user_id, "session_nudge", result, request_id, extra)


def _disabled() -> NotificationResult:
    return NotificationResult(status="skipped", reason="notifications disabled")


def _sent_metrics(job_name: str, start: float) -> None:
    duration_ms = (perf_counter() - start) * 1000
    log_metric("notifications.sent", 1, metadata={"job": job_name, "provider": settings.notifications_provider})
    log_metric("notifications.duration_ms", duration_ms, metadata={"job": job_name})


def _record(
    db: Session,
    user_id: UUID,
    job_name: str,
    result: NotificationResult,
    request_id: Optional[str],
    extra: Dict[str, Any],
) -> NotificationResult:
    if result.status == "skipped":
        log_metric("notifications.skipped", 1, metadata={"job": job_name})
    record_action(
        db,
        user_id,
        f"notification_{job_name}",
        {
            "provider": settings.notifications_provider,
            "result": result.__dict__,
            "extras": extra,
            "request_id": request_id or "",
        },
        "Notification skipped" if result.status == "skipped" else "Notification dispatched",
    )
    db.commit()
    return result
