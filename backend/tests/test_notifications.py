from __future__ import annotations

from uuid import uuid4

import pytest

from weekwise.core.config import settings
from weekwise.db.models.agent_action_log import AgentActionLog
from weekwise.services.job_runner import run_session_nudges, run_weekly_plan_for_all_users
from weekwise.services.notifications.base import NotificationResult
from weekwise.services.notifications.factory import get_notification_service
from weekwise.services.notifications.hooks import notify_draft_plan, notify_session_nudge
from weekwise.services.notifications.noop import NoopNotificationService
from weekwise.services.plan_lifecycle import generate_plan

from conftest import WEEK_START


@pytest.fixture()
def enabled(monkeypatch):
    monkeypatch.setattr(settings, "notifications_enabled", True)
    monkeypatch.setattr(settings, "notifications_provider", "noop")


def _notification_logs(db, action_type):
    return db.query(AgentActionLog).filter(AgentActionLog.action_type == action_type).all()


def test_draft_plan_notification_recorded(db_session, make_user, generator, enabled) -> None:
    user_id = make_user()

    result = run_weekly_plan_for_all_users(db_session, generator=generator, today=WEEK_START)

    assert result.notifications_sent == 1
    (log,) = _notification_logs(db_session, "notification_draft_plan")
    assert log.user_id == user_id
    assert log.action_payload["result"]["status"] == "noop"
    assert log.action_payload["extras"]["session_count"] == 13
    assert log.reason == "Notification dispatched"


def test_disabled_notifications_are_recorded_as_skipped(db_session, make_user, monkeypatch) -> None:
    monkeypatch.setattr(settings, "notifications_enabled", False)
    user_id = make_user()

    result = notify_draft_plan(db_session, user_id, plan_id=uuid4(), week_start="2026-10-26", session_count=13)

    assert result == NotificationResult(status="skipped", reason="notifications disabled")
    (log,) = _notification_logs(db_session, "notification_draft_plan")
    assert log.action_payload["result"]["status"] == "skipped"
    assert log.reason == "Notification skipped"


def test_nudge_sent_through_the_configured_service(db_session, make_user, generator, enabled, monkeypatch) -> None:
    user_id = make_user()
    generate_plan(db_session, user_id, WEEK_START, generator=generator, today=WEEK_START)
    calls = []

    class DummyService:
        def notify_draft_plan_ready(self, **kwargs):  # pragma: no cover - not used
            raise AssertionError("unexpected draft notification")

        def notify_session_nudge(self, **kwargs):
            calls.append(kwargs)
            return NotificationResult(status="sent", reason="dummy")

    monkeypatch.setattr("weekwise.services.notifications.hooks.get_notification_service", lambda: DummyService())

    result = run_session_nudges(db_session, today=WEEK_START)

    assert result.notifications_sent == 1
    assert calls[0]["user_id"] == user_id
    assert calls[0]["day"] == WEEK_START.isoformat()
    assert calls[0]["session_titles"]
    (log,) = _notification_logs(db_session, "notification_session_nudge")
    assert log.action_payload["result"] == {"status": "sent", "reason": "dummy"}


def test_nudge_with_nothing_pending_is_skipped(db_session, make_user, enabled) -> None:
    user_id = make_user()

    result = notify_session_nudge(db_session, user_id, day=WEEK_START.isoformat(), session_titles=[])

    assert result.status == "skipped" and result.reason == "nothing pending"
    assert len(_notification_logs(db_session, "notification_session_nudge")) == 1


def test_unknown_provider_falls_back_to_noop(monkeypatch) -> None:
    monkeypatch.setattr(settings, "notifications_provider", "carrier-pigeon")
    get_notification_service.cache_clear()
    try:
        service = get_notification_service()
    finally:
        get_notification_service.cache_clear()

    assert isinstance(service, NoopNotificationService)
    assert service.notify_session_nudge(
        user_id=uuid4(), day="2026-10-19", session_titles=["Zone 2 run"], request_id=None
    ).status == "noop"
