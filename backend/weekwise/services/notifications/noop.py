"""No-op notification provider (logs only)."""
from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from weekwise.services.notifications.base import NotificationResult, NotificationService


logger = logging.getLogger(__name__)


class NoopNotificationService(NotificationService):
    def notify_draft_plan_ready(
        self,
        *,
        user_id: UUID,
        plan_id: UUID,
        week_start: str,
        session_count: int,
        request_id: str | None,
    ) -> NotificationResult:
        logger.info(
            "Notification queued (noop) draft_plan user=%s week=%s plan=%s sessions=%s",
            user_id,
            week_start,
            plan_id,
            session_count,
        )
        return NotificationResult(status="noop", reason="notification provider is noop")

    def notify_session_nudge(
        self,
        *,
        user_id: UUID,
        day: str,
        session_titles: List[str],
        request_id: str | None,
    ) -> NotificationResult:
        logger.info(
            "Notification queued (noop) session_nudge user=%s day=%s pending=%s",
            user_id,
            day,
            len(session_titles),
        )
        return NotificationResult(status="noop", reason="notification provider is noop")
