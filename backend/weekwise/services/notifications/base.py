"""Notification service interface."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List
from uuid import UUID


@dataclass
class NotificationResult:
    status: str
    reason: str


class NotificationService:
    """Base interface for notification providers."""

    def notify_draft_plan_ready(
        self,
        *,
        user_id: UUID,
        plan_id: UUID,
        week_start: str,
        session_count: int,
        request_id: str | None,
    ) -> NotificationResult:
        raise NotImplementedError

    def notify_session_nudge(
        self,
        *,
        user_id: UUID,
        day: str,
        session_titles: List[str],
        request_id: str | None,
    ) -> NotificationResult:
        raise NotImplementedError
