"""Batch job runners for weekly draft plans and same-day session nudges."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from weekwise.core.context import bind_user
from weekwise.db.models.planned_session import SESSION_PLANNED, PlannedSession
from weekwise.db.models.user import User
from weekwise.db.models.weekly_plan import PLAN_ACTIVE, PLAN_DRAFT, WeeklyPlan
from weekwise.observability.metrics import log_metric
from weekwise.services.notifications.hooks import notify_draft_plan, notify_session_nudge
from weekwise.services.plan_generation import PlanGenerator
from weekwise.services.plan_lifecycle import generate_plan, week_start_for


logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    users_processed: int = 0
    plans_written: int = 0
    notifications_sent: int = 0
    skipped_existing: int = 0
    failures: List[str] = field(default_factory=list)


def _onboarded_user_ids(db: Session) -> List[UUID]:
    rows = db.query(User.id).filter(User.onboarding_completed.is_(True)).order_by(User.created_at).all()
    return [row[0] for row in rows]


def _normalize_user_ids(user_ids: Optional[Iterable[UUID]], db: Session) -> List[UUID]:
    if user_ids is None:
        return _onboarded_user_ids(db)
    return list(dict.fromkeys(user_ids))


def upcoming_week_start(today: date) -> date:
    return week_start_for(today) + timedelta(days=7)


def _has_plan(db: Session, user_id: UUID, week_start: date) -> bool:
    return (
        db.query(WeeklyPlan.id)
        .filter(
            WeeklyPlan.user_id == user_id,
            WeeklyPlan.week_start == week_start,
            WeeklyPlan.status.in_((PLAN_DRAFT, PLAN_ACTIVE)),
        )
        .first()
        is not None
    )


def run_weekly_plan_for_user(
    db: Session,
    user_id: UUID,
    *,
    week_start: date,
    force: bool = False,
    generator: Optional[PlanGenerator] = None,
    today: Optional[date] = None,
) -> Optional[dict]:
    """Draft next week's plan for one user; ``None`` when a plan already exists."""
    if not force and _has_plan(db, user_id, week_start):
        return None
    with bind_user(user_id):
        result = generate_plan(db, user_id, week_start, draft=True, generator=generator, today=today)
        if result.get("success"):
            notification = notify_draft_plan(
                db,
                user_id,
                plan_id=UUID(result["plan_id"]),
                week_start=week_start.isoformat(),
                session_count=result.get("session_count", 0),
            )
            result = {**result, "notification": notification.status}
    return result


def run_weekly_plan_for_all_users(
    db: Session,
    *,
    user_ids: Optional[Iterable[UUID]] = None,
    force: bool = False,
    generator: Optional[PlanGenerator] = None,
    today: Optional[date] = None,
) -> JobRunResult:
    today = today or date.today()
    week_start = upcoming_week_start(today)
    summary = JobRunResult()
    for uid in _normalize_user_ids(user_ids, db):
        result = run_weekly_plan_for_user(
            db, uid, week_start=week_start, force=force, generator=generator, today=today
        )
        if result is None:
            summary.skipped_existing += 1
            logger.debug("Skipping weekly plan for user %s; week %s already planned", uid, week_start)
            continue
        summary.users_processed += 1
        if result.get("success"):
            summary.plans_written += 1
            if result.get("notification") != "skipped":
                summary.notifications_sent += 1
        else:
            summary.failures.append(str(uid))
            logger.error("Weekly plan job failed for user %s: %s", uid, result.get("error"))
    log_metric("jobs.weekly_plan.plans_written", summary.plans_written)
    return summary


def run_session_nudges(
    db: Session,
    *,
    user_ids: Optional[Iterable[UUID]] = None,
    today: Optional[date] = None,
) -> JobRunResult:
    """Remind every user with sessions still planned for today."""
    today = today or date.today()
    summary = JobRunResult()
    for uid in _normalize_user_ids(user_ids, db):
        pending = (
            db.query(PlannedSession)
            .filter(
                PlannedSession.user_id == uid,
                PlannedSession.scheduled_date == today,
                PlannedSession.status == SESSION_PLANNED,
                PlannedSession.plan_id.isnot(None),
            )
            .join(WeeklyPlan, WeeklyPlan.id == PlannedSession.plan_id)
            .filter(WeeklyPlan.status == PLAN_ACTIVE)
            .order_by(PlannedSession.sort_order)
            .all()
        )
        summary.users_processed += 1
        if not pending:
            continue
        with bind_user(uid):
            result = notify_session_nudge(db, uid, day=today.isoformat(), session_titles=[s.title for s in pending])
        if result.status != "skipped":
            summary.notifications_sent += 1
    log_metric("jobs.session_nudge.sent", summary.notifications_sent)
    return summary
