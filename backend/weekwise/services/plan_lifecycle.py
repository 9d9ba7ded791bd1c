"""Weekly plan lifecycle: generate, confirm, complete, adapt and read views.

Plans move ``draft -> active -> superseded``. A replan never edits the old plan
in place: it writes a new plan row and re-parents the sessions that already
happened, so completed work survives while the remainder of the week is
regenerated.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from weekwise.core.config import settings
from weekwise.core.errors import (
    InvalidRequestError,
    NotFoundError,
    PlanningError,
    StateMismatchError,
    UpstreamFailure,
    operation_boundary,
)
from weekwise.db.models.daily_habit import DailyHabitLog
from weekwise.db.models.planned_session import (
    SESSION_COMPLETED,
    SESSION_PLANNED,
    SESSION_SKIPPED,
    PlannedSession,
)
from weekwise.db.models.weekly_plan import PLAN_ACTIVE, PLAN_DRAFT, PLAN_SUPERSEDED, WeeklyPlan
from weekwise.db.types import utcnow
from weekwise.observability.tracing import traced
from weekwise.services import detail_fields
from weekwise.services.audit import record_action
from weekwise.services.detail_patch import merge_detail
from weekwise.services.plan_generation import GeneratedPlan, GenerationRequest, PlanGenerator, get_plan_generator
from weekwise.services.plan_validator import ValidationVerdict, validate_sessions
from weekwise.services.policy_table import DOMAINS, SCHEDULED_DOMAINS, get_policy
from weekwise.services.user_service import profile_snapshot, require_user

logger = logging.getLogger(__name__)

ADAPT_ACTIONS = ("skip", "reschedule", "modify")


# ---------------------------------------------------------------------------
# Calendar helpers (day_of_week: 0=Sunday .. 6=Saturday, weeks start Monday)
# ---------------------------------------------------------------------------


def week_start_for(day: date) -> date:
    return day - timedelta(days=day.weekday())


def day_of_week_for(day: date) -> int:
    return (day.weekday() + 1) % 7


def scheduled_date_for(week_start: date, day_of_week: int) -> date:
    return week_start + timedelta(days=6 if day_of_week == 0 else day_of_week - 1)


def _as_uuid(value: Any, label: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(f"{label} not found") from None


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_session(session: PlannedSession) -> Dict[str, Any]:
    return {
        "id": str(session.id),
        "plan_id": str(session.plan_id) if session.plan_id else None,
        "domain": session.domain,
        "day_of_week": session.day_of_week,
        "scheduled_date": session.scheduled_date.isoformat(),
        "title": session.title,
        "status": session.status,
        "detail": dict(session.detail or {}),
        "duration_minutes": detail_fields.resolve(session.detail, "duration"),
        "completed_at": session.completed_at.isoformat() if session.completed_at else None,
        "completed_detail": session.completed_detail,
        "sort_order": session.sort_order,
        "is_extra": bool(session.is_extra),
    }


def serialize_plan(plan: WeeklyPlan, sessions: Optional[Iterable[PlannedSession]] = None) -> Dict[str, Any]:
    context = plan.generation_context or {}
    payload: Dict[str, Any] = {
        "id": str(plan.id),
        "week_start": plan.week_start.isoformat(),
        "status": plan.status,
        "intro_message": plan.intro_message,
        "tracking_briefs": plan.tracking_briefs or {},
        "issues": list(context.get("validation") or []),
        "confirmed_at": plan.confirmed_at.isoformat() if plan.confirmed_at else None,
        "superseded_at": plan.superseded_at.isoformat() if plan.superseded_at else None,
    }
    if sessions is not None:
        payload["sessions"] = [serialize_session(s) for s in sessions]
    return payload


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _active_plan(db: Session, user_id: UUID, week_start: date) -> Optional[WeeklyPlan]:
    return (
        db.query(WeeklyPlan)
        .filter(
            WeeklyPlan.user_id == user_id,
            WeeklyPlan.week_start == week_start,
            WeeklyPlan.status == PLAN_ACTIVE,
        )
        .one_or_none()
    )


def _latest_draft(db: Session, user_id: UUID, week_start: date) -> Optional[WeeklyPlan]:
    return (
        db.query(WeeklyPlan)
        .filter(
            WeeklyPlan.user_id == user_id,
            WeeklyPlan.week_start == week_start,
            WeeklyPlan.status == PLAN_DRAFT,
        )
        .order_by(WeeklyPlan.created_at.desc())
        .first()
    )


def _plan_sessions(db: Session, plan_id: UUID) -> List[PlannedSession]:
    return (
        db.query(PlannedSession)
        .filter(PlannedSession.plan_id == plan_id)
        .order_by(PlannedSession.scheduled_date.asc(), PlannedSession.sort_order.asc())
        .all()
    )


def _week_sessions(db: Session, user_id: UUID, week_start: date, plan: Optional[WeeklyPlan]) -> List[PlannedSession]:
    """Sessions of the active plan plus extras logged during the week."""
    week_end = week_start + timedelta(days=6)
    belongs = and_(PlannedSession.is_extra.is_(True), PlannedSession.plan_id.is_(None))
    if plan is not None:
        belongs = or_(PlannedSession.plan_id == plan.id, belongs)
    return (
        db.query(PlannedSession)
        .filter(
            PlannedSession.user_id == user_id,
            PlannedSession.scheduled_date >= week_start,
            PlannedSession.scheduled_date <= week_end,
            belongs,
        )
        .order_by(PlannedSession.scheduled_date.asc(), PlannedSession.sort_order.asc())
        .all()
    )


def _owned_session(db: Session, user_id: UUID, session_id: Any) -> PlannedSession:
    session = db.get(PlannedSession, _as_uuid(session_id, "Session"))
    if not session or session.user_id != user_id:
        raise NotFoundError("Session not found")
    return session


def _owned_plan(db: Session, user_id: UUID, plan_id: Any) -> WeeklyPlan:
    plan = db.get(WeeklyPlan, _as_uuid(plan_id, "Plan"))
    if not plan or plan.user_id != user_id:
        raise NotFoundError("Plan not found")
    return plan


def compute_progress(sessions: Iterable[PlannedSession]) -> Dict[str, Dict[str, Any]]:
    """Per-domain counts over non-skipped sessions; rate is 0 when there is nothing to do."""
    counts = {domain: {"total": 0, "completed": 0, "skipped": 0} for domain in SCHEDULED_DOMAINS}
    for session in sessions:
        bucket = counts.get(session.domain)
        if bucket is None:
            continue
        if session.status == SESSION_SKIPPED:
            bucket["skipped"] += 1
            continue
        bucket["total"] += 1
        if session.status == SESSION_COMPLETED:
            bucket["completed"] += 1
    return {
        domain: {
            "label": get_policy(domain).label,
            **bucket,
            "rate": round(bucket["completed"] / bucket["total"], 2) if bucket["total"] else 0.0,
        }
        for domain, bucket in counts.items()
    }


def _habit_summary(db: Session, user_id: UUID, week_start: date) -> Dict[str, Any]:
    logs = (
        db.query(DailyHabitLog)
        .filter(
            DailyHabitLog.user_id == user_id,
            DailyHabitLog.date >= week_start,
            DailyHabitLog.date <= week_start + timedelta(days=6),
        )
        .order_by(DailyHabitLog.date.asc())
        .all()
    )
    sleep_hours = [log.sleep_hours for log in logs if log.sleep_hours is not None]
    return {
        "nutrition": {"days_on_plan": sum(1 for log in logs if log.nutrition_on_plan), "target": 5},
        "sleep": {
            "total_hours": round(sum(sleep_hours), 1),
            "nights_7_plus": sum(1 for hours in sleep_hours if hours >= 7),
            "target_hours": 49,
        },
        "steps": [
            {"date": log.date.isoformat(), "steps": log.steps_actual or 0, "target": log.steps_target}
            for log in logs
        ],
    }


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def _run_generator(generator: PlanGenerator, request: GenerationRequest, timeout: float) -> GeneratedPlan:
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="plan-generation")
    future = executor.submit(generator.generate, request)
    try:
        output = future.result(timeout=timeout)
    except FutureTimeout as exc:
        raise UpstreamFailure(f"Plan generation timed out after {timeout:g}s") from exc
    except PlanningError:
        raise
    except Exception as exc:
        logger.error("Plan generation collaborator failed: %s", exc)
        raise UpstreamFailure(f"Plan generation failed: {exc}") from exc
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    if isinstance(output, GeneratedPlan):
        return output
    try:
        return GeneratedPlan.model_validate(output)
    except ValidationError as exc:
        raise UpstreamFailure(f"Plan generation returned an invalid plan ({exc.error_count()} errors)") from exc


def _supersede(plan: WeeklyPlan, now: datetime) -> None:
    plan.status = PLAN_SUPERSEDED
    plan.superseded_at = now


def _carry_over(db: Session, active: Optional[WeeklyPlan], start_from_date: Optional[date]) -> List[PlannedSession]:
    """Sessions of ``active`` that a replan keeps: completed ones and those before the cutoff."""
    if active is None:
        return []
    return [
        s
        for s in _plan_sessions(db, active.id)
        if s.status == SESSION_COMPLETED or (start_from_date is not None and s.scheduled_date < start_from_date)
    ]


def _completed_slots(sessions: Iterable[PlannedSession]) -> set:
    return {(s.domain, s.scheduled_date) for s in sessions if s.status == SESSION_COMPLETED}


def _reparent(sessions: Iterable[PlannedSession], plan: WeeklyPlan) -> int:
    count = 0
    for session in sessions:
        session.plan_id = plan.id
        count += 1
    return count


@traced("plan.generate")
@operation_boundary(success_flag=True)
def generate_plan(
    db: Session,
    user_id: UUID,
    week_start: Optional[date] = None,
    *,
    draft: bool = False,
    planning_context: Optional[str] = None,
    start_from_date: Optional[date] = None,
    generator: Optional[PlanGenerator] = None,
    timeout: Optional[float] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Generate a week's plan as a draft or directly active.

    The collaborator runs before anything is written. Generated sessions dated
    before ``start_from_date`` are dropped; the current active plan's sessions
    before that date (and anything already completed) are carried over into
    the new plan once it becomes active, and generated sessions landing on a
    domain/day that is already completed are dropped. Returns ``{success,
    plan_id, is_draft, issues}``.
    """
    today = today or date.today()
    user = require_user(db, user_id)
    week_start = week_start_for(week_start or today)
    week_end = week_start + timedelta(days=6)
    if start_from_date is None and today > week_start:
        start_from_date = today
    if start_from_date is not None and start_from_date <= week_start:
        start_from_date = None
    if start_from_date is not None and start_from_date > week_end:
        raise InvalidRequestError("start_from_date is after the end of the week")

    request = GenerationRequest(
        profile=profile_snapshot(db, user, today),
        week_start=week_start,
        start_from_date=start_from_date,
        planning_context=planning_context,
    )
    generated = _run_generator(
        generator or get_plan_generator(),
        request,
        timeout if timeout is not None else settings.generation_timeout_s,
    )

    now = utcnow()
    active = _active_plan(db, user.id, week_start)
    kept = _carry_over(db, active, start_from_date)
    done_slots = _completed_slots(kept)
    carried = [str(s.id) for s in kept]

    rows: List[Dict[str, Any]] = []
    for item in generated.sessions:
        if item.domain not in SCHEDULED_DOMAINS:
            continue
        scheduled = scheduled_date_for(week_start, item.day_of_week)
        if start_from_date is not None and scheduled < start_from_date:
            continue
        if (item.domain, scheduled) in done_slots:
            continue
        rows.append(
            {
                "domain": item.domain,
                "day_of_week": item.day_of_week,
                "scheduled_date": scheduled,
                "title": item.title,
                "detail": item.detail,
                "sort_order": DOMAINS.index(item.domain) * 100 + item.sort_order,
            }
        )

    verdict = validate_sessions(rows)
    if not verdict.valid:
        logger.warning("Generated plan for week %s has %d issue(s): %s", week_start, len(verdict.issues), verdict.issues)

    for stale in (
        db.query(WeeklyPlan)
        .filter(WeeklyPlan.user_id == user.id, WeeklyPlan.week_start == week_start, WeeklyPlan.status == PLAN_DRAFT)
        .all()
    ):
        _supersede(stale, now)
    if not draft and active is not None:
        _supersede(active, now)
    # Free the active slot before the new row is inserted.
    db.flush()

    plan = WeeklyPlan(
        user_id=user.id,
        week_start=week_start,
        status=PLAN_DRAFT if draft else PLAN_ACTIVE,
        intro_message=generated.intro_message,
        tracking_briefs=generated.tracking_briefs,
        generation_context={
            "validation": verdict.issues,
            "planning_context": planning_context,
            "start_from_date": start_from_date.isoformat() if start_from_date else None,
            "carried_over_session_ids": carried,
        },
        confirmed_at=None if draft else now,
    )
    db.add(plan)
    db.flush()

    for row in rows:
        db.add(PlannedSession(plan_id=plan.id, user_id=user.id, status=SESSION_PLANNED, **row))
    if not draft:
        _reparent(kept, plan)

    record_action(
        db,
        user.id,
        "plan_generated",
        {
            "plan_id": str(plan.id),
            "week_start": week_start.isoformat(),
            "is_draft": draft,
            "session_count": len(rows),
            "carried_over": len(carried),
            "issues": verdict.issues,
        },
        reason=planning_context,
    )
    db.commit()
    logger.info("Generated %s plan %s for week %s (%d sessions)", plan.status, plan.id, week_start, len(rows))
    return {
        "success": True,
        "plan_id": str(plan.id),
        "is_draft": draft,
        "issues": verdict.issues,
        "session_count": len(rows),
    }


@traced("plan.confirm")
@operation_boundary()
def confirm_plan(db: Session, user_id: UUID, plan_id: Any) -> Dict[str, Any]:
    """Activate a draft, superseding the current active plan for that week.

    The carry-over is taken from the active plan as it stands now, so sessions
    completed while the draft was under review move to the new plan and the
    draft's planned sessions on those domain/days are dropped.
    """
    plan = _owned_plan(db, user_id, plan_id)
    if plan.status != PLAN_DRAFT:
        raise StateMismatchError(f"Plan is already {plan.status}; only drafts can be confirmed")

    now = utcnow()
    context = plan.generation_context or {}
    start_from = context.get("start_from_date")
    start_from_date = date.fromisoformat(start_from) if start_from else None

    previous = _active_plan(db, user_id, plan.week_start)
    kept = _carry_over(db, previous, start_from_date)
    done_slots = _completed_slots(kept)
    if previous is not None:
        _supersede(previous, now)
        db.flush()

    plan.status = PLAN_ACTIVE
    plan.confirmed_at = now
    dropped = 0
    for session in _plan_sessions(db, plan.id):
        if session.status == SESSION_PLANNED and (session.domain, session.scheduled_date) in done_slots:
            db.delete(session)
            dropped += 1
    carried = _reparent(kept, plan)
    plan.generation_context = {**context, "carried_over_session_ids": [str(s.id) for s in kept]}

    record_action(
        db,
        user_id,
        "plan_confirmed",
        {
            "plan_id": str(plan.id),
            "superseded_plan_id": str(previous.id) if previous else None,
            "carried_over": carried,
            "dropped_duplicates": dropped,
        },
    )
    db.commit()
    return {
        "plan": serialize_plan(plan, _plan_sessions(db, plan.id)),
        "superseded_plan_id": str(previous.id) if previous else None,
    }


# ---------------------------------------------------------------------------
# Session mutations
# ---------------------------------------------------------------------------


def _revalidate(db: Session, session: PlannedSession) -> Optional[ValidationVerdict]:
    if session.plan_id is None:
        return None
    db.flush()
    plan = db.get(WeeklyPlan, session.plan_id)
    verdict = validate_sessions(s for s in _plan_sessions(db, session.plan_id) if s.status != SESSION_SKIPPED)
    if plan is not None:
        plan.generation_context = {**(plan.generation_context or {}), "validation": verdict.issues}
    if not verdict.valid:
        logger.warning("Plan %s now has %d issue(s) after a session change", session.plan_id, len(verdict.issues))
    return verdict


def _progress_payload(db: Session, user_id: UUID, week_start: date) -> Dict[str, Any]:
    plan = _active_plan(db, user_id, week_start)
    return {
        "week_start": week_start.isoformat(),
        "domains": compute_progress(_week_sessions(db, user_id, week_start, plan)),
    }


@traced("session.complete")
@operation_boundary()
def complete_session(
    db: Session,
    user_id: UUID,
    session_id: Any,
    completed_detail: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Mark a session completed; repeating the call returns the current state unchanged."""
    session = _owned_session(db, user_id, session_id)
    already = session.status == SESSION_COMPLETED
    if session.status == SESSION_SKIPPED:
        raise StateMismatchError("Session was skipped; log it as an extra session instead")

    if not already:
        session.status = SESSION_COMPLETED
        session.completed_at = utcnow()
        session.completed_detail = completed_detail or None
        record_action(
            db,
            user_id,
            "session_completed",
            {"session_id": str(session.id), "domain": session.domain, "completed_detail": completed_detail},
        )
        db.commit()

    return {
        "session": serialize_session(session),
        "already_completed": already,
        "progress": _progress_payload(db, user_id, week_start_for(session.scheduled_date)),
    }


@traced("session.adapt")
@operation_boundary()
def adapt_session(
    db: Session,
    user_id: UUID,
    session_id: Any,
    action: str,
    *,
    new_date: Optional[date] = None,
    patch: Optional[Dict[str, Any]] = None,
    title: Optional[str] = None,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    if action not in ADAPT_ACTIONS:
        raise InvalidRequestError(f"Unknown action {action!r}; expected one of {', '.join(ADAPT_ACTIONS)}")
    session = _owned_session(db, user_id, session_id)
    if session.status == SESSION_COMPLETED:
        raise StateMismatchError("Completed sessions cannot be changed")
    if session.status == SESSION_SKIPPED and action != "skip":
        raise StateMismatchError("Session was already skipped")

    changes: Dict[str, Any] = {"session_id": str(session.id), "action": action}
    if action == "skip":
        session.status = SESSION_SKIPPED
    elif action == "reschedule":
        if new_date is None:
            raise InvalidRequestError("Rescheduling needs a new date")
        week_start = week_start_for(session.scheduled_date)
        if session.plan_id is not None and week_start_for(new_date) != week_start:
            raise InvalidRequestError("Sessions can only be moved within their plan's week")
        changes["from"] = session.scheduled_date.isoformat()
        changes["to"] = new_date.isoformat()
        session.scheduled_date = new_date
        session.day_of_week = day_of_week_for(new_date)
    else:
        if not patch and not title:
            raise InvalidRequestError("Modify needs a detail patch or a new title")
        session.detail = merge_detail(session.detail, patch)
        if title:
            session.title = title.strip()
        changes["patch"] = patch or {}

    verdict = _revalidate(db, session)
    record_action(db, user_id, f"session_{action}", changes, reason=reason)
    db.commit()
    return {
        "session": serialize_session(session),
        "validation": verdict.to_dict() if verdict else None,
    }


@traced("session.log_extra")
@operation_boundary()
def log_extra_session(
    db: Session,
    user_id: UUID,
    domain: str,
    title: str,
    detail: Optional[Dict[str, Any]] = None,
    session_date: Optional[date] = None,
) -> Dict[str, Any]:
    if domain not in SCHEDULED_DOMAINS:
        raise InvalidRequestError(f"Extra sessions must be one of {', '.join(SCHEDULED_DOMAINS)}")
    if not title or not title.strip():
        raise InvalidRequestError("Extra sessions need a title")
    require_user(db, user_id)
    day = session_date or date.today()
    now = utcnow()
    session = PlannedSession(
        plan_id=None,
        user_id=user_id,
        domain=domain,
        day_of_week=day_of_week_for(day),
        scheduled_date=day,
        title=title.strip(),
        status=SESSION_COMPLETED,
        detail=detail_fields.coerce_detail(detail),
        completed_at=now,
        is_extra=True,
        sort_order=DOMAINS.index(domain) * 100 + 99,
    )
    db.add(session)
    db.flush()
    record_action(db, user_id, "extra_session_logged", {"session_id": str(session.id), "domain": domain})
    db.commit()
    return {
        "session": serialize_session(session),
        "progress": _progress_payload(db, user_id, week_start_for(day)),
    }


@traced("habits.log")
@operation_boundary()
def log_daily_habits(
    db: Session,
    user_id: UUID,
    *,
    steps: Optional[int] = None,
    nutrition_on_plan: Optional[bool] = None,
    sleep_hours: Optional[float] = None,
    sleep_quality: Optional[int] = None,
    day: Optional[date] = None,
) -> Dict[str, Any]:
    """Upsert the tracked-domain log for one day; omitted values are left as they were."""
    if steps is not None and steps < 0:
        raise InvalidRequestError("Steps cannot be negative")
    if sleep_hours is not None and not 0 <= sleep_hours <= 24:
        raise InvalidRequestError("Sleep hours must be between 0 and 24")
    if sleep_quality is not None and not 1 <= sleep_quality <= 5:
        raise InvalidRequestError("Sleep quality must be between 1 and 5")
    require_user(db, user_id)
    day = day or date.today()

    log = db.query(DailyHabitLog).filter(DailyHabitLog.user_id == user_id, DailyHabitLog.date == day).one_or_none()
    if log is None:
        log = DailyHabitLog(user_id=user_id, date=day)
        db.add(log)
    if steps is not None:
        log.steps_actual = steps
    if nutrition_on_plan is not None:
        log.nutrition_on_plan = nutrition_on_plan
    if sleep_hours is not None:
        log.sleep_hours = sleep_hours
    if sleep_quality is not None:
        log.sleep_quality = sleep_quality
    db.commit()
    return {
        "logged": {
            "date": log.date.isoformat(),
            "steps_actual": log.steps_actual,
            "steps_target": log.steps_target,
            "nutrition_on_plan": log.nutrition_on_plan,
            "sleep_hours": log.sleep_hours,
            "sleep_quality": log.sleep_quality,
        }
    }


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


@operation_boundary()
def get_active_plan(db: Session, user_id: UUID, week_start: Optional[date] = None) -> Dict[str, Any]:
    week_start = week_start_for(week_start or date.today())
    plan = _active_plan(db, user_id, week_start)
    return {
        "week_start": week_start.isoformat(),
        "plan": serialize_plan(plan, _plan_sessions(db, plan.id)) if plan else None,
    }


@operation_boundary()
def week_view(db: Session, user_id: UUID, week_start: Optional[date] = None) -> Dict[str, Any]:
    week_start = week_start_for(week_start or date.today())
    plan = _active_plan(db, user_id, week_start)
    draft = _latest_draft(db, user_id, week_start)
    sessions = _week_sessions(db, user_id, week_start, plan)
    return {
        "week_start": week_start.isoformat(),
        "plan": serialize_plan(plan) if plan else None,
        "draft": serialize_plan(draft, _plan_sessions(db, draft.id)) if draft else None,
        "sessions": [serialize_session(s) for s in sessions],
        "progress": compute_progress(sessions),
    }


@operation_boundary()
def today_view(db: Session, user_id: UUID, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    week_start = week_start_for(today)
    plan = _active_plan(db, user_id, week_start)
    sessions = [s for s in _week_sessions(db, user_id, week_start, plan) if s.scheduled_date == today]
    habits = (
        db.query(DailyHabitLog).filter(DailyHabitLog.user_id == user_id, DailyHabitLog.date == today).one_or_none()
    )
    return {
        "date": today.isoformat(),
        "plan_id": str(plan.id) if plan else None,
        "sessions": [serialize_session(s) for s in sessions],
        "tracking_briefs": plan.tracking_briefs if plan else None,
        "habits": {
            "steps_actual": habits.steps_actual if habits else None,
            "steps_target": habits.steps_target if habits else 10_000,
            "nutrition_on_plan": habits.nutrition_on_plan if habits else None,
            "sleep_hours": habits.sleep_hours if habits else None,
        },
    }


@operation_boundary()
def session_view(db: Session, user_id: UUID, session_id: Any) -> Dict[str, Any]:
    return {"session": serialize_session(_owned_session(db, user_id, session_id))}


@operation_boundary()
def week_progress(db: Session, user_id: UUID, week_start: Optional[date] = None) -> Dict[str, Any]:
    week_start = week_start_for(week_start or date.today())
    payload = _progress_payload(db, user_id, week_start)
    payload["habits"] = _habit_summary(db, user_id, week_start)
    return payload


@operation_boundary()
def plan_history(db: Session, user_id: UUID, limit: int = 10) -> Dict[str, Any]:
    plans = (
        db.query(WeeklyPlan)
        .filter(WeeklyPlan.user_id == user_id)
        .order_by(WeeklyPlan.week_start.desc(), WeeklyPlan.created_at.desc())
        .limit(limit)
        .all()
    )
    return {"plans": [serialize_plan(plan) for plan in plans]}
