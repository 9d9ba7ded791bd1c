"""Session endpoints: view, complete, adapt, log extras and daily habits."""
from __future__ import annotations

from time import perf_counter
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from weekwise.api.responses import unwrap
from weekwise.api.schemas.sessions import (
    AdaptSessionRequest,
    AdaptSessionResponse,
    CompleteSessionRequest,
    CompleteSessionResponse,
    DailyHabitsRequest,
    ExtraSessionRequest,
    ExtraSessionResponse,
    SessionResponse,
)
from weekwise.db.deps import get_db
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services import plan_lifecycle

router = APIRouter()


@router.get("/sessions/{session_id}", response_model=SessionResponse, tags=["sessions"])
def session_get(
    session_id: UUID,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"session_id": str(session_id), "request_id": request_id}
    with trace("sessions.get", metadata=metadata, user_id=str(user_id), request_id=request_id):
        result = plan_lifecycle.session_view(db, user_id, session_id)
    return unwrap(result, request_id)


@router.post("/sessions/{session_id}/complete", response_model=CompleteSessionResponse, tags=["sessions"])
def session_complete(
    session_id: UUID,
    request: Request,
    payload: CompleteSessionRequest,
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"session_id": str(session_id), "request_id": request_id}
    start = perf_counter()
    with trace("sessions.complete", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        result = plan_lifecycle.complete_session(db, payload.user_id, session_id, payload.completed_detail)

    if "error" not in result:
        log_metric(
            "sessions.complete.success",
            1,
            metadata={"domain": result["session"]["domain"], "already_completed": result["already_completed"]},
        )
    log_metric("sessions.complete.latency_ms", (perf_counter() - start) * 1000)
    return unwrap(result, request_id)


@router.post("/sessions/{session_id}/adapt", response_model=AdaptSessionResponse, tags=["sessions"])
def session_adapt(
    session_id: UUID,
    request: Request,
    payload: AdaptSessionRequest,
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"session_id": str(session_id), "action": payload.action, "request_id": request_id}
    with trace("sessions.adapt", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        result = plan_lifecycle.adapt_session(
            db,
            payload.user_id,
            session_id,
            payload.action,
            new_date=payload.new_date,
            patch=payload.new_detail,
            title=payload.title,
            reason=payload.reason,
        )

    log_metric("sessions.adapt.success", 0 if "error" in result else 1, metadata={"action": payload.action})
    return unwrap(result, request_id)


@router.post("/sessions/extra", response_model=ExtraSessionResponse, tags=["sessions"])
def session_extra(
    request: Request,
    payload: ExtraSessionRequest,
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"domain": payload.domain, "request_id": request_id}
    with trace("sessions.extra", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        result = plan_lifecycle.log_extra_session(
            db, payload.user_id, payload.domain, payload.title, payload.detail, payload.session_date
        )

    log_metric("sessions.extra.success", 0 if "error" in result else 1, metadata={"domain": payload.domain})
    return unwrap(result, request_id)


@router.post("/daily-habits", tags=["sessions"])
def daily_habits_log(
    request: Request,
    payload: DailyHabitsRequest,
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("daily_habits.log", metadata={"request_id": request_id}, user_id=str(payload.user_id), request_id=request_id):
        result = plan_lifecycle.log_daily_habits(
            db,
            payload.user_id,
            steps=payload.steps,
            nutrition_on_plan=payload.nutrition_on_plan,
            sleep_hours=payload.sleep_hours,
            sleep_quality=payload.sleep_quality,
            day=payload.day,
        )

    log_metric("daily_habits.log.success", 0 if "error" in result else 1)
    return unwrap(result, request_id)
