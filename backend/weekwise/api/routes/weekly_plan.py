"""Weekly plan endpoints: generate, confirm and read."""
from __future__ import annotations

from datetime import date
from time import perf_counter
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from weekwise.api.responses import unwrap
from weekwise.api.schemas.weekly_plan import (
    ActivePlanResponse,
    ConfirmPlanRequest,
    ConfirmPlanResponse,
    GeneratePlanRequest,
    GeneratePlanResponse,
    PlanHistoryResponse,
    ProgressResponse,
    WeekViewResponse,
)
from weekwise.db.deps import get_db
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services import plan_lifecycle
from weekwise.services.plan_generation import PlanGenerator, get_plan_generator

router = APIRouter()


@router.post("/weekly-plan/generate", response_model=GeneratePlanResponse, tags=["weekly-plan"])
def weekly_plan_generate(
    request: Request,
    payload: GeneratePlanRequest,
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "draft": payload.draft, "request_id": request_id}
    start = perf_counter()
    with trace("weekly_plan.generate", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        result = plan_lifecycle.generate_plan(
            db,
            payload.user_id,
            payload.week_start,
            draft=payload.draft,
            planning_context=payload.planning_context,
            start_from_date=payload.start_from_date,
            generator=generator,
        )

    latency_ms = (perf_counter() - start) * 1000
    log_metric("weekly_plan.generate.success", 1 if result.get("success") else 0, metadata={"draft": payload.draft})
    log_metric("weekly_plan.generate.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})
    return unwrap(result, request_id)


@router.post("/weekly-plan/{plan_id}/confirm", response_model=ConfirmPlanResponse, tags=["weekly-plan"])
def weekly_plan_confirm(
    plan_id: UUID,
    request: Request,
    payload: ConfirmPlanRequest,
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "plan_id": str(plan_id), "request_id": request_id}
    with trace("weekly_plan.confirm", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        result = plan_lifecycle.confirm_plan(db, payload.user_id, plan_id)

    log_metric("weekly_plan.confirm.success", 0 if "error" in result else 1)
    return unwrap(result, request_id)


@router.get("/weekly-plan/active", response_model=ActivePlanResponse, tags=["weekly-plan"])
def weekly_plan_active(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    week_start: Optional[date] = Query(None, description="Any day of the week; defaults to today"),
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("weekly_plan.active", metadata={"request_id": request_id}, user_id=str(user_id), request_id=request_id):
        result = plan_lifecycle.get_active_plan(db, user_id, week_start)
    return unwrap(result, request_id)


@router.get("/weekly-plan/week", response_model=WeekViewResponse, tags=["weekly-plan"])
def weekly_plan_week(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    week_start: Optional[date] = Query(None, description="Any day of the week; defaults to today"),
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("weekly_plan.week", metadata={"request_id": request_id}, user_id=str(user_id), request_id=request_id):
        result = plan_lifecycle.week_view(db, user_id, week_start)
    return unwrap(result, request_id)


@router.get("/weekly-plan/progress", response_model=ProgressResponse, tags=["weekly-plan"])
def weekly_plan_progress(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    week_start: Optional[date] = Query(None, description="Any day of the week; defaults to today"),
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("weekly_plan.progress", metadata={"request_id": request_id}, user_id=str(user_id), request_id=request_id):
        result = plan_lifecycle.week_progress(db, user_id, week_start)
    return unwrap(result, request_id)


@router.get("/weekly-plan/history", response_model=PlanHistoryResponse, tags=["weekly-plan"])
def weekly_plan_history(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    limit: int = Query(10, ge=1, le=52),
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    with trace("weekly_plan.history", metadata={"limit": limit}, user_id=str(user_id), request_id=request_id):
        result = plan_lifecycle.plan_history(db, user_id, limit)

    log_metric("weekly_plan.history.count", len(result.get("plans", [])), metadata={"user_id": str(user_id)})
    log_metric("weekly_plan.history.latency_ms", (perf_counter() - start) * 1000)
    return unwrap({**result, "user_id": str(user_id)}, request_id)
