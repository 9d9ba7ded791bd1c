"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from weekwise.api.schemas.jobs import JobRunRequest, JobRunResponse
from weekwise.core.config import settings
from weekwise.db.deps import get_db
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services.job_runner import run_session_nudges, run_weekly_plan_for_all_users
from weekwise.services.plan_generation import PlanGenerator, get_plan_generator

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "notifications_enabled": settings.notifications_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "weekly_day": settings.weekly_job_day,
                "weekly_time": f"{settings.weekly_job_hour:02d}:{settings.weekly_job_minute:02d}",
                "nudge_time": f"{settings.nudge_job_hour:02d}:00",
            },
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    metadata = {"job": payload.job, "request_id": request_id}
    user_ids = [payload.user_id] if payload.user_id else None
    start = perf_counter()
    with trace("jobs.run_now", metadata=metadata, request_id=request_id):
        if payload.job == "weekly_plan":
            result = run_weekly_plan_for_all_users(db, user_ids=user_ids, force=payload.force, generator=generator)
        else:
            result = run_session_nudges(db, user_ids=user_ids)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("jobs.run_now.success", 1, metadata={"job": payload.job})
    log_metric("jobs.run_now.latency_ms", latency_ms, metadata={"job": payload.job})

    return JobRunResponse(
        job=payload.job,
        users_processed=result.users_processed,
        plans_written=result.plans_written,
        notifications_sent=result.notifications_sent,
        skipped_existing=result.skipped_existing,
        failures=result.failures,
        request_id=request_id or "",
    )
