"""Web onboarding endpoints; the chat channel drives the same engine via the webhook."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from weekwise.api.responses import unwrap
from weekwise.api.schemas.onboarding import (
    OnboardingCallbackRequest,
    OnboardingStartRequest,
    OnboardingTextRequest,
)
from weekwise.db.deps import get_db
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services import onboarding
from weekwise.services.plan_generation import PlanGenerator, get_plan_generator
from weekwise.services.user_service import get_or_create_user

router = APIRouter()


@router.post("/onboarding/start", tags=["onboarding"])
def onboarding_start(
    request: Request,
    payload: OnboardingStartRequest,
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("onboarding.start", metadata={"channel": "web"}, user_id=str(payload.user_id), request_id=request_id):
        get_or_create_user(db, payload.user_id)
        db.commit()
        result = onboarding.start(db, onboarding.web_key(payload.user_id), payload.user_id, generator=generator)

    log_metric("onboarding.start.success", 0 if "error" in result else 1, metadata={"channel": "web"})
    return unwrap(result, request_id)


@router.post("/onboarding/callback", tags=["onboarding"])
def onboarding_callback(
    request: Request,
    payload: OnboardingCallbackRequest,
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("onboarding.callback", metadata={"channel": "web"}, user_id=str(payload.user_id), request_id=request_id):
        result = onboarding.handle_callback(
            db,
            onboarding.web_key(payload.user_id),
            payload.callback_data,
            message_id=payload.message_id,
            generator=generator,
        )

    if result.get("stale"):
        log_metric("onboarding.callback.stale", 1, metadata={"channel": "web"})
    return unwrap(result, request_id)


@router.post("/onboarding/text", tags=["onboarding"])
def onboarding_text(
    request: Request,
    payload: OnboardingTextRequest,
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("onboarding.text", metadata={"channel": "web"}, user_id=str(payload.user_id), request_id=request_id):
        result = onboarding.handle_text(db, onboarding.web_key(payload.user_id), payload.text, generator=generator)
    return unwrap(result, request_id)


@router.get("/onboarding/state", tags=["onboarding"])
def onboarding_state(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("onboarding.state", metadata={"channel": "web"}, user_id=str(user_id), request_id=request_id):
        result = onboarding.current_state(db, onboarding.web_key(user_id), generator=generator)
    return unwrap(result, request_id)
