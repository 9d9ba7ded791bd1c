"""Messaging-bot webhook.

The bot platform retries deliveries, so every update is handled as an
independent, idempotent event against stored state. Replies are returned as
structured prompts; rendering them is the transport adapter's job.
"""
from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from weekwise.core.config import settings
from weekwise.db.deps import get_db
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services.agent.loop import ReasoningClient, get_reasoning_client
from weekwise.services.channel import dispatch, parse_telegram_update
from weekwise.services.plan_generation import PlanGenerator, get_plan_generator

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_secret(token: Optional[str]) -> None:
    expected = settings.telegram_webhook_secret
    if expected and not hmac.compare_digest(token or "", expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


@router.post("/telegram/webhook", tags=["telegram"])
def telegram_webhook(
    request: Request,
    update: Dict[str, Any],
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
    reasoning: ReasoningClient = Depends(get_reasoning_client),
    secret_token: Optional[str] = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
) -> dict:
    _check_secret(secret_token)
    request_id = getattr(request.state, "request_id", None)

    event = parse_telegram_update(update)
    if event is None:
        log_metric("telegram.webhook.ignored", 1)
        return {"ok": True, "handled_by": "ignored", "result": None, "request_id": request_id or ""}

    metadata = {"chat_id": event.chat_id, "callback": bool(event.callback_data)}
    with trace("telegram.webhook", metadata=metadata, request_id=request_id):
        routed = dispatch(db, event, generator=generator, reasoning=reasoning)

    log_metric("telegram.webhook.handled", 1, metadata={"handled_by": routed["handled_by"]})
    return {"ok": True, "chat_id": event.chat_id, **routed, "request_id": request_id or ""}
