"""Agent turn endpoint for the web chat."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from weekwise.api.schemas.agent import AgentTurnRequest
from weekwise.core.errors import NotFoundError
from weekwise.db.deps import get_db
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services.agent.loop import ReasoningClient, get_reasoning_client, run_turn
from weekwise.services.agent.tools import ToolContext
from weekwise.services.plan_generation import PlanGenerator, get_plan_generator
from weekwise.services.user_service import require_user

router = APIRouter()


@router.post("/agent/turn", tags=["agent"])
def agent_turn(
    request: Request,
    payload: AgentTurnRequest,
    db: Session = Depends(get_db),
    generator: PlanGenerator = Depends(get_plan_generator),
    reasoning: ReasoningClient = Depends(get_reasoning_client),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    mode = "command" if payload.command else "chat"
    try:
        require_user(db, payload.user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)

    start = perf_counter()
    with trace("agent.turn.http", metadata={"mode": mode}, user_id=str(payload.user_id), request_id=request_id):
        result = run_turn(
            db,
            payload.user_id,
            message=payload.message,
            command=payload.command.model_dump() if payload.command else None,
            reasoning=reasoning,
            context=ToolContext(generator=generator),
        )

    log_metric("agent.turn.http.latency_ms", (perf_counter() - start) * 1000, metadata={"mode": mode})
    if result["status"] == "busy":
        log_metric("agent.turn.http.busy", 1)
    return {**result, "request_id": request_id or ""}
