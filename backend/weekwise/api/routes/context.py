"""Planning context endpoints (injuries, equipment, schedule notes)."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from weekwise.api.responses import unwrap
from weekwise.api.schemas.context import ContextItemCreate, ContextItemResponse, ContextListResponse
from weekwise.db.deps import get_db
from weekwise.observability.metrics import log_metric
from weekwise.observability.tracing import trace
from weekwise.services.user_service import add_context_item, deactivate_context_item, list_context_items

router = APIRouter()


@router.get("/context", response_model=ContextListResponse, tags=["context"])
def context_list(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("context.list", metadata={"request_id": request_id}, user_id=str(user_id), request_id=request_id):
        result = list_context_items(db, user_id)
    return unwrap(result, request_id)


@router.post("/context", response_model=ContextItemResponse, status_code=status.HTTP_201_CREATED, tags=["context"])
def context_create(
    request: Request,
    payload: ContextItemCreate,
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"category": payload.category, "scope": payload.scope}
    with trace("context.create", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        result = add_context_item(
            db,
            payload.user_id,
            category=payload.category,
            content=payload.content,
            scope=payload.scope,
            expires_at=payload.expires_at,
        )

    log_metric("context.create.success", 0 if "error" in result else 1, metadata=metadata)
    return unwrap(result, request_id)


@router.delete("/context/{item_id}", response_model=ContextItemResponse, tags=["context"])
def context_delete(
    item_id: UUID,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("context.delete", metadata={"item_id": str(item_id)}, user_id=str(user_id), request_id=request_id):
        result = deactivate_context_item(db, user_id, item_id)
    return unwrap(result, request_id)
