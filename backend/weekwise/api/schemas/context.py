"""Schemas for user planning context."""
from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ContextItemCreate(BaseModel):
    user_id: UUID
    category: Literal["physical", "environment", "equipment", "schedule"]
    content: str = Field(min_length=1, max_length=500)
    scope: Literal["permanent", "temporary"] = "permanent"
    expires_at: Optional[date] = None


class ContextItemPayload(BaseModel):
    id: UUID
    category: str
    content: str
    scope: str
    expires_at: Optional[date] = None
    source: str
    active: bool


class ContextItemResponse(BaseModel):
    item: ContextItemPayload
    request_id: str


class ContextListResponse(BaseModel):
    items: List[ContextItemPayload]
    request_id: str
