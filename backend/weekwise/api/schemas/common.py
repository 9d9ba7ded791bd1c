"""Shared response payloads for plans and sessions."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SessionPayload(BaseModel):
    id: UUID
    plan_id: Optional[UUID] = None
    domain: str
    day_of_week: int = Field(ge=0, le=6)
    scheduled_date: date
    title: str
    status: str
    detail: Dict[str, Any] = Field(default_factory=dict)
    duration_minutes: Optional[float] = None
    completed_at: Optional[str] = None
    completed_detail: Optional[Dict[str, Any]] = None
    sort_order: int = 0
    is_extra: bool = False


class PlanPayload(BaseModel):
    id: UUID
    week_start: date
    status: str
    intro_message: Optional[str] = None
    tracking_briefs: Dict[str, Any] = Field(default_factory=dict)
    issues: List[str] = Field(default_factory=list)
    confirmed_at: Optional[str] = None
    superseded_at: Optional[str] = None
    sessions: Optional[List[SessionPayload]] = None


class DomainProgress(BaseModel):
    label: str
    completed: int
    total: int
    skipped: int = 0
    rate: float


class ProgressPayload(BaseModel):
    week_start: date
    domains: Dict[str, DomainProgress]
