"""Schemas for weekly plan endpoints."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from weekwise.api.schemas.common import PlanPayload, ProgressPayload, SessionPayload


class GeneratePlanRequest(BaseModel):
    user_id: UUID
    week_start: Optional[date] = Field(default=None, description="Any day of the target week; defaults to today")
    draft: bool = False
    planning_context: Optional[str] = Field(default=None, max_length=2000)
    start_from_date: Optional[date] = None


class GeneratePlanResponse(BaseModel):
    success: bool
    plan_id: UUID
    is_draft: bool
    issues: List[str]
    session_count: int
    request_id: str


class ConfirmPlanRequest(BaseModel):
    user_id: UUID


class ConfirmPlanResponse(BaseModel):
    plan: PlanPayload
    superseded_plan_id: Optional[UUID] = None
    request_id: str


class ActivePlanResponse(BaseModel):
    week_start: date
    plan: Optional[PlanPayload] = None
    request_id: str


class WeekViewResponse(BaseModel):
    week_start: date
    plan: Optional[PlanPayload] = None
    draft: Optional[PlanPayload] = None
    sessions: List[SessionPayload]
    progress: Dict[str, Any]
    request_id: str


class ProgressResponse(ProgressPayload):
    habits: Dict[str, Any]
    request_id: str


class PlanHistoryResponse(BaseModel):
    user_id: UUID
    plans: List[PlanPayload]
    request_id: str
