"""Schemas for session and daily habit endpoints."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from weekwise.api.schemas.common import ProgressPayload, SessionPayload


class SessionResponse(BaseModel):
    session: SessionPayload
    request_id: str


class CompleteSessionRequest(BaseModel):
    user_id: UUID
    completed_detail: Optional[Dict[str, Any]] = None


class CompleteSessionResponse(BaseModel):
    session: SessionPayload
    already_completed: bool
    progress: ProgressPayload
    request_id: str


class AdaptSessionRequest(BaseModel):
    user_id: UUID
    action: Literal["skip", "reschedule", "modify"]
    new_date: Optional[date] = None
    new_detail: Optional[Dict[str, Any]] = None
    title: Optional[str] = Field(default=None, max_length=255)
    reason: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _check_action_fields(self) -> "AdaptSessionRequest":
        if self.action == "reschedule" and self.new_date is None:
            raise ValueError("new_date is required to reschedule")
        return self


class AdaptSessionResponse(BaseModel):
    session: SessionPayload
    validation: Optional[Dict[str, Any]] = None
    request_id: str


class ExtraSessionRequest(BaseModel):
    user_id: UUID
    domain: Literal["cardio", "strength", "mindfulness"]
    title: str = Field(min_length=1, max_length=255)
    detail: Dict[str, Any] = Field(default_factory=dict)
    session_date: Optional[date] = None


class ExtraSessionResponse(BaseModel):
    session: SessionPayload
    progress: ProgressPayload
    request_id: str


class DailyHabitsRequest(BaseModel):
    user_id: UUID
    day: Optional[date] = Field(default=None, description="Defaults to today")
    steps: Optional[int] = Field(default=None, ge=0)
    nutrition_on_plan: Optional[bool] = None
    sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)
    sleep_quality: Optional[int] = Field(default=None, ge=1, le=5)
