"""Schemas for the web onboarding endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class OnboardingStartRequest(BaseModel):
    user_id: UUID


class OnboardingCallbackRequest(BaseModel):
    user_id: UUID
    callback_data: str = Field(min_length=1, max_length=64)
    message_id: Optional[int] = None


class OnboardingTextRequest(BaseModel):
    user_id: UUID
    text: str = Field(max_length=100)
