"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["weekly_plan", "session_nudges"]
    user_id: Optional[UUID] = None
    force: bool = False


class JobRunResponse(BaseModel):
    job: str
    users_processed: int
    plans_written: int
    notifications_sent: int
    skipped_existing: int
    failures: List[str]
    request_id: str
