"""PlannedSession ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from weekwise.db.base import Base
from weekwise.db.types import JSONBCompat

SESSION_PLANNED = "planned"
SESSION_COMPLETED = "completed"
SESSION_SKIPPED = "skipped"


class PlannedSession(Base):
    __tablename__ = "planned_sessions"
    __table_args__ = (
        Index("ix_planned_sessions_user_date", "user_id", "scheduled_date"),
        Index("ix_planned_sessions_plan_id", "plan_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    plan_id = Column(
        UUID(as_uuid=True),
        ForeignKey("weekly_plans.id", ondelete="CASCADE"),
        nullable=True,
    )
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    domain = Column(String(length=20), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    title = Column(Text, nullable=False)
    status = Column(String(length=20), nullable=False, default=SESSION_PLANNED, server_default=sa_text("'planned'"))
    detail = Column(JSONBCompat, nullable=False, default=dict)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_detail = Column(JSONBCompat, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_extra = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
