"""WeeklyPlan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from weekwise.db.base import Base
from weekwise.db.types import JSONBCompat, utcnow

PLAN_DRAFT = "draft"
PLAN_ACTIVE = "active"
PLAN_SUPERSEDED = "superseded"


class WeeklyPlan(Base):
    __tablename__ = "weekly_plans"
    __table_args__ = (
        Index("ix_weekly_plans_user_week", "user_id", "week_start"),
        # At most one active plan per (user, week); drafts and superseded rows may coexist.
        Index(
            "uq_weekly_plans_active_week",
            "user_id",
            "week_start",
            unique=True,
            postgresql_where=sa_text("status = 'active'"),
            sqlite_where=sa_text("status = 'active'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    week_start = Column(Date, nullable=False)
    status = Column(String(length=20), nullable=False, default=PLAN_DRAFT, server_default=sa_text("'draft'"))
    intro_message = Column(Text, nullable=False, default="")
    tracking_briefs = Column(JSONBCompat, nullable=True)
    generation_context = Column(JSONBCompat, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    superseded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
