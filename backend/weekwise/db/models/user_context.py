"""Free-text facts about a user that shape planning."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from weekwise.db.base import Base
from weekwise.db.types import utcnow

CONTEXT_CATEGORIES = ("physical", "environment", "equipment", "schedule")
CONTEXT_SCOPES = ("permanent", "temporary")
CONTEXT_SOURCES = ("onboarding", "conversation")


class UserContextItem(Base):
    __tablename__ = "user_context"
    __table_args__ = (Index("ix_user_context_user_id", "user_id"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category = Column(String(length=20), nullable=False)
    content = Column(Text, nullable=False)
    scope = Column(String(length=20), nullable=False, default="permanent")
    expires_at = Column(Date, nullable=True)
    source = Column(String(length=20), nullable=False, default="conversation")
    active = Column(Boolean, nullable=False, default=True, server_default=sa_text("true"))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
