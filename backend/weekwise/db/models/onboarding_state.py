"""Persisted cursor and answers for an in-progress onboarding conversation."""
from __future__ import annotations

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from weekwise.db.base import Base
from weekwise.db.types import JSONBCompat


class OnboardingState(Base):
    __tablename__ = "onboarding_states"

    # e.g. "telegram:12345" or "web:<user uuid>"
    channel_key = Column(String(length=128), primary_key=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    step_index = Column(Integer, nullable=False, default=0)
    question_index = Column(Integer, nullable=False, default=0)
    data = Column(JSONBCompat, nullable=False, default=dict)
    message_id = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
