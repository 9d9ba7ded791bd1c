"""User ORM model (profile snapshot source)."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from weekwise.db.base import Base
from weekwise.db.types import JSONBCompat


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    age = Column(Integer, nullable=True)
    weight_kg = Column(Numeric(5, 1), nullable=True)
    domain_baselines = Column(JSONBCompat, nullable=True)
    onboarding_completed = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    telegram_chat_id = Column(String(length=64), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
