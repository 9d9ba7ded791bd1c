"""Daily tracked-domain log (steps, nutrition adherence, sleep)."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from weekwise.db.base import Base

DEFAULT_STEPS_TARGET = 10_000


class DailyHabitLog(Base):
    __tablename__ = "daily_habits"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_habits_user_date"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    steps_actual = Column(Integer, nullable=True)
    steps_target = Column(Integer, nullable=False, default=DEFAULT_STEPS_TARGET)
    nutrition_on_plan = Column(Boolean, nullable=True)
    sleep_hours = Column(Float, nullable=True)
    sleep_quality = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
