"""Shared fixtures: in-memory SQLite schema, API client and fake collaborators."""
from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from weekwise.db import Base
from weekwise.db.models.user import User
from weekwise.services.plan_generation import FallbackPlanGenerator, GenerationRequest

# A Monday; every lifecycle test pins "today" relative to it.
WEEK_START = date(2026, 10, 19)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    yield TestingSession
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db_session) -> Callable[..., UUID]:
    def _make(**fields: Any) -> UUID:
        user = User(id=fields.pop("id", uuid4()), onboarding_completed=fields.pop("onboarding_completed", True), **fields)
        db_session.add(user)
        db_session.commit()
        return user.id

    return _make


class RecordingGenerator:
    """Fallback template output, or a scripted payload, while recording every request."""

    def __init__(self, payload: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None) -> None:
        self.payload = payload
        self.error = error
        self.requests: List[GenerationRequest] = []

    def generate(self, request: GenerationRequest) -> Any:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.payload is not None:
            return self.payload
        return FallbackPlanGenerator().generate(request)


@pytest.fixture()
def generator() -> RecordingGenerator:
    return RecordingGenerator()


@pytest.fixture()
def client(session_factory, monkeypatch):
    from weekwise.core.config import settings
    from weekwise.db.deps import get_db
    from weekwise.main import app
    from weekwise.services.agent.loop import KeywordReasoningClient, get_reasoning_client
    from weekwise.services.plan_generation import get_plan_generator

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_plan_generator] = FallbackPlanGenerator
    app.dependency_overrides[get_reasoning_client] = KeywordReasoningClient
    monkeypatch.setattr(settings, "telegram_webhook_secret", None)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
