"""Engine and session factory."""
from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from weekwise.core.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("postgresql"):
        # Bounds every statement so a stuck store call cannot block a request forever.
        return {"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"}
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
    future=True,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
