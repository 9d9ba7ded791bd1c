"""FastAPI dependency providing a request-scoped database session."""
from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from weekwise.db.session import SessionLocal


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
