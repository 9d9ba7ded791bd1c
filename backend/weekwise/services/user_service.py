"""Helpers for users, their profile snapshot and planning context."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from weekwise.core.errors import InvalidRequestError, NotFoundError, operation_boundary
from weekwise.db.models.user import User
from weekwise.db.models.user_context import CONTEXT_CATEGORIES, CONTEXT_SCOPES, UserContextItem


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Fetch an existing user or create a new row safely."""
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id)
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise


def require_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User profile not found")
    return user


def find_user_by_chat(db: Session, chat_id: str) -> Optional[User]:
    return db.query(User).filter(User.telegram_chat_id == str(chat_id)).one_or_none()


def active_context_items(db: Session, user_id: UUID, today: Optional[date] = None) -> List[UserContextItem]:
    """Active items, excluding temporary ones that have expired (they are kept, just not read)."""
    today = today or date.today()
    return (
        db.query(UserContextItem)
        .filter(
            UserContextItem.user_id == user_id,
            UserContextItem.active.is_(True),
            or_(
                UserContextItem.scope == "permanent",
                UserContextItem.expires_at.is_(None),
                UserContextItem.expires_at >= today,
            ),
        )
        .order_by(UserContextItem.created_at.asc())
        .all()
    )


def profile_snapshot(db: Session, user: User, today: Optional[date] = None) -> Dict[str, Any]:
    """Read-only view of the user handed to plan generation and the agent."""
    return {
        "user_id": str(user.id),
        "age": user.age,
        "weight_kg": float(user.weight_kg) if user.weight_kg is not None else None,
        "baselines": dict(user.domain_baselines or {}),
        "onboarding_completed": bool(user.onboarding_completed),
        "context": [
            {"category": item.category, "content": item.content, "scope": item.scope}
            for item in active_context_items(db, user.id, today)
        ],
    }


def serialize_context_item(item: UserContextItem) -> Dict[str, Any]:
    return {
        "id": str(item.id),
        "category": item.category,
        "content": item.content,
        "scope": item.scope,
        "expires_at": item.expires_at.isoformat() if item.expires_at else None,
        "source": item.source,
        "active": item.active,
    }


@operation_boundary()
def add_context_item(
    db: Session,
    user_id: UUID,
    *,
    category: str,
    content: str,
    scope: str = "permanent",
    expires_at: Optional[date] = None,
    source: str = "conversation",
) -> Dict[str, Any]:
    if category not in CONTEXT_CATEGORIES:
        raise InvalidRequestError(f"Unknown context category: {category}")
    if scope not in CONTEXT_SCOPES:
        raise InvalidRequestError(f"Unknown context scope: {scope}")
    if scope == "temporary" and expires_at is None:
        raise InvalidRequestError("Temporary context needs an expiry date")
    require_user(db, user_id)
    item = UserContextItem(
        user_id=user_id,
        category=category,
        content=content.strip(),
        scope=scope,
        expires_at=expires_at if scope == "temporary" else None,
        source=source,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return {"item": serialize_context_item(item)}


@operation_boundary()
def deactivate_context_item(db: Session, user_id: UUID, item_id: UUID) -> Dict[str, Any]:
    item = db.get(UserContextItem, item_id)
    if not item or item.user_id != user_id:
        raise NotFoundError("Context item not found")
    item.active = False
    db.commit()
    return {"item": serialize_context_item(item)}


@operation_boundary()
def list_context_items(db: Session, user_id: UUID, today: Optional[date] = None) -> Dict[str, Any]:
    require_user(db, user_id)
    return {"items": [serialize_context_item(item) for item in active_context_items(db, user_id, today)]}
