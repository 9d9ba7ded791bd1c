"""Audit trail helpers for state-changing operations."""
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from weekwise.db.models.agent_action_log import AgentActionLog


def record_action(
    db: Session,
    user_id: UUID,
    action_type: str,
    payload: Optional[Dict[str, Any]] = None,
    reason: Optional[str] = None,
) -> AgentActionLog:
    """Stage an audit row in the caller's transaction; the caller commits."""
    log = AgentActionLog(
        user_id=user_id,
        action_type=action_type,
        action_payload=payload or {},
        reason=reason,
    )
    db.add(log)
    return log
