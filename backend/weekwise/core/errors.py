"""Error taxonomy for planning operations and the boundary that flattens it.

Service code raises these exceptions internally. Public operations are wrapped
with :func:`operation_boundary`, which converts them (and store failures) into
plain ``{"error": ..., "error_type": ...}`` records so every result can be
rendered by a presentation layer.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Dict, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Dict[str, Any]])


class PlanningError(Exception):
    """Base class for recoverable planning-subsystem failures."""

    error_type = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "error_type": self.error_type}


class NotFoundError(PlanningError):
    error_type = "not_found"


class StateMismatchError(PlanningError):
    error_type = "state_mismatch"


class InvalidRequestError(PlanningError):
    error_type = "invalid"


class UpstreamFailure(PlanningError):
    error_type = "upstream"


ERROR_STATUS_CODES = {
    "not_found": 404,
    "state_mismatch": 409,
    "invalid": 422,
    "upstream": 502,
    "error": 500,
}


def is_error(result: Dict[str, Any]) -> bool:
    return isinstance(result, dict) and "error" in result


def operation_boundary(*, success_flag: bool = False) -> Callable[[F], F]:
    """Recover planning and store failures into a structured error payload.

    The wrapped function must take the SQLAlchemy session as its first
    argument; it is rolled back before the error record is returned so no
    partial writes survive a failed operation.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(db: Session, *args: Any, **kwargs: Any) -> Dict[str, Any]:
            try:
                return func(db, *args, **kwargs)
            except PlanningError as exc:
                db.rollback()
                payload = exc.to_dict()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Store failure in %s: %s", func.__name__, exc)
                payload = UpstreamFailure("Storage unavailable, nothing was saved").to_dict()
            if success_flag:
                payload["success"] = False
            return payload

        return wrapper  # type: ignore[return-value]

    return decorator
