"""Translate structured service results into HTTP responses."""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import HTTPException

from weekwise.core.errors import ERROR_STATUS_CODES, is_error


def unwrap(result: Dict[str, Any], request_id: Optional[str]) -> Dict[str, Any]:
    """Raise for ``{"error": ...}`` results; otherwise attach the request id."""
    if is_error(result):
        error_type = result.get("error_type", "error")
        raise HTTPException(
            status_code=ERROR_STATUS_CODES.get(error_type, 500),
            detail={"error": result["error"], "error_type": error_type},
        )
    return {**result, "request_id": request_id or ""}
