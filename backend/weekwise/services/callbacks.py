"""Colon-delimited callback strings echoed back by messaging channels.

Formats::

    ob:select:<question_id>:<value>
    ob:toggle:<question_id>:<value>
    ob:done:<question_id>
    act:<complete|skip|tomorrow|detail>:<session_id>
    draft:confirm:<plan_id>
    draft:moveto:<session_id>:<day_of_week>
    cmd:<command>
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

NONE_VALUE = "__none__"

ONBOARDING_OPS = ("select", "toggle", "done")
SESSION_OPS = ("complete", "skip", "tomorrow", "detail")
DRAFT_OPS = ("confirm", "moveto")


@dataclass(frozen=True)
class Callback:
    namespace: str
    op: str
    target: Optional[str] = None
    value: Optional[str] = None


def parse_callback(data: Optional[str]) -> Optional[Callback]:
    """Parse a callback string; returns ``None`` for anything malformed."""
    if not data:
        return None
    parts = data.split(":")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    namespace, op = parts[0], parts[1]

    if namespace == "ob":
        if op not in ONBOARDING_OPS or len(parts) < 3 or not parts[2]:
            return None
        if op == "done":
            return Callback(namespace, op, parts[2])
        if len(parts) < 4:
            return None
        # Option values may themselves contain colons.
        return Callback(namespace, op, parts[2], ":".join(parts[3:]))

    if namespace == "act":
        if op not in SESSION_OPS or len(parts) != 3 or not parts[2]:
            return None
        return Callback(namespace, op, parts[2])

    if namespace == "draft":
        if op == "confirm" and len(parts) == 3 and parts[2]:
            return Callback(namespace, op, parts[2])
        if op == "moveto" and len(parts) == 4 and parts[3].isdigit() and int(parts[3]) <= 6:
            return Callback(namespace, op, parts[2], parts[3])
        return None

    if namespace == "cmd" and len(parts) == 2:
        return Callback(namespace, op)
    return None


def onboarding_callback(op: str, question_id: str, value: Optional[str] = None) -> str:
    if value is None:
        return f"ob:{op}:{question_id}"
    return f"ob:{op}:{question_id}:{value}"


def session_callback(op: str, session_id: object) -> str:
    return f"act:{op}:{session_id}"


def draft_callback(op: str, target: object, value: Optional[object] = None) -> str:
    if value is None:
        return f"draft:{op}:{target}"
    return f"draft:{op}:{target}:{value}"
