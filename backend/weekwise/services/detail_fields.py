"""Alias resolution for loosely-shaped session ``detail`` documents.

Generated details are untrusted: the same attribute arrives as ``targetMinutes``,
``duration_min`` or ``duration: "45 min"`` depending on the run. Every reader of
a detail goes through :func:`resolve` so the accepted spellings live in one
table.
"""
from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

Parser = Callable[[Any], Optional[Any]]

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_DIGIT_RE = re.compile(r"\d")


def parse_minutes(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if match:
            minutes = float(match.group())
            return minutes if minutes > 0 else None
    return None


def parse_zone(value: Any) -> Optional[int]:
    """``2``, ``2.0``, ``"2"`` and ``"Zone 2"`` all resolve to ``2``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        match = _DIGIT_RE.search(value)
        if match:
            return int(match.group())
    return None


def parse_label(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip().lower()
    return None


def parse_present(value: Any) -> Optional[Any]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, (list, tuple, dict)) and not value:
        return None
    return value


FIELD_ALIASES: Dict[str, Tuple[Tuple[str, Parser], ...]] = {
    "duration": (
        ("targetMinutes", parse_minutes),
        ("target_minutes", parse_minutes),
        ("durationMinutes", parse_minutes),
        ("duration_minutes", parse_minutes),
        ("duration_min", parse_minutes),
        ("duration", parse_minutes),
        ("minutes", parse_minutes),
    ),
    "zone": (
        ("zone", parse_zone),
        ("hr_zone", parse_zone),
        ("heartRateZone", parse_zone),
    ),
    "mindfulness_type": (
        ("type", parse_label),
        ("mindfulnessType", parse_label),
        ("practice", parse_label),
    ),
    "warm_up": (
        ("warmUp", parse_present),
        ("warm_up", parse_present),
        ("warmup", parse_present),
    ),
    "cool_down": (
        ("coolDown", parse_present),
        ("cool_down", parse_present),
        ("cooldown", parse_present),
    ),
}

FIELD_LABELS = {
    "duration": "duration",
    "zone": "zone",
    "mindfulness_type": "practice type",
    "warm_up": "warm-up",
    "cool_down": "cool-down",
}


def resolve(detail: Any, attr: str) -> Optional[Any]:
    """Return the first alias of ``attr`` in ``detail`` that parses, else ``None``."""
    if not isinstance(detail, Mapping):
        return None
    for name, parser in FIELD_ALIASES[attr]:
        if name not in detail:
            continue
        parsed = parser(detail[name])
        if parsed is not None:
            return parsed
    return None


def coerce_detail(raw: Any) -> Dict[str, Any]:
    """Normalize a detail that may arrive as a JSON string into a dict.

    Anything that is not an object after decoding becomes ``{}``.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    return {}
