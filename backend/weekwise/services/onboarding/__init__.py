"""Multi-turn onboarding conversation."""
from weekwise.services.onboarding.engine import (
    current_state,
    handle_callback,
    handle_text,
    is_in_onboarding,
    start,
    telegram_key,
    web_key,
)

__all__ = [
    "current_state",
    "handle_callback",
    "handle_text",
    "is_in_onboarding",
    "start",
    "telegram_key",
    "web_key",
]
