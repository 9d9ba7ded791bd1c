"""Routing of inbound messaging-channel events.

The dispatcher knows nothing about the transport's wire format beyond a chat
id, an optional text and an optional callback string. Onboarding takes
precedence while a state row exists for the chat; everything else becomes an
agent turn (a structured command or free text).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from weekwise.core.context import bind_user
from weekwise.services import onboarding, plan_lifecycle
from weekwise.services.agent.locks import UserTurnLocks, turn_locks
from weekwise.services.agent.loop import ReasoningClient, run_turn
from weekwise.services.agent.tools import ToolContext
from weekwise.services.callbacks import Callback, parse_callback
from weekwise.services.plan_generation import PlanGenerator
from weekwise.services.user_service import find_user_by_chat

logger = logging.getLogger(__name__)

SLASH_COMMANDS = {
    "/today": "show_today_plan",
    "/week": "show_week_plan",
    "/progress": "show_progress",
}
LOG_USAGE = "Usage: /log <steps> | /log sleep <hours> | /log nutrition on|off"


@dataclass
class InboundEvent:
    chat_id: str
    text: Optional[str] = None
    callback_data: Optional[str] = None
    message_id: Optional[int] = None


def parse_telegram_update(update: Dict[str, Any]) -> Optional[InboundEvent]:
    """Extract the fields the dispatcher needs from a Telegram update payload."""
    callback = update.get("callback_query")
    if callback:
        message = callback.get("message") or {}
        chat = message.get("chat") or {}
        if "id" not in chat:
            return None
        return InboundEvent(
            chat_id=str(chat["id"]),
            callback_data=callback.get("data"),
            message_id=message.get("message_id"),
        )
    message = update.get("message") or {}
    chat = message.get("chat") or {}
    if "id" not in chat or not message.get("text"):
        return None
    return InboundEvent(chat_id=str(chat["id"]), text=message["text"].strip(), message_id=message.get("message_id"))


def parse_log_command(text: str) -> Optional[Dict[str, Any]]:
    """``/log 8500``, ``/log sleep 7.5`` or ``/log nutrition on|off`` to log_daily arguments."""
    parts = text.split()[1:]
    if len(parts) == 1 and parts[0].replace(",", "").isdigit():
        return {"steps": int(parts[0].replace(",", ""))}
    if len(parts) == 2 and parts[0].lower() == "sleep":
        try:
            return {"sleep_hours": float(parts[1])}
        except ValueError:
            return None
    if len(parts) == 2 and parts[0].lower() == "nutrition" and parts[1].lower() in {"on", "off"}:
        return {"nutrition_on_plan": parts[1].lower() == "on"}
    return None


def dispatch(
    db: Session,
    event: InboundEvent,
    *,
    generator: Optional[PlanGenerator] = None,
    reasoning: Optional[ReasoningClient] = None,
    locks: UserTurnLocks = turn_locks,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    key = onboarding.telegram_key(event.chat_id)
    text = (event.text or "").strip()

    if onboarding.is_in_onboarding(db, key):
        if event.callback_data:
            if event.callback_data.startswith("ob:"):
                result = onboarding.handle_callback(
                    db, key, event.callback_data, message_id=event.message_id, generator=generator
                )
            else:
                result = onboarding.current_state(db, key, generator=generator)
        elif text == "/start":
            result = onboarding.start(db, key, generator=generator)
        else:
            result = onboarding.handle_text(db, key, text, generator=generator)
        return {"handled_by": "onboarding", "result": result}

    user = find_user_by_chat(db, event.chat_id)
    if text == "/start":
        if user is not None and user.onboarding_completed:
            with bind_user(user.id):
                result = run_turn(db, user.id, command={"tool": "show_today_plan"}, locks=locks, context=ToolContext(today=today))
            return {"handled_by": "command", "result": result}
        result = onboarding.start(db, key, user.id if user else None, generator=generator)
        return {"handled_by": "onboarding", "result": result}

    if user is None:
        return {
            "handled_by": "unknown_chat",
            "result": {"prompts": [{"kind": "message", "text": "Send /start to set up your plan."}]},
        }

    context = ToolContext(generator=generator, today=today)
    with bind_user(user.id):
        if event.callback_data:
            command = _callback_command(db, user.id, parse_callback(event.callback_data))
            if command is None:
                logger.info("Ignoring unrecognized callback %r", event.callback_data)
                return {"handled_by": "ignored", "result": {"prompts": []}}
            if "error" in command:
                return {"handled_by": "command", "result": {"status": "ok", "outputs": [{"tool": None, "output": command}]}}
            return {"handled_by": "command", "result": run_turn(db, user.id, command=command, locks=locks, context=context)}

        command_word = text.split()[0].lower() if text else ""
        if command_word in SLASH_COMMANDS:
            command = {"tool": SLASH_COMMANDS[command_word]}
            return {"handled_by": "command", "result": run_turn(db, user.id, command=command, locks=locks, context=context)}
        if command_word == "/log":
            arguments = parse_log_command(text)
            if arguments is None:
                return {"handled_by": "command", "result": {"prompts": [{"kind": "message", "text": LOG_USAGE}]}}
            command = {"tool": "log_daily", "arguments": arguments}
            return {"handled_by": "command", "result": run_turn(db, user.id, command=command, locks=locks, context=context)}

        result = run_turn(db, user.id, message=text, reasoning=reasoning, locks=locks, context=context)
        return {"handled_by": "agent", "result": result}


def _callback_command(db: Session, user_id: Any, callback: Optional[Callback]) -> Optional[Dict[str, Any]]:
    """Translate a button callback into a single tool command."""
    if callback is None:
        return None
    if callback.namespace == "cmd" and callback.op == "today":
        return {"tool": "show_today_plan"}
    if callback.namespace == "act":
        if callback.op == "complete":
            return {"tool": "complete_session", "arguments": {"session_id": callback.target}}
        if callback.op == "detail":
            return {"tool": "show_session", "arguments": {"session_id": callback.target}}
        if callback.op == "skip":
            return {
                "tool": "adapt_plan",
                "arguments": {"session_id": callback.target, "action": "skip", "reason": "Skipped from chat"},
            }
        if callback.op == "tomorrow":
            current = plan_lifecycle.session_view(db, user_id, callback.target)
            if "error" in current:
                return current
            new_date = date.fromisoformat(current["session"]["scheduled_date"]) + timedelta(days=1)
            return _reschedule(callback.target, new_date, "Moved to tomorrow")
    if callback.namespace == "draft":
        if callback.op == "confirm":
            return {"tool": "confirm_plan", "arguments": {"plan_id": callback.target}}
        if callback.op == "moveto":
            current = plan_lifecycle.session_view(db, user_id, callback.target)
            if "error" in current:
                return current
            scheduled = date.fromisoformat(current["session"]["scheduled_date"])
            new_date = plan_lifecycle.scheduled_date_for(plan_lifecycle.week_start_for(scheduled), int(callback.value))
            return _reschedule(callback.target, new_date, "Moved while reviewing the draft")
    return None


def _reschedule(session_id: Optional[str], new_date: date, reason: str) -> Dict[str, Any]:
    return {
        "tool": "adapt_plan",
        "arguments": {
            "session_id": session_id,
            "action": "reschedule",
            "new_date": new_date.isoformat(),
            "reason": reason,
        },
    }
