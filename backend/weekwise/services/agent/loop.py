"""One agent turn: a structured command or a reasoning-driven chain of tool calls."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

import openai
from sqlalchemy.orm import Session

from weekwise.core.config import settings
from weekwise.core.context import bind_user
from weekwise.core.errors import PlanningError, UpstreamFailure
from weekwise.db.models.chat_message import ChatMessage
from weekwise.observability.metrics import log_metric, timed
from weekwise.observability.tracing import trace
from weekwise.services.agent.locks import UserTurnLocks, turn_locks
from weekwise.services.agent.tools import ToolContext, openai_tool_schemas, run_tool
from weekwise.services.policy_table import prompt_brief

logger = logging.getLogger(__name__)

MAX_TOOL_STEPS = settings.agent_max_steps
BUSY_MESSAGE = "Still working on your last message..."


@dataclass
class ToolCall:
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    id: str = ""


@dataclass
class ReasoningStep:
    tool_calls: List[ToolCall] = field(default_factory=list)
    text: Optional[str] = None


class ReasoningClient(Protocol):
    def next_step(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ReasoningStep:
        """Return the tool calls to run next, or final text when done."""


class OpenAIReasoningClient:
    def __init__(self, api_key: str, model: Optional[str] = None, client: Any = None) -> None:
        self.model = model or settings.openai_agent_model
        self._client = client or openai.OpenAI(api_key=api_key, timeout=settings.agent_timeout_s)

    def next_step(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ReasoningStep:
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=tools,
                tool_choice="auto",
                temperature=0.3,
            )
        except openai.OpenAIError as exc:
            raise UpstreamFailure(f"Coach reasoning failed: {exc}") from exc

        message = completion.choices[0].message
        calls = []
        for call in message.tool_calls or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except ValueError:
                arguments = {"_raw": call.function.arguments}
            calls.append(ToolCall(name=call.function.name, arguments=arguments, id=call.id))
        return ReasoningStep(tool_calls=calls, text=message.content)


class KeywordReasoningClient:
    """Offline stand-in used without an OpenAI key: maps a few phrases to read-only tools."""

    ROUTES = (
        (re.compile(r"\b(progress|status|how am i doing)\b", re.I), "show_progress", {}),
        (re.compile(r"\b(week|weekly)\b", re.I), "show_week_plan", {}),
        (re.compile(r"\b(today|now)\b", re.I), "show_today_plan", {}),
        (re.compile(r"\b(timer|breath\w*)\b", re.I), "start_timer", {"minutes": 5}),
        (re.compile(r"\b(new plan|replan|plan my week)\b", re.I), "generate_plan", {"draft": True}),
    )

    def next_step(self, messages: List[Dict[str, Any]], tools: List[Dict[str, Any]]) -> ReasoningStep:
        if messages and messages[-1].get("role") == "tool":
            return ReasoningStep(text="Here you go.")
        user_text = next((m.get("content") or "" for m in reversed(messages) if m.get("role") == "user"), "")
        for pattern, tool, arguments in self.ROUTES:
            if pattern.search(user_text):
                return ReasoningStep(tool_calls=[ToolCall(name=tool, arguments=dict(arguments), id=f"kw-{tool}")])
        return ReasoningStep(text="I can show today's plan, your week or your progress. What would you like?")


def get_reasoning_client() -> ReasoningClient:
    if settings.openai_api_key:
        return OpenAIReasoningClient(api_key=settings.openai_api_key)
    return KeywordReasoningClient()


def _system_prompt(today: date) -> str:
    return (
        "You are a personal coach. Use the tools to read and change the user's plan; "
        "never invent sessions or ids. Keep answers short.\n"
        f"Today is {today.isoformat()}.\n"
        f"Coaching rules:\n{prompt_brief()}"
    )


def _history(db: Session, user_id: UUID) -> List[Dict[str, Any]]:
    rows = (
        db.query(ChatMessage)
        .filter(ChatMessage.user_id == user_id)
        .order_by(ChatMessage.created_at.desc())
        .limit(settings.agent_history_limit)
        .all()
    )
    return [{"role": row.role, "content": row.content} for row in reversed(rows) if row.content]


def run_turn(
    db: Session,
    user_id: UUID,
    *,
    message: Optional[str] = None,
    command: Optional[Dict[str, Any]] = None,
    reasoning: Optional[ReasoningClient] = None,
    locks: UserTurnLocks = turn_locks,
    context: Optional[ToolContext] = None,
) -> Dict[str, Any]:
    """Run one turn for a user; a concurrent turn for the same user is rejected as busy.

    ``command`` (``{"tool": name, "arguments": {...}}``) runs exactly one tool.
    ``message`` goes through the reasoning client, which may chain at most
    ``MAX_TOOL_STEPS`` tool calls before the turn is cut off.
    """
    with locks.acquire(user_id) as acquired:
        if not acquired:
            log_metric("agent.turn.busy", 1)
            return {"status": "busy", "message": BUSY_MESSAGE, "outputs": []}

        with bind_user(user_id), trace("agent.turn", metadata={"mode": "command" if command else "chat"}):
            with timed("agent.turn") as outcome:
                if command is not None:
                    name = str(command.get("tool") or "")
                    output = run_tool(db, user_id, name, command.get("arguments"), context)
                    outcome["mode"] = "command"
                    return {"status": "ok", "outputs": [{"tool": name, "output": output}], "summary": None, "steps": 1}
                result = _chat_turn(db, user_id, message or "", reasoning or get_reasoning_client(), context)
                outcome.update(mode="chat", steps=result["steps"], status=result["status"])
                return result


def _chat_turn(
    db: Session,
    user_id: UUID,
    message: str,
    reasoning: ReasoningClient,
    context: Optional[ToolContext],
) -> Dict[str, Any]:
    context = context or ToolContext()
    today = context.today or date.today()
    messages: List[Dict[str, Any]] = [{"role": "system", "content": _system_prompt(today)}]
    messages.extend(_history(db, user_id))
    messages.append({"role": "user", "content": message})

    # Persist the user message first so a failing tool's rollback cannot drop it.
    db.add(ChatMessage(user_id=user_id, role="user", content=message))
    db.commit()

    schemas = openai_tool_schemas()
    outputs: List[Dict[str, Any]] = []
    steps = 0
    truncated = False
    status = "ok"
    summary: Optional[str] = None

    while True:
        try:
            step = reasoning.next_step(messages, schemas)
        except PlanningError as exc:
            logger.error("Reasoning step failed: %s", exc.message)
            status, summary = "error", "I couldn't reach the coach just now. Please try again in a moment."
            break

        if not step.tool_calls:
            summary = step.text
            break
        if steps >= MAX_TOOL_STEPS:
            truncated = True
            summary = step.text or "I've made several changes; ask me to continue if you need more."
            break

        runnable = step.tool_calls[: MAX_TOOL_STEPS - steps]
        messages.append(
            {
                "role": "assistant",
                "content": step.text,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                    }
                    for call in runnable
                ],
            }
        )
        for call in runnable:
            output = run_tool(db, user_id, call.name, call.arguments, context)
            outputs.append({"tool": call.name, "output": output})
            messages.append({"role": "tool", "tool_call_id": call.id, "content": json.dumps(output, default=str)})
            steps += 1
        if len(runnable) < len(step.tool_calls):
            truncated = True
            summary = "I've made several changes; ask me to continue if you need more."
            break

    if truncated:
        logger.warning("Agent turn hit the %d tool-call cap", MAX_TOOL_STEPS)

    db.add(
        ChatMessage(
            user_id=user_id,
            role="assistant",
            content=summary or "",
            tool_outputs=json.loads(json.dumps(outputs, default=str)) if outputs else None,
        )
    )
    db.commit()
    return {"status": status, "outputs": outputs, "summary": summary, "steps": steps, "truncated": truncated}
