"""Resumable onboarding conversation.

Every handler reloads the persisted state row, normalizes its cursor, applies
one event, commits, and only then renders what comes next. No state is kept
between calls, so any worker can handle the next event, including after a
restart. The absence of a state row means the channel is not onboarding.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from weekwise.core.errors import InvalidRequestError, NotFoundError, operation_boundary
from weekwise.db.models.onboarding_state import OnboardingState
from weekwise.db.models.user import User
from weekwise.db.models.user_context import UserContextItem
from weekwise.observability.tracing import traced
from weekwise.services.audit import record_action
from weekwise.services.callbacks import NONE_VALUE, onboarding_callback, parse_callback
from weekwise.services.onboarding.steps import (
    BasicsStep,
    BuildStep,
    MethodologyStep,
    Position,
    Question,
    QuestionsStep,
    WelcomeStep,
    get_value,
    initial_data,
    set_value,
)
from weekwise.services.plan_generation import PlanGenerator
from weekwise.services.plan_lifecycle import generate_plan
from weekwise.services.policy_table import domain_content

logger = logging.getLogger(__name__)

BASELINE_SECTIONS = ("cardio", "strength", "nutrition", "sleep", "mindfulness")


def telegram_key(chat_id: Any) -> str:
    return f"telegram:{chat_id}"


def web_key(user_id: Any) -> str:
    return f"web:{user_id}"


def _load(db: Session, channel_key: str) -> Optional[OnboardingState]:
    return db.get(OnboardingState, channel_key, populate_existing=True)


def _position(state: OnboardingState) -> Position:
    return Position.normalize(state.step_index, state.question_index)


def _save(db: Session, state: OnboardingState, position: Position) -> None:
    state.step_index = position.step_index
    state.question_index = position.question_index
    db.commit()


def _result(state: Optional[OnboardingState], prompts: List[Dict[str, Any]], **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "in_onboarding": state is not None,
        "prompts": prompts,
        "position": _position(state).as_dict() if state is not None else None,
    }
    payload.update(extra)
    return payload


# ---------------------------------------------------------------------------
# Prompt records
# ---------------------------------------------------------------------------


def _message(text: str) -> Dict[str, Any]:
    return {"kind": "message", "text": text}


def _question_prompt(step: QuestionsStep, question: Question, index: int, data: Dict[str, Any]) -> Dict[str, Any]:
    text = question.label
    if index == 0 and step.domain:
        content = domain_content(step.domain)
        text = f"{content.title}: {content.weekly_target}\n\n{question.label}"

    if question.kind == "single_select":
        return {
            "kind": "single_select",
            "text": text,
            "question_id": question.id,
            "options": [
                {"label": opt.label, "value": opt.value, "callback": onboarding_callback("select", question.id, opt.value)}
                for opt in question.options
            ],
        }

    selected = get_value(data, question.id) or []
    options = [
        {
            "label": opt.label,
            "value": opt.value,
            "selected": opt.value in selected,
            "callback": onboarding_callback("toggle", question.id, opt.value),
        }
        for opt in question.options
    ]
    if question.none_label:
        options.append(
            {
                "label": question.none_label,
                "value": NONE_VALUE,
                "selected": not selected,
                "callback": onboarding_callback("toggle", question.id, NONE_VALUE),
            }
        )
    return {
        "kind": "multi_select",
        "text": text,
        "question_id": question.id,
        "options": options,
        "done_callback": onboarding_callback("done", question.id),
    }


def _number_prompt(step: BasicsStep, index: int, error: Optional[str] = None) -> Dict[str, Any]:
    field = step.fields[index]
    prompt = {
        "kind": "number",
        "text": f"{field.label}? ({field.placeholder})",
        "field_id": field.id,
        "min": field.min_value,
        "max": field.max_value,
    }
    if index == 0:
        prompt["text"] = f"{step.title}\n{step.subtitle}\n\n{prompt['text']}"
    if error:
        prompt["error"] = error
    return prompt


def _awaits_answer(position: Position) -> bool:
    return isinstance(position.step, (QuestionsStep, BasicsStep))


def _current_prompt(state: OnboardingState) -> Optional[Dict[str, Any]]:
    position = _position(state)
    step = position.step
    if isinstance(step, QuestionsStep):
        return _question_prompt(step, step.questions[position.question_index], position.question_index, state.data)
    if isinstance(step, BasicsStep):
        return _number_prompt(step, position.question_index)
    return None


# ---------------------------------------------------------------------------
# Advance loop
# ---------------------------------------------------------------------------


def _advance(
    db: Session,
    state: OnboardingState,
    prompts: List[Dict[str, Any]],
    generator: Optional[PlanGenerator],
) -> Dict[str, Any]:
    """Emit informational steps until one needs input, persisting each hop."""
    while True:
        position = _position(state)
        step = position.step
        if isinstance(step, WelcomeStep):
            prompts.append(_message(f"{step.title}\n\n{step.body}\n\n{step.subtitle}"))
            _save(db, state, position.advance())
            continue
        if isinstance(step, MethodologyStep):
            content = domain_content(step.domain)
            principles = "\n".join(f"- {p}" for p in content.key_principles)
            prompts.append(_message(f"{content.title}\n\n{content.philosophy}\n\n{principles}"))
            _save(db, state, position.advance())
            continue
        if isinstance(step, BuildStep):
            return _build(db, state, prompts, generator)
        prompts.append(_current_prompt(state))
        return _result(state, prompts)


def _build(
    db: Session,
    state: OnboardingState,
    prompts: List[Dict[str, Any]],
    generator: Optional[PlanGenerator],
) -> Dict[str, Any]:
    """Write the answers onto the profile, drop the state row, then generate the first plan."""
    data = state.data or {}
    channel_key = state.channel_key

    user = db.get(User, state.user_id) if state.user_id else None
    if user is None:
        user = User(id=state.user_id or uuid4())
        if channel_key.startswith("telegram:"):
            user.telegram_chat_id = channel_key.split(":", 1)[1]
        db.add(user)

    user.domain_baselines = {section: data.get(section) or {} for section in BASELINE_SECTIONS}
    user.onboarding_completed = True
    if data.get("age") is not None:
        user.age = int(data["age"])
    if data.get("weightKg") is not None:
        user.weight_kg = data["weightKg"]
    db.flush()

    context = data.get("context") or {}
    injuries = [v for v in context.get("injuries") or [] if v != NONE_VALUE]
    equipment = [v for v in context.get("homeEquipment") or [] if v != NONE_VALUE]
    for injury in injuries:
        db.add(
            UserContextItem(
                user_id=user.id,
                category="physical",
                content=f"Injury or limitation: {injury.replace('_', ' ')}",
                scope="permanent",
                source="onboarding",
            )
        )
    if equipment:
        db.add(
            UserContextItem(
                user_id=user.id,
                category="equipment",
                content="Home equipment: " + ", ".join(item.replace("_", " ") for item in equipment),
                scope="permanent",
                source="onboarding",
            )
        )
    if "gym" in ((data.get("strength") or {}).get("setup") or []):
        db.add(
            UserContextItem(
                user_id=user.id,
                category="equipment",
                content="Has gym access",
                scope="permanent",
                source="onboarding",
            )
        )

    record_action(db, user.id, "onboarding_completed", {"channel_key": channel_key})
    db.delete(state)
    db.commit()
    logger.info("Onboarding completed for %s", channel_key)

    prompts.append(_message("Building your personalized weekly plan..."))
    plan = generate_plan(db, user.id, draft=False, generator=generator)
    if plan.get("success"):
        prompts.append(_message("Your plan is ready!"))
    else:
        prompts.append(_message("Your profile is saved, but the plan could not be built yet. Send me a message and I'll retry."))
    return _result(None, prompts, completed=True, user_id=str(user.id), plan=plan)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


@traced("onboarding.start")
@operation_boundary()
def start(
    db: Session,
    channel_key: str,
    user_id: Optional[UUID] = None,
    *,
    generator: Optional[PlanGenerator] = None,
) -> Dict[str, Any]:
    """Begin (or restart) onboarding for a channel with empty answers.

    Restarting without a ``user_id`` keeps the user already bound to the state.
    """
    if user_id is not None and db.get(User, user_id) is None:
        raise NotFoundError("User profile not found")
    state = _load(db, channel_key)
    if state is None:
        state = OnboardingState(channel_key=channel_key)
        db.add(state)
    if user_id is not None:
        state.user_id = user_id
    state.data = initial_data()
    state.message_id = None
    _save(db, state, Position.normalize(0, 0))
    return _advance(db, state, [], generator)


@traced("onboarding.callback")
@operation_boundary()
def handle_callback(
    db: Session,
    channel_key: str,
    callback_data: str,
    *,
    message_id: Optional[int] = None,
    generator: Optional[PlanGenerator] = None,
) -> Dict[str, Any]:
    """Apply a button tap. Taps for any question other than the current one are stale no-ops.

    A cursor left on a step that takes no answer (e.g. the build step after a
    crash) is resumed instead of treating the tap as stale.
    """
    state = _load(db, channel_key)
    if state is None:
        return _result(None, [])

    callback = parse_callback(callback_data)
    if callback is None or callback.namespace != "ob":
        raise InvalidRequestError(f"Not an onboarding callback: {callback_data!r}")

    position = _position(state)
    if not _awaits_answer(position):
        return _advance(db, state, [], generator)
    step = position.step
    question = step.questions[position.question_index] if isinstance(step, QuestionsStep) else None
    if question is None or question.id != callback.target:
        logger.info("Ignoring stale onboarding callback %s at %s", callback_data, position.as_dict())
        return _result(state, [], stale=True)

    if callback.op == "select" and question.kind == "single_select":
        if callback.value not in {opt.value for opt in question.options}:
            raise InvalidRequestError(f"Unknown option {callback.value!r} for {question.id}")
        state.data = set_value(state.data, question.id, _parse_select(callback.value))
        state.message_id = None
        _save(db, state, position.advance())
        return _advance(db, state, [], generator)

    if callback.op == "toggle" and question.kind == "multi_select":
        current = list(get_value(state.data, question.id) or [])
        if callback.value == NONE_VALUE:
            current = []
        elif callback.value in current:
            current.remove(callback.value)
        else:
            current.append(callback.value)
        state.data = set_value(state.data, question.id, current)
        if message_id is not None:
            state.message_id = message_id
        _save(db, state, position)
        prompt = _question_prompt(step, question, position.question_index, state.data)
        prompt["edit_message_id"] = state.message_id
        return _result(state, [prompt])

    if callback.op == "done" and question.kind == "multi_select":
        state.message_id = None
        _save(db, state, position.advance())
        return _advance(db, state, [], generator)

    return _result(state, [], stale=True)


@traced("onboarding.text")
@operation_boundary()
def handle_text(
    db: Session,
    channel_key: str,
    text: str,
    *,
    generator: Optional[PlanGenerator] = None,
) -> Dict[str, Any]:
    """Apply a free-text answer to the current numeric field."""
    state = _load(db, channel_key)
    if state is None:
        return _result(None, [])

    position = _position(state)
    if not _awaits_answer(position):
        return _advance(db, state, [], generator)
    step = position.step
    if not isinstance(step, BasicsStep):
        prompt = _current_prompt(state)
        hint = _message("Please use the buttons to answer.")
        return _result(state, [hint] + ([prompt] if prompt else []))

    field = step.fields[position.question_index]
    try:
        value = float((text or "").strip().replace(",", "."))
    except ValueError:
        return _result(state, [_number_prompt(step, position.question_index, "Please enter a number.")])
    if not field.min_value <= value <= field.max_value:
        error = f"Please enter a value between {field.min_value:g} and {field.max_value:g}."
        return _result(state, [_number_prompt(step, position.question_index, error)])

    stored = int(value) if value.is_integer() else value
    state.data = set_value(state.data, field.id, stored)
    _save(db, state, position.advance())
    return _advance(db, state, [], generator)


@operation_boundary()
def current_state(db: Session, channel_key: str, *, generator: Optional[PlanGenerator] = None) -> Dict[str, Any]:
    """Re-render the pending prompt; a cursor past the last answer finishes the build."""
    state = _load(db, channel_key)
    if state is None:
        return _result(None, [])
    if not _awaits_answer(_position(state)):
        return _advance(db, state, [], generator)
    prompt = _current_prompt(state)
    return _result(state, [prompt] if prompt else [], data=state.data)


def is_in_onboarding(db: Session, channel_key: str) -> bool:
    return _load(db, channel_key) is not None


def _parse_select(value: str) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    if value.isdigit():
        return int(value)
    return value
