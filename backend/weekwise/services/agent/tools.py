"""Catalog of operations the coaching agent may call.

Each tool validates its arguments with a pydantic model and returns a plain
dict. Invalid arguments and failed operations come back as ``{"error": ...}``
so a turn can keep going and still answer the user.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from weekwise.services import plan_lifecycle
from weekwise.services.plan_generation import PlanGenerator


@dataclass
class ToolContext:
    generator: Optional[PlanGenerator] = None
    today: Optional[date] = None


class NoArgs(BaseModel):
    pass


class SessionArgs(BaseModel):
    session_id: UUID = Field(description="Session to show")


class CompleteSessionArgs(BaseModel):
    session_id: UUID = Field(description="Session to mark as completed")
    completed_detail: Optional[Dict[str, Any]] = Field(
        default=None, description="What was actually done, e.g. {'actualMinutes': 50}"
    )


class LogDailyArgs(BaseModel):
    steps: Optional[int] = Field(default=None, ge=0, description="Number of steps today")
    nutrition_on_plan: Optional[bool] = Field(default=None, description="Whether nutrition was on-plan today")
    sleep_hours: Optional[float] = Field(default=None, ge=0, le=24, description="Hours slept last night")
    sleep_quality: Optional[int] = Field(default=None, ge=1, le=5, description="Sleep quality 1-5")


class AdaptPlanArgs(BaseModel):
    session_id: UUID = Field(description="Session to change")
    action: Literal["skip", "reschedule", "modify"]
    new_date: Optional[date] = Field(default=None, description="New date for reschedule (YYYY-MM-DD)")
    new_detail: Optional[Dict[str, Any]] = Field(default=None, description="Detail fields to overwrite for modify")
    title: Optional[str] = Field(default=None, description="New title for modify")
    reason: str = Field(description="Why the change is being made")


class GeneratePlanArgs(BaseModel):
    week_start: Optional[date] = Field(default=None, description="Monday of the week; defaults to this week")
    draft: bool = Field(default=True, description="Create a draft the user confirms before it becomes active")
    planning_context: Optional[str] = Field(default=None, description="Constraints to respect, e.g. 'travelling Thu-Fri'")


class ConfirmPlanArgs(BaseModel):
    plan_id: UUID


class LogExtraArgs(BaseModel):
    domain: Literal["cardio", "strength", "mindfulness"]
    title: str = Field(min_length=1)
    detail: Dict[str, Any] = Field(default_factory=dict)
    session_date: Optional[date] = None


class StartTimerArgs(BaseModel):
    minutes: int = Field(default=5, ge=1, le=120, description="Timer duration in minutes")
    label: Optional[str] = Field(default=None, description="What this timer is for")


Handler = Callable[[Session, UUID, Any, ToolContext], Dict[str, Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    args_model: type
    handler: Handler


def _show_today(db: Session, user_id: UUID, args: NoArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.today_view(db, user_id, today=ctx.today)


def _show_week(db: Session, user_id: UUID, args: NoArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.week_view(db, user_id, week_start=ctx.today)


def _show_session(db: Session, user_id: UUID, args: SessionArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.session_view(db, user_id, args.session_id)


def _complete(db: Session, user_id: UUID, args: CompleteSessionArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.complete_session(db, user_id, args.session_id, args.completed_detail)


def _progress(db: Session, user_id: UUID, args: NoArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.week_progress(db, user_id, week_start=ctx.today)


def _log_daily(db: Session, user_id: UUID, args: LogDailyArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.log_daily_habits(db, user_id, day=ctx.today, **args.model_dump())


def _adapt(db: Session, user_id: UUID, args: AdaptPlanArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.adapt_session(
        db,
        user_id,
        args.session_id,
        args.action,
        new_date=args.new_date,
        patch=args.new_detail,
        title=args.title,
        reason=args.reason,
    )


def _generate(db: Session, user_id: UUID, args: GeneratePlanArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.generate_plan(
        db,
        user_id,
        args.week_start,
        draft=args.draft,
        planning_context=args.planning_context,
        generator=ctx.generator,
        today=ctx.today,
    )


def _confirm(db: Session, user_id: UUID, args: ConfirmPlanArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.confirm_plan(db, user_id, args.plan_id)


def _log_extra(db: Session, user_id: UUID, args: LogExtraArgs, ctx: ToolContext) -> Dict[str, Any]:
    return plan_lifecycle.log_extra_session(
        db, user_id, args.domain, args.title, args.detail, args.session_date or ctx.today
    )


def _start_timer(db: Session, user_id: UUID, args: StartTimerArgs, ctx: ToolContext) -> Dict[str, Any]:
    return {"minutes": args.minutes, "label": args.label or f"{args.minutes} min session", "auto_start": True}


TOOLS: Dict[str, Tool] = {
    tool.name: tool
    for tool in (
        Tool("show_today_plan", "Show today's sessions and daily habits.", NoArgs, _show_today),
        Tool("show_week_plan", "Show this week's plan, any pending draft and progress.", NoArgs, _show_week),
        Tool("show_session", "Show the full detail of one session.", SessionArgs, _show_session),
        Tool("complete_session", "Mark a session as done.", CompleteSessionArgs, _complete),
        Tool("show_progress", "Show weekly progress across all five domains.", NoArgs, _progress),
        Tool("log_daily", "Log today's steps, nutrition adherence or sleep.", LogDailyArgs, _log_daily),
        Tool(
            "adapt_plan",
            "Skip, reschedule or modify an upcoming session when the user cannot make it or wants a change.",
            AdaptPlanArgs,
            _adapt,
        ),
        Tool("generate_plan", "Generate a new weekly plan or replan the rest of this week.", GeneratePlanArgs, _generate),
        Tool("confirm_plan", "Activate a draft plan after the user approves it.", ConfirmPlanArgs, _confirm),
        Tool("log_extra_session", "Record an activity the user did that was not in the plan.", LogExtraArgs, _log_extra),
        Tool("start_timer", "Start the built-in breathwork or meditation timer.", StartTimerArgs, _start_timer),
    )
}


def run_tool(
    db: Session,
    user_id: UUID,
    name: str,
    arguments: Any = None,
    context: Optional[ToolContext] = None,
) -> Dict[str, Any]:
    tool = TOOLS.get(name)
    if tool is None:
        return {"error": f"Unknown tool: {name}", "error_type": "invalid"}

    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except ValueError:
            return {"error": f"Arguments for {name} are not valid JSON", "error_type": "invalid"}
    if arguments is not None and not isinstance(arguments, Mapping):
        return {"error": f"Arguments for {name} must be an object", "error_type": "invalid"}

    try:
        args = tool.args_model.model_validate(arguments or {})
    except ValidationError as exc:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
        return {"error": f"Invalid arguments for {name}: {problems}", "error_type": "invalid"}
    return tool.handler(db, user_id, args, context or ToolContext())


def openai_tool_schemas() -> List[Dict[str, Any]]:
    """Function-calling schemas derived from the argument models."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.args_model.model_json_schema(),
            },
        }
        for tool in TOOLS.values()
    ]
