"""Plan generation collaborators.

A generator turns a profile snapshot into an untrusted :class:`GeneratedPlan`.
The lifecycle manager owns the timeout, validation and persistence; generators
only produce content.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Protocol

import openai
from pydantic import BaseModel, ConfigDict, Field, field_validator

from weekwise.core.config import settings
from weekwise.core.errors import UpstreamFailure
from weekwise.services.detail_fields import coerce_detail
from weekwise.services.policy_table import SCHEDULED_DOMAINS, get_policy, prompt_brief

logger = logging.getLogger(__name__)


class GeneratedSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    domain: str
    day_of_week: int = Field(alias="dayOfWeek", ge=0, le=6)
    title: str = Field(min_length=1)
    detail: Dict[str, Any] = Field(default_factory=dict)
    sort_order: int = Field(default=0, alias="sortOrder")

    @field_validator("detail", mode="before")
    @classmethod
    def _decode_detail(cls, value: Any) -> Dict[str, Any]:
        return coerce_detail(value)


class GeneratedPlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    intro_message: str = Field(default="", alias="introMessage")
    sessions: List[GeneratedSession] = Field(default_factory=list)
    tracking_briefs: Dict[str, Any] = Field(default_factory=dict, alias="trackingBriefs")


@dataclass
class GenerationRequest:
    profile: Dict[str, Any]
    week_start: date
    start_from_date: Optional[date] = None
    planning_context: Optional[str] = None


class PlanGenerator(Protocol):
    def generate(self, request: GenerationRequest) -> Any:
        """Return a :class:`GeneratedPlan` or a mapping that parses into one."""


class OpenAIPlanGenerator:
    """JSON-mode chat completions: one call per scheduled domain, then briefs and intro."""

    def __init__(self, api_key: str, model: Optional[str] = None, client: Any = None) -> None:
        self.model = model or settings.openai_plan_model
        self._client = client or openai.OpenAI(api_key=api_key, timeout=settings.generation_timeout_s)

    def generate(self, request: GenerationRequest) -> GeneratedPlan:
        sessions: List[Dict[str, Any]] = []
        for domain in SCHEDULED_DOMAINS:
            payload = self._complete_json(_domain_prompt(domain, request))
            for index, raw in enumerate(payload.get("sessions") or []):
                if not isinstance(raw, dict):
                    continue
                raw = dict(raw)
                raw["domain"] = domain
                raw.setdefault("sortOrder", index)
                sessions.append(raw)

        briefs = self._complete_json(_briefs_prompt(request))
        titles = [s.get("title", "") for s in sessions]
        intro = self._complete_json(_intro_prompt(request, titles))
        return GeneratedPlan.model_validate(
            {
                "introMessage": intro.get("introMessage") or intro.get("intro_message") or "",
                "sessions": sessions,
                "trackingBriefs": briefs,
            }
        )

    def _complete_json(self, user_prompt: str) -> Dict[str, Any]:
        try:
            completion = self._client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                temperature=0.4,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except openai.OpenAIError as exc:
            raise UpstreamFailure(f"Plan generation failed: {exc}") from exc
        content = completion.choices[0].message.content or "{}"
        try:
            payload = json.loads(content)
        except ValueError as exc:
            raise UpstreamFailure("Plan generation returned malformed JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamFailure("Plan generation returned a non-object payload")
        return payload


SYSTEM_PROMPT = (
    "You are a personal coach building a weekly plan. Follow the coaching rules exactly "
    "and answer with a single JSON object."
)


def _profile_block(profile: Dict[str, Any]) -> str:
    context = "; ".join(f"{c['category']}: {c['content']}" for c in profile.get("context") or []) or "none"
    return (
        f"Age: {profile.get('age') or 'unknown'}. Weight (kg): {profile.get('weight_kg') or 'unknown'}.\n"
        f"Baselines JSON: {json.dumps(profile.get('baselines') or {}, sort_keys=True)}\n"
        f"Context: {context}"
    )


def _domain_prompt(domain: str, request: GenerationRequest) -> str:
    window = (
        f"Only schedule sessions on or after {request.start_from_date.isoformat()}.\n"
        if request.start_from_date
        else ""
    )
    extra = f"Planning notes: {request.planning_context}\n" if request.planning_context else ""
    return (
        f"Week starting Monday {request.week_start.isoformat()}.\n"
        f"{_profile_block(request.profile)}\n"
        f"{extra}{window}"
        f"Rules:\n{prompt_brief([domain])}\n"
        f"Return {{\"sessions\": [...]}} with the week's {get_policy(domain).label.lower()} sessions. "
        "Each session has 'dayOfWeek' (0=Sunday..6=Saturday), 'title', 'detail' (object) and 'sortOrder'. "
        "Put the duration in detail.targetMinutes."
    )


def _briefs_prompt(request: GenerationRequest) -> str:
    return (
        f"{_profile_block(request.profile)}\n"
        f"Rules:\n{prompt_brief(['nutrition', 'sleep'])}\n"
        "Return {\"nutrition\": {\"calorieTarget\", \"proteinTargetG\", \"guidelines\"}, "
        "\"sleep\": {\"targetHours\", \"bedtimeWindow\", \"wakeWindow\", \"windDownRoutine\"}}."
    )


def _intro_prompt(request: GenerationRequest, titles: List[str]) -> str:
    return (
        f"Week starting {request.week_start.isoformat()}. Sessions: {', '.join(titles) or 'none'}.\n"
        "Return {\"introMessage\": \"...\"}: two or three sentences introducing the week."
    )


class FallbackPlanGenerator:
    """Deterministic template week that satisfies the policy table.

    Used when no OpenAI key is configured; volumes scale from onboarding baselines.
    """

    def generate(self, request: GenerationRequest) -> GeneratedPlan:
        baselines = request.profile.get("baselines") or {}
        sessions = _cardio_template(baselines.get("cardio") or {})
        sessions += _strength_template(baselines.get("strength") or {})
        sessions += _mindfulness_template(baselines.get("mindfulness") or {})
        return GeneratedPlan(
            intro_message=(
                "Here is your week: steady Zone 2 work, one hard interval day, "
                "strength on alternating days and a short daily mindfulness practice."
            ),
            sessions=[GeneratedSession.model_validate(s) for s in sessions],
            tracking_briefs=_tracking_briefs(request.profile),
        )


def _cardio_template(baseline: Dict[str, Any]) -> List[Dict[str, Any]]:
    zone2_minutes = 60 if baseline.get("weeklyMinutes") == "120_plus" else 45
    activities = baseline.get("activities") or []
    modality = activities[0] if activities else "walking"
    sessions = [
        {
            "domain": "cardio",
            "dayOfWeek": day,
            "title": f"Zone 2 {modality}",
            "detail": {
                "zone": 2,
                "targetMinutes": zone2_minutes,
                "activity": modality,
                "targetHr": "conversational pace",
            },
            "sortOrder": order,
        }
        for order, day in enumerate((1, 3, 6))
    ]
    sessions.append(
        {
            "domain": "cardio",
            "dayOfWeek": 5,
            "title": "Zone 5 intervals",
            "detail": {
                "zone": 5,
                "targetMinutes": 25,
                "intervals": "4x4 min hard, 3 min easy",
                "warmUp": "10 min easy",
                "coolDown": "5 min easy",
            },
            "sortOrder": 3,
        }
    )
    return sessions


def _strength_template(baseline: Dict[str, Any]) -> List[Dict[str, Any]]:
    try:
        days_per_week = int(baseline.get("daysPerWeek") or 0)
    except (TypeError, ValueError):
        days_per_week = 0
    count = min(max(days_per_week, 2), 3)
    days = (2, 4, 6)[:count] if count == 3 else (2, 5)
    sessions = []
    for order, (day, focus) in enumerate(zip(days, ("Lower body", "Upper body", "Full body"))):
        sessions.append(
            {
                "domain": "strength",
                "dayOfWeek": day,
                "title": f"{focus} strength",
                "detail": {
                    "targetMinutes": 45,
                    "warmUp": "5-10 min mobility and light sets",
                    "exercises": _EXERCISES[focus],
                    "coolDown": "5 min stretching",
                },
                "sortOrder": order,
            }
        )
    return sessions


_EXERCISES = {
    "Lower body": [
        {"name": "Goblet squat", "sets": 3, "reps": "8-10"},
        {"name": "Romanian deadlift", "sets": 3, "reps": "8-10"},
    ],
    "Upper body": [
        {"name": "Push-up or bench press", "sets": 3, "reps": "8-12"},
        {"name": "Dumbbell row", "sets": 3, "reps": "10-12"},
    ],
    "Full body": [
        {"name": "Deadlift", "sets": 3, "reps": "5-6"},
        {"name": "Overhead press", "sets": 3, "reps": "6-8"},
    ],
}


def _mindfulness_template(baseline: Dict[str, Any]) -> List[Dict[str, Any]]:
    minutes = 15 if baseline.get("experience") in {"occasional", "regular"} else 10
    plan = [
        (1, "meditation", minutes),
        (2, "breathwork", 5),
        (3, "meditation", minutes),
        (4, "breathwork", 5),
        (5, "meditation", minutes),
        (6, "journaling", 10),
        (0, "meditation", minutes),
    ]
    return [
        {
            "domain": "mindfulness",
            "dayOfWeek": day,
            "title": f"{kind.capitalize()} ({length} min)",
            "detail": {"type": kind, "targetMinutes": length},
            "sortOrder": order,
        }
        for order, (day, kind, length) in enumerate(plan)
    ]


def _tracking_briefs(profile: Dict[str, Any]) -> Dict[str, Any]:
    weight = profile.get("weight_kg")
    nutrition: Dict[str, Any] = {
        "guidelines": [
            "Protein at every meal",
            "Mostly whole, minimally processed foods",
            "Aim for 5 days on-plan this week",
        ]
    }
    if weight:
        nutrition["proteinTargetG"] = round(float(weight) * 2.2 * 0.8)
        nutrition["calorieTarget"] = round(float(weight) * 30)
    return {
        "nutrition": nutrition,
        "sleep": {
            "targetHours": 8,
            "bedtimeWindow": "22:30-23:00",
            "wakeWindow": "06:30-07:00",
            "windDownRoutine": "Dim lights and no screens 45 min before bed",
        },
    }


def get_plan_generator() -> PlanGenerator:
    if settings.openai_api_key:
        return OpenAIPlanGenerator(api_key=settings.openai_api_key)
    logger.info("OPENAI_API_KEY not set; using the template plan generator")
    return FallbackPlanGenerator()
