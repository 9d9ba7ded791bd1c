"""Static coaching policy per domain.

The table is the single source of truth for what a valid week looks like:
plan generation embeds the prompt fragments, the validator reads the session
rules and validation knobs, and onboarding shows the domain content.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

DOMAINS: Tuple[str, ...] = ("cardio", "strength", "mindfulness", "nutrition", "sleep")
SCHEDULED_DOMAINS: Tuple[str, ...] = ("cardio", "strength", "mindfulness")
TRACKED_DOMAINS: Tuple[str, ...] = ("nutrition", "sleep")


@dataclass(frozen=True)
class WeeklyGoal:
    metric: str
    target: float
    unit: str


@dataclass(frozen=True)
class DailyHabit:
    name: str
    target: float
    unit: str


@dataclass(frozen=True)
class SessionRule:
    type: str
    frequency: Tuple[int, int]
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    rules: Tuple[str, ...] = ()


@dataclass(frozen=True)
class VolumeShare:
    """Minimum share of a domain's weekly minutes that must be spent in ``subtype``."""

    subtype: str
    target_pct: float
    tolerance_pct: float

    @property
    def floor_pct(self) -> float:
        return self.target_pct - self.tolerance_pct


@dataclass(frozen=True)
class DomainContent:
    title: str
    philosophy: str
    key_principles: Tuple[str, ...]
    weekly_target: str


@dataclass(frozen=True)
class DomainPolicy:
    domain: str
    label: str
    tracked_only: bool
    weekly_goals: Tuple[WeeklyGoal, ...]
    daily_habits: Tuple[DailyHabit, ...]
    session_rules: Tuple[SessionRule, ...]
    prompt_fragments: Tuple[str, ...]
    content: DomainContent
    # Subtype resolution: a logical detail attribute plus a label template, or a constant.
    subtype_attr: Optional[str] = None
    subtype_template: str = "{}"
    constant_subtype: Optional[str] = None
    allowed_subtypes_only: bool = False
    volume_share: Optional[VolumeShare] = None
    required_fields: Tuple[str, ...] = field(default_factory=tuple)

    def rule_for(self, subtype: Optional[str]) -> Optional[SessionRule]:
        for rule in self.session_rules:
            if rule.type == subtype:
                return rule
        return None

    @property
    def subtypes(self) -> Tuple[str, ...]:
        return tuple(rule.type for rule in self.session_rules)


CARDIO = DomainPolicy(
    domain="cardio",
    label="Cardio",
    tracked_only=False,
    weekly_goals=(
        WeeklyGoal("Total cardio volume", 150, "min"),
        WeeklyGoal("Zone 2 volume share", 80, "%"),
        WeeklyGoal("Zone 5 sessions", 1, "sessions"),
    ),
    daily_habits=(DailyHabit("Steps", 10_000, "steps"),),
    session_rules=(
        SessionRule(
            type="zone2",
            min_duration=45,
            max_duration=90,
            frequency=(3, 4),
            rules=(
                "Conversational pace, the user can hold a conversation",
                "Target HR 60-70% of max HR (approximate with 180 minus age)",
                "Preferred modalities: walk, run, bike, swim, row",
                "5 min easy warm-up and cool-down",
            ),
        ),
        SessionRule(
            type="zone5",
            min_duration=20,
            max_duration=30,
            frequency=(1, 1),
            rules=(
                "High-intensity intervals above 90% max HR",
                "10 min warm-up, 5 min cool-down",
                "4x4 min hard with 3-4 min recovery, or 6-8x30s sprints with full recovery",
                "Skip when the user reports poor recovery",
            ),
        ),
    ),
    prompt_fragments=(
        "CARDIO: follow a polarized Zone 2 / Zone 5 protocol. Only Zone 2 and Zone 5 sessions, never Zone 3 or 4.",
        "Zone 2 sessions are at least 45 minutes. About 80% of weekly cardio minutes are Zone 2.",
        "Prescribe 3-4 Zone 2 sessions and exactly 1 Zone 5 session per week, 150+ minutes in total.",
        "10,000 daily steps is a separate daily habit, not a training session.",
    ),
    content=DomainContent(
        title="Cardio",
        philosophy=(
            "Polarized training: most of your effort stays easy to build the aerobic engine, "
            "and one session per week pushes your ceiling."
        ),
        key_principles=(
            "Zone 2, conversational pace: 3-4 sessions per week, at least 45 minutes each",
            "Zone 5 intervals: 1 session per week",
            "80% of weekly cardio volume in Zone 2",
            "10,000 daily steps as a baseline",
        ),
        weekly_target="150+ minutes of cardio per week",
    ),
    subtype_attr="zone",
    subtype_template="zone{}",
    allowed_subtypes_only=True,
    volume_share=VolumeShare(subtype="zone2", target_pct=80, tolerance_pct=10),
)

STRENGTH = DomainPolicy(
    domain="strength",
    label="Strength",
    tracked_only=False,
    weekly_goals=(WeeklyGoal("Strength sessions", 3, "sessions"),),
    daily_habits=(),
    session_rules=(
        SessionRule(
            type="strength",
            min_duration=40,
            max_duration=75,
            frequency=(2, 4),
            rules=(
                "Compound movements first: squat, hinge, press, row, pull-up",
                "Progressive overload: +2.5kg or +1-2 reps from the previous session",
                "Rest 2-3 minutes between heavy compound sets",
                "Every session has a warm-up (5-10 min) and a cool-down (5 min)",
                "At least one lower body and one upper body session per week",
            ),
        ),
    ),
    prompt_fragments=(
        "STRENGTH: pain-free training has the highest priority. Never program through pain.",
        "Prescribe 3 strength sessions per week (2-4), 40-75 minutes each, compound movements first.",
        "Every strength session includes a warm-up and a cool-down.",
    ),
    content=DomainContent(
        title="Strength",
        philosophy=(
            "Compound movements that train real-world patterns, with progressive overload "
            "driving adaptation and pain-free training as the top priority."
        ),
        key_principles=(
            "Compound movements first: squat, hinge, press, pull, carry",
            "Small increases in weight or reps each session",
            "Every session includes warm-up and cool-down",
            "If something hurts, the movement is modified immediately",
        ),
        weekly_target="3 strength sessions per week (40-75 min each)",
    ),
    constant_subtype="strength",
    required_fields=("warm_up", "cool_down"),
)

MINDFULNESS = DomainPolicy(
    domain="mindfulness",
    label="Mindfulness",
    tracked_only=False,
    weekly_goals=(WeeklyGoal("Mindfulness minutes", 60, "min"),),
    daily_habits=(),
    session_rules=(
        SessionRule(
            type="meditation",
            min_duration=5,
            max_duration=30,
            frequency=(3, 7),
            rules=("Breath awareness, body scan or loving-kindness", "Beginners start with 5-10 minutes"),
        ),
        SessionRule(
            type="breathwork",
            min_duration=3,
            max_duration=15,
            frequency=(0, 7),
            rules=("Box breathing, physiological sigh or 4-7-8 breathing",),
        ),
        SessionRule(
            type="journaling",
            min_duration=5,
            max_duration=20,
            frequency=(0, 3),
            rules=("Gratitude, reflective writing or structured prompts",),
        ),
    ),
    prompt_fragments=(
        "MINDFULNESS: 60 minutes per week across meditation, breathwork and journaling.",
        "Start beginners with 5-10 minute sessions and give specific instructions for each one.",
    ),
    content=DomainContent(
        title="Mindfulness",
        philosophy="Short practices done consistently beat long sessions done rarely.",
        key_principles=(
            "Meditation, breathwork and journaling rotated across the week",
            "Start short and build up over time",
            "Breathwork sessions can use the built-in timer",
        ),
        weekly_target="60 minutes of mindfulness per week",
    ),
    subtype_attr="mindfulness_type",
)

NUTRITION = DomainPolicy(
    domain="nutrition",
    label="Nutrition",
    tracked_only=True,
    weekly_goals=(WeeklyGoal("Days on-plan", 5, "days"),),
    daily_habits=(DailyHabit("Nutrition on-plan", 1, "boolean"),),
    session_rules=(
        SessionRule(
            type="nutrition_day",
            frequency=(7, 7),
            rules=(
                "Calorie management drives body composition",
                "Protein minimum 0.7-1g per pound of bodyweight",
                "Whole, minimally processed foods",
            ),
        ),
    ),
    prompt_fragments=(
        "NUTRITION: give a daily calorie and protein target when weight is known.",
        "Track adherence as days on-plan (5 per week), not individual meals.",
    ),
    content=DomainContent(
        title="Nutrition",
        philosophy="Simple and sustainable: calories drive body composition and protein comes first.",
        key_principles=(
            "Protein minimum 0.7-1g per pound of bodyweight per day",
            "Whole, minimally processed foods",
            "Track days on-plan rather than every calorie",
        ),
        weekly_target="5 days on-plan per week",
    ),
)

SLEEP = DomainPolicy(
    domain="sleep",
    label="Sleep",
    tracked_only=True,
    weekly_goals=(
        WeeklyGoal("Sleep hours", 49, "hrs"),
        WeeklyGoal("Nights with 7+ hours", 7, "nights"),
    ),
    daily_habits=(DailyHabit("Sleep logged", 1, "boolean"),),
    session_rules=(
        SessionRule(
            type="sleep_target",
            frequency=(7, 7),
            rules=(
                "7-9 hours per night",
                "Consistent bed and wake times within 30 minutes",
                "30-60 minute wind-down routine",
            ),
        ),
    ),
    prompt_fragments=(
        "SLEEP: 7-9 hours per night with a consistent bedtime and wake window.",
        "Include a 30-60 minute wind-down routine. Weekly target is 49 hours.",
    ),
    content=DomainContent(
        title="Sleep",
        philosophy="Consistency matters more than perfection: a regular schedule and a proper wind-down.",
        key_principles=(
            "7-9 hours per night",
            "Bed and wake times within 30 minutes of each other",
            "Cool, dark, quiet room",
        ),
        weekly_target="49 hours of sleep per week",
    ),
)

POLICIES: Dict[str, DomainPolicy] = {policy.domain: policy for policy in (CARDIO, STRENGTH, MINDFULNESS, NUTRITION, SLEEP)}


def _check_table(policies: Dict[str, DomainPolicy]) -> None:
    if set(policies) != set(DOMAINS):
        raise RuntimeError(f"Policy table must cover exactly {DOMAINS}")
    for policy in policies.values():
        if not policy.tracked_only and not policy.session_rules:
            raise RuntimeError(f"Scheduled domain {policy.domain} has no session rules")
        for rule in policy.session_rules:
            low, high = rule.frequency
            if low < 0 or high < low:
                raise RuntimeError(f"Invalid frequency bounds for {policy.domain}/{rule.type}: {rule.frequency}")


_check_table(POLICIES)


def get_policy(domain: str) -> DomainPolicy:
    try:
        return POLICIES[domain]
    except KeyError:
        raise KeyError(f"Unknown domain: {domain}") from None


def prompt_brief(domains: Optional[Iterable[str]] = None) -> str:
    """Join the prompt fragments of the given domains (all by default)."""
    selected = tuple(domains) if domains is not None else DOMAINS
    lines = []
    for domain in selected:
        policy = get_policy(domain)
        lines.extend(policy.prompt_fragments)
        for rule in policy.session_rules:
            bounds = ""
            if rule.min_duration is not None:
                bounds = f" {rule.min_duration}-{rule.max_duration} min,"
            low, high = rule.frequency
            lines.append(f"- {rule.type}:{bounds} {low}-{high} per week. " + "; ".join(rule.rules))
    return "\n".join(lines)


def domain_content(domain: str) -> DomainContent:
    return get_policy(domain).content
