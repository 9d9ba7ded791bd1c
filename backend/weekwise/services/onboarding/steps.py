"""Onboarding step definitions and cursor normalization."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class Option:
    value: str
    label: str


@dataclass(frozen=True)
class Question:
    id: str
    label: str
    kind: str  # "single_select" | "multi_select"
    options: Tuple[Option, ...]
    none_label: Optional[str] = None


@dataclass(frozen=True)
class NumberField:
    id: str
    label: str
    placeholder: str
    min_value: float
    max_value: float


@dataclass(frozen=True)
class WelcomeStep:
    title: str
    body: str
    subtitle: str
    type: str = "welcome"


@dataclass(frozen=True)
class MethodologyStep:
    domain: str
    type: str = "methodology"


@dataclass(frozen=True)
class QuestionsStep:
    title: str
    questions: Tuple[Question, ...]
    domain: Optional[str] = None
    type: str = "questions"


@dataclass(frozen=True)
class BasicsStep:
    title: str
    subtitle: str
    fields: Tuple[NumberField, ...]
    type: str = "basics"


@dataclass(frozen=True)
class BuildStep:
    type: str = "build"


Step = Union[WelcomeStep, MethodologyStep, QuestionsStep, BasicsStep, BuildStep]


def _options(*pairs: Tuple[str, str]) -> Tuple[Option, ...]:
    return tuple(Option(value, label) for value, label in pairs)


STEPS: Tuple[Step, ...] = (
    WelcomeStep(
        title="Welcome",
        body="We build your weekly plan across 5 domains: cardio, strength, nutrition, sleep and mindfulness.",
        subtitle="First the approach for each domain, then a few questions so your plan starts in the right place.",
    ),
    MethodologyStep("cardio"),
    QuestionsStep(
        domain="cardio",
        title="Your cardio baseline",
        questions=(
            Question(
                "cardio.activities",
                "What cardio do you currently do?",
                "multi_select",
                _options(
                    ("walking", "walking"),
                    ("running", "running"),
                    ("cycling", "cycling"),
                    ("swimming", "swimming"),
                    ("rowing", "rowing"),
                ),
                none_label="none right now",
            ),
            Question(
                "cardio.weeklyMinutes",
                "How many minutes of cardio per week?",
                "single_select",
                _options(("0", "0 min"), ("under_60", "Under 60 min"), ("60_120", "60-120 min"), ("120_plus", "120+ min")),
            ),
            Question(
                "cardio.canSustain45min",
                "Can you hold a conversation while exercising for 45+ minutes?",
                "single_select",
                _options(("true", "Yes"), ("false", "Not yet")),
            ),
        ),
    ),
    MethodologyStep("strength"),
    QuestionsStep(
        domain="strength",
        title="Your strength baseline",
        questions=(
            Question(
                "strength.trainingTypes",
                "What kind of strength training do you do?",
                "multi_select",
                _options(("bodyweight", "Bodyweight"), ("free_weights", "Free weights"), ("machines", "Machines")),
                none_label="None",
            ),
            Question(
                "strength.daysPerWeek",
                "How many days per week?",
                "single_select",
                _options(("0", "0"), ("1", "1"), ("2", "2"), ("3", "3+")),
            ),
            Question(
                "strength.liftFamiliarity",
                "Familiar with squat, deadlift, bench press, overhead press?",
                "single_select",
                _options(("none", "None"), ("some", "Some"), ("all", "Yes, all")),
            ),
            Question(
                "strength.setup",
                "Where do you train?",
                "multi_select",
                _options(("home", "Home"), ("gym", "Gym")),
                none_label="Neither yet",
            ),
        ),
    ),
    MethodologyStep("nutrition"),
    QuestionsStep(
        domain="nutrition",
        title="Your nutrition baseline",
        questions=(
            Question(
                "nutrition.pattern",
                "What's your current eating pattern?",
                "single_select",
                _options(
                    ("no_structure", "No particular structure"),
                    ("loosely_healthy", "Loosely healthy"),
                    ("track_macros", "I track macros / have a plan"),
                ),
            ),
            Question(
                "nutrition.restrictions",
                "Any dietary restrictions?",
                "multi_select",
                _options(
                    ("vegetarian", "vegetarian"),
                    ("vegan", "vegan"),
                    ("dairy-free", "dairy-free"),
                    ("gluten-free", "gluten-free"),
                ),
                none_label="none",
            ),
        ),
    ),
    MethodologyStep("sleep"),
    QuestionsStep(
        domain="sleep",
        title="Your sleep baseline",
        questions=(
            Question(
                "sleep.hours",
                "How many hours do you typically sleep?",
                "single_select",
                _options(("under_6", "Under 6 hours"), ("6_7", "6-7 hours"), ("7_8", "7-8 hours"), ("8_plus", "8+ hours")),
            ),
            Question(
                "sleep.bedtime",
                "Usual bedtime?",
                "single_select",
                _options(
                    ("before_10pm", "Before 10pm"),
                    ("10_11pm", "10-11pm"),
                    ("11pm_midnight", "11pm-midnight"),
                    ("after_midnight", "After midnight"),
                ),
            ),
            Question(
                "sleep.sleepIssues",
                "Trouble falling or staying asleep?",
                "single_select",
                _options(("no", "No"), ("sometimes", "Sometimes"), ("often", "Often")),
            ),
        ),
    ),
    MethodologyStep("mindfulness"),
    QuestionsStep(
        domain="mindfulness",
        title="Your mindfulness baseline",
        questions=(
            Question(
                "mindfulness.experience",
                "Have you tried meditation, breathwork, or journaling?",
                "single_select",
                _options(
                    ("never", "Never tried any"),
                    ("tried_few_times", "Tried a few times"),
                    ("occasional", "I practice occasionally"),
                    ("regular", "I have a regular practice"),
                ),
            ),
        ),
    ),
    QuestionsStep(
        title="Good to know",
        questions=(
            Question(
                "context.injuries",
                "Any current injuries or physical limitations?",
                "multi_select",
                _options(
                    ("shoulder", "Shoulder"),
                    ("knee", "Knee"),
                    ("lower_back", "Lower back"),
                    ("hip", "Hip"),
                    ("neck", "Neck"),
                    ("wrist_elbow", "Wrist / elbow"),
                    ("ankle_foot", "Ankle / foot"),
                ),
                none_label="None",
            ),
            Question(
                "context.homeEquipment",
                "What equipment do you have at home?",
                "multi_select",
                _options(
                    ("dumbbells", "Dumbbells"),
                    ("pull_up_bar", "Pull-up bar"),
                    ("resistance_bands", "Resistance bands"),
                    ("kettlebell", "Kettlebell"),
                    ("barbell_rack", "Barbell + rack"),
                    ("bench", "Bench"),
                ),
                none_label="None",
            ),
        ),
    ),
    BasicsStep(
        title="A couple more things",
        subtitle="Age sets your heart rate zones. Weight sets protein and calorie targets.",
        fields=(
            NumberField("age", "Age", "e.g. 35", 10, 120),
            NumberField("weightKg", "Weight (kg)", "e.g. 75", 20, 300),
        ),
    ),
    BuildStep(),
)

INITIAL_DATA: Dict[str, Any] = {
    "cardio": {"activities": [], "weeklyMinutes": "0", "canSustain45min": False},
    "strength": {"trainingTypes": [], "daysPerWeek": 0, "liftFamiliarity": "none", "setup": []},
    "nutrition": {"pattern": "no_structure", "restrictions": []},
    "sleep": {"hours": "7_8", "bedtime": "10_11pm", "sleepIssues": "no"},
    "mindfulness": {"experience": "never"},
    "context": {"injuries": [], "homeEquipment": []},
    "age": None,
    "weightKg": None,
}


def initial_data() -> Dict[str, Any]:
    return copy.deepcopy(INITIAL_DATA)


def item_count(step: Step) -> int:
    if isinstance(step, QuestionsStep):
        return len(step.questions)
    if isinstance(step, BasicsStep):
        return len(step.fields)
    return 0


def get_value(data: Dict[str, Any], key: str) -> Any:
    """Read a dotted question id (``cardio.activities``) or a top-level field id (``age``)."""
    section, _, name = key.partition(".")
    if not name:
        return data.get(section)
    return (data.get(section) or {}).get(name)


def set_value(data: Dict[str, Any], key: str, value: Any) -> Dict[str, Any]:
    """Return a copy of ``data`` with ``key`` set; the stored document is never mutated in place."""
    updated = copy.deepcopy(data)
    section, _, name = key.partition(".")
    if not name:
        updated[section] = value
    else:
        updated.setdefault(section, {})[name] = value
    return updated


@dataclass(frozen=True)
class Position:
    """A cursor that is always valid for the step list it was normalized against."""

    step_index: int
    question_index: int = 0
    steps: Sequence[Step] = field(default=STEPS, repr=False, compare=False)

    @classmethod
    def normalize(cls, step_index: Any, question_index: Any, steps: Sequence[Step] = STEPS) -> "Position":
        """Clamp a stored cursor: a sub-index past the step's item count moves to the next step."""
        step = _as_index(step_index)
        sub = _as_index(question_index)
        step = min(step, len(steps) - 1)
        count = item_count(steps[step])
        if count == 0:
            sub = 0
        elif sub >= count:
            step = min(step + 1, len(steps) - 1)
            sub = 0
        return cls(step, sub, steps)

    @property
    def step(self) -> Step:
        return self.steps[self.step_index]

    def advance(self) -> "Position":
        """Next sub-item, or the first sub-item of the next step after the last one."""
        count = item_count(self.step)
        if self.question_index + 1 < count:
            return Position(self.step_index, self.question_index + 1, self.steps)
        return Position(min(self.step_index + 1, len(self.steps) - 1), 0, self.steps)

    def as_dict(self) -> Dict[str, Any]:
        return {"step_index": self.step_index, "question_index": self.question_index, "step_type": self.step.type}


def _as_index(value: Any) -> int:
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0
