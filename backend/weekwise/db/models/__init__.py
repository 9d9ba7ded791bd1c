"""ORM models exposed for metadata discovery."""
from weekwise.db.models.agent_action_log import AgentActionLog
from weekwise.db.models.chat_message import ChatMessage
from weekwise.db.models.daily_habit import DailyHabitLog
from weekwise.db.models.onboarding_state import OnboardingState
from weekwise.db.models.planned_session import PlannedSession
from weekwise.db.models.user import User
from weekwise.db.models.user_context import UserContextItem
from weekwise.db.models.weekly_plan import WeeklyPlan

__all__ = [
    "AgentActionLog",
    "ChatMessage",
    "DailyHabitLog",
    "OnboardingState",
    "PlannedSession",
    "User",
    "UserContextItem",
    "WeeklyPlan",
]
