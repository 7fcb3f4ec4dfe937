"""
Enumeration definitions for the CoachFit attention engine.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in Pydantic models and API responses, and compare equal to the raw values
stored in the AttentionScore and AdminInsight tables.
"""

from enum import Enum


class EntityType(str, Enum):
    """
    Kind of entity an attention score or insight refers to.

    - user: A client (User row with the CLIENT role)
    - coach: A coach (User row with the COACH role)
    - cohort: A cohort of clients
    - system: Platform-wide findings not tied to one entity
    """
    USER = "user"
    COACH = "coach"
    COHORT = "cohort"
    SYSTEM = "system"


class Priority(str, Enum):
    """
    Priority tier derived purely from an attention score.

    - red: score >= 60
    - amber: 30 <= score < 60
    - green: score < 30
    """
    RED = "red"
    AMBER = "amber"
    GREEN = "green"


class InsightType(str, Enum):
    """Kind of admin insight."""
    TREND = "trend"
    ANOMALY = "anomaly"
    OPPORTUNITY = "opportunity"
    ALERT = "alert"


class InsightCategory(str, Enum):
    """Business area an insight belongs to."""
    ENGAGEMENT = "engagement"
    CAPACITY = "capacity"
    PERFORMANCE = "performance"
    HEALTH = "health"


class InsightSeverity(str, Enum):
    """Display severity of an insight."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class TrendDirection(str, Enum):
    """Direction of a trend from its first to its last data point."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class TrendMetric(str, Enum):
    """
    Metrics supported by trend generation.

    - user_growth: New users created per day
    - entry_completion: Daily entries logged per day
    """
    USER_GROWTH = "user_growth"
    ENTRY_COMPLETION = "entry_completion"


class TrendTimeframe(str, Enum):
    """Trailing window for trend generation."""
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"

    @property
    def days(self) -> int:
        return 30 if self is TrendTimeframe.THIRTY_DAYS else 7


class EffortLevel(str, Enum):
    """Impact / effort rating attached to an optimization opportunity."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
