"""
Pydantic models for the CoachFit attention engine.

Two families of models live here:

- Snapshot models (snake_case) are the read-only, per-entity-kind views the
  store gateway hands to the scoring functions. Every nested collection has an
  empty default and a `None` coming from the store is coerced to an empty list,
  so one malformed row cannot abort scoring for the rest of the population.
- Response models (camelCase) are the API contracts consumed by the admin
  console; field names are what the console reads.

All models use Pydantic v2 syntax.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, NamedTuple, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from coachfit.models.enums import (
    EffortLevel,
    EntityType,
    InsightCategory,
    InsightSeverity,
    InsightType,
    Priority,
    TrendDirection,
    TrendMetric,
    TrendTimeframe,
)


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


def _none_to_dict(value: Any) -> Any:
    return {} if value is None else value


# Collections coming from the store may be NULL; they validate as empty
IdList = Annotated[List[str], BeforeValidator(_none_to_list)]
Metadata = Annotated[Dict[str, Any], BeforeValidator(_none_to_dict)]


# =============================================================================
# Persistence Keys
# =============================================================================


class ScoreKey(NamedTuple):
    """Unique key of an AttentionScore row."""
    entity_type: str
    entity_id: str


class InsightKey(NamedTuple):
    """Dedup key of an AdminInsight row."""
    entity_type: str
    entity_id: str
    insight_type: str
    category: str


# =============================================================================
# Store Snapshots (read-only inputs)
# =============================================================================


class EntityIdentity(BaseModel):
    """Identity of a user or cohort as resolved from the store."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id


class Membership(BaseModel):
    """A client's membership in one cohort."""

    user_id: str
    cohort_id: str


class CohortMembers(BaseModel):
    """A cohort nested under its coach, reduced to member client ids."""

    id: str
    member_ids: IdList = Field(default_factory=list)


class ClientSnapshot(EntityIdentity):
    """
    Denormalized client view used by client scoring.

    Attributes:
        last_entry_at: Timestamp of the most recent entry, None if never logged.
        recent_entry_count: Entries logged within the trailing 14-day window.
        cohort_ids: Cohorts the client is a member of.
    """

    entity_type: Literal[EntityType.USER] = EntityType.USER
    email: str = ''
    last_entry_at: Optional[datetime] = None
    recent_entry_count: int = Field(default=0, ge=0)
    cohort_ids: IdList = Field(default_factory=list)


class CoachSnapshot(EntityIdentity):
    """Coach with every cohort it owns and those cohorts' members."""

    entity_type: Literal[EntityType.COACH] = EntityType.COACH
    email: str = ''
    cohorts: Annotated[List[CohortMembers], BeforeValidator(_none_to_list)] = Field(default_factory=list)

    @property
    def total_clients(self) -> int:
        return sum(len(cohort.member_ids) for cohort in self.cohorts)

    @property
    def member_ids(self) -> List[str]:
        return [member for cohort in self.cohorts for member in cohort.member_ids]


class CohortSnapshot(BaseModel):
    """Cohort with its owning coach (nullable) and member client ids."""

    entity_type: Literal[EntityType.COHORT] = EntityType.COHORT
    id: str
    name: str = ''
    coach_id: Optional[str] = None
    member_ids: IdList = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or self.id


class CachedScoreRow(BaseModel):
    """One persisted AttentionScore row as read back from the store."""

    entity_type: EntityType
    entity_id: str
    score: int = Field(ge=0, le=100)
    priority: Priority
    reasons: IdList = Field(default_factory=list)
    metadata: Metadata = Field(default_factory=dict)
    expires_at: Optional[datetime] = None

    @property
    def key(self) -> ScoreKey:
        return ScoreKey(self.entity_type.value, self.entity_id)


# =============================================================================
# Attention Queue Models (API contracts)
# =============================================================================


class AttentionScore(BaseModel):
    """
    Attention score for one entity.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "entityType": "user",
                "entityId": "clx01client",
                "priority": "red",
                "score": 90,
                "reasons": [
                    "No entries for 999 days",
                    "No entries in last 14 days",
                    "Not assigned to any cohort",
                ],
                "suggestedActions": [
                    "Contact client to check engagement",
                    "Send engagement reminder",
                    "Assign client to a cohort",
                ],
                "metadata": {"daysSinceLastEntry": 999, "entriesLast14Days": 0, "cohortCount": 0},
            }
        }
    )

    entityType: EntityType = Field(..., description="Kind of entity being scored")
    entityId: str = Field(..., description="Identifier of the scored entity")
    priority: Priority = Field(..., description="Tier derived from the score")
    score: int = Field(..., ge=0, le=100, description="Attention score 0-100")
    reasons: List[str] = Field(default_factory=list, description="Why the entity was flagged")
    suggestedActions: List[str] = Field(default_factory=list, description="Recommended admin actions")
    metadata: Metadata = Field(default_factory=dict, description="Free-form values for the UI")

    @property
    def key(self) -> ScoreKey:
        return ScoreKey(self.entityType.value, self.entityId)


class AttentionQueueItem(AttentionScore):
    """
    Attention score enriched with the entity's display name and email.
    """

    entityName: str = Field(..., description="Display name (name, else email, else id)")
    entityEmail: Optional[str] = Field(None, description="Email for users and coaches")


class QueueSummary(BaseModel):
    """Per-priority counts returned alongside the queue."""

    red: int = 0
    amber: int = 0
    green: int = 0
    total: int = 0


class AttentionQueue(BaseModel):
    """Attention queue grouped by priority, each group ordered by score desc."""

    red: List[AttentionQueueItem] = Field(default_factory=list)
    amber: List[AttentionQueueItem] = Field(default_factory=list)
    green: List[AttentionQueueItem] = Field(default_factory=list)
    summary: QueueSummary = Field(default_factory=QueueSummary)
    fromCache: bool = Field(False, description="True when served from persisted scores")

    @classmethod
    def from_items(cls, items: List[AttentionQueueItem], from_cache: bool = False) -> "AttentionQueue":
        red = [item for item in items if item.priority == Priority.RED]
        amber = [item for item in items if item.priority == Priority.AMBER]
        green = [item for item in items if item.priority == Priority.GREEN]
        return cls(
            red=red,
            amber=amber,
            green=green,
            summary=QueueSummary(
                red=len(red),
                amber=len(amber),
                green=len(green),
                total=len(red) + len(amber) + len(green),
            ),
            fromCache=from_cache,
        )


class RefreshAttentionRequest(BaseModel):
    """Body of POST /admin/attention/refresh."""

    batchSize: Optional[int] = Field(None, ge=1, description="Clients scored and persisted per chunk")


class RefreshAttentionResponse(BaseModel):
    """Result of an explicit client attention refresh."""

    updated: int = Field(..., description="Clients considered by the refresh")
    scored: int = Field(..., description="Clients persisted with a positive score")
    batchSize: int = Field(..., description="Chunk size used")


# =============================================================================
# Insight Models (API contracts)
# =============================================================================


class Insight(BaseModel):
    """
    Discrete admin finding.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "entityType": "coach",
                "entityId": "clx01coach",
                "insightType": "anomaly",
                "category": "capacity",
                "title": "Overloaded Coach",
                "description": "Sam Lee has 64 clients, exceeding recommended capacity",
                "severity": "warning",
                "priority": "red",
                "actionable": True,
                "metadata": {"clientCount": 64, "recommendedMax": 50},
            }
        }
    )

    entityType: EntityType
    entityId: str
    insightType: InsightType
    category: InsightCategory
    title: str
    description: str
    severity: InsightSeverity
    priority: Priority
    actionable: bool = True
    metadata: Metadata = Field(default_factory=dict)
    expiresAt: Optional[datetime] = Field(None, description="Set on insights read back from the store")

    @property
    def key(self) -> InsightKey:
        return InsightKey(
            self.entityType.value,
            self.entityId,
            self.insightType.value,
            self.category.value,
        )


class Opportunity(BaseModel):
    """
    Platform-level optimization opportunity.
    """

    type: str
    title: str
    description: str
    impact: EffortLevel
    effort: EffortLevel
    metadata: Metadata = Field(default_factory=dict)


class TrendDataPoint(BaseModel):
    """Daily count keyed by ISO date."""

    date: str
    value: int


class Trend(BaseModel):
    """
    Trend of a daily count over a trailing window.
    """

    metric: TrendMetric
    timeframe: TrendTimeframe
    direction: TrendDirection
    change: int
    percentage: float
    dataPoints: List[TrendDataPoint] = Field(default_factory=list)


class InsightsOverview(BaseModel):
    """Bundle shown on the admin overview page."""

    highPriority: List[Insight] = Field(default_factory=list)
    opportunities: List[Opportunity] = Field(default_factory=list)
    trends: List[Trend] = Field(default_factory=list)
    generatedAt: datetime
