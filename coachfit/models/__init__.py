"""
Models package for the CoachFit attention engine.

Re-exports every enum and Pydantic model so callers can write:

    from coachfit.models import AttentionQueue, Priority
"""

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
from coachfit.models.schemas import (
    # Persistence keys
    ScoreKey,
    InsightKey,
    # Store snapshots
    EntityIdentity,
    Membership,
    CohortMembers,
    ClientSnapshot,
    CoachSnapshot,
    CohortSnapshot,
    CachedScoreRow,
    # Attention queue
    AttentionScore,
    AttentionQueueItem,
    QueueSummary,
    AttentionQueue,
    RefreshAttentionRequest,
    RefreshAttentionResponse,
    # Insights
    Insight,
    Opportunity,
    TrendDataPoint,
    Trend,
    InsightsOverview,
)


__all__ = [
    # ----- Enums -----
    'EffortLevel',
    'EntityType',
    'InsightCategory',
    'InsightSeverity',
    'InsightType',
    'Priority',
    'TrendDirection',
    'TrendMetric',
    'TrendTimeframe',
    # ----- Persistence Keys -----
    'ScoreKey',
    'InsightKey',
    # ----- Store Snapshots -----
    'EntityIdentity',
    'Membership',
    'CohortMembers',
    'ClientSnapshot',
    'CoachSnapshot',
    'CohortSnapshot',
    'CachedScoreRow',
    # ----- Attention Queue -----
    'AttentionScore',
    'AttentionQueueItem',
    'QueueSummary',
    'AttentionQueue',
    'RefreshAttentionRequest',
    'RefreshAttentionResponse',
    # ----- Insights -----
    'Insight',
    'Opportunity',
    'TrendDataPoint',
    'Trend',
    'InsightsOverview',
]
