"""
Services Module for the CoachFit attention engine.

Services, leaf first:
- store: StoreGateway protocol and its asyncpg implementation
- batch_loader: Fixed number of concurrent bulk reads per scoring pass
- attention_scoring: Pure client / coach / cohort scoring functions
- background: Fire-and-forget writer for cache persistence
- attention_cache: TTL cache of scores in the AttentionScore table
- attention_queue: Queue orchestrator, single-entity scoring, chunked refresh
- insights: Anomalies, opportunities, trends and the overview bundle

All services take the store as a constructor or call argument, so tests run
them against an in-memory store.
"""

# =============================================================================
# Store Gateway Exports
# =============================================================================

from coachfit.services.store import (
    StoreGateway,
    PostgresStore,
)

# =============================================================================
# Batch Loader Exports
# =============================================================================

from coachfit.services.batch_loader import (
    BatchData,
    BatchLoadError,
    load_batch,
    RECENT_WINDOW_DAYS,
)

# =============================================================================
# Scoring Exports
# =============================================================================

from coachfit.services.attention_scoring import (
    score_client,
    score_coach,
    score_cohort,
    priority_for_score,
    engagement_rate,
    zero_score,
)

# =============================================================================
# Cache and Background Writer Exports
# =============================================================================

from coachfit.services.background import (
    BackgroundWriter,
    get_background_writer,
)
from coachfit.services.attention_cache import AttentionScoreCache

# =============================================================================
# Orchestrator Exports
# =============================================================================

from coachfit.services.attention_queue import (
    AttentionQueueService,
    build_queue_items,
)

# =============================================================================
# Insight Engine Exports
# =============================================================================

from coachfit.services.insights import (
    AdminInsightEngine,
    find_anomalies_in_batch,
    find_opportunities_in_batch,
    build_trend,
    clear_overview_cache,
)


__all__ = [
    # ----- Store Gateway -----
    'StoreGateway',
    'PostgresStore',
    # ----- Batch Loader -----
    'BatchData',
    'BatchLoadError',
    'load_batch',
    'RECENT_WINDOW_DAYS',
    # ----- Scoring -----
    'score_client',
    'score_coach',
    'score_cohort',
    'priority_for_score',
    'engagement_rate',
    'zero_score',
    # ----- Cache / Background -----
    'BackgroundWriter',
    'get_background_writer',
    'AttentionScoreCache',
    # ----- Orchestrator -----
    'AttentionQueueService',
    'build_queue_items',
    # ----- Insight Engine -----
    'AdminInsightEngine',
    'find_anomalies_in_batch',
    'find_opportunities_in_batch',
    'build_trend',
    'clear_overview_cache',
]
