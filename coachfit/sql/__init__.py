"""
SQL Query Module for the CoachFit attention engine.

Provides parameterized asyncpg queries for:
- Batch loading and the attention score cache (attention_queries)
- Admin insight persistence and daily trend aggregates (insight_queries)

Only coachfit.services.store executes these; everything above the store works
with Pydantic snapshots.
"""

from coachfit.sql.attention_queries import (
    CLIENT_ROLE,
    COACH_ROLE,
    USERS_WITH_ROLE_QUERY,
    USERS_BY_ID_QUERY,
    COHORTS_BY_ID_QUERY,
    COACH_IDS_WITH_COHORTS_QUERY,
    COACHES_WITH_COHORTS_QUERY,
    COHORTS_WITH_MEMBERSHIPS_QUERY,
    MEMBERSHIPS_QUERY,
    ACTIVE_CLIENT_IDS_QUERY,
    RECENT_ENTRY_COUNTS_QUERY,
    LATEST_ENTRIES_QUERY,
    CACHED_SCORES_QUERY,
    DELETE_SCORES_BY_KEY_QUERY,
    INSERT_SCORE_QUERY,
    DELETE_EXPIRED_SCORES_QUERY,
)
from coachfit.sql.insight_queries import (
    ACTIVE_INSIGHTS_QUERY,
    DELETE_INSIGHTS_BY_KEY_QUERY,
    INSERT_INSIGHT_QUERY,
    DELETE_EXPIRED_INSIGHTS_QUERY,
    USERS_CREATED_BY_DAY_QUERY,
    ENTRIES_BY_DAY_QUERY,
)


__all__ = [
    # ----- Attention Queries -----
    'CLIENT_ROLE',
    'COACH_ROLE',
    'USERS_WITH_ROLE_QUERY',
    'USERS_BY_ID_QUERY',
    'COHORTS_BY_ID_QUERY',
    'COACH_IDS_WITH_COHORTS_QUERY',
    'COACHES_WITH_COHORTS_QUERY',
    'COHORTS_WITH_MEMBERSHIPS_QUERY',
    'MEMBERSHIPS_QUERY',
    'ACTIVE_CLIENT_IDS_QUERY',
    'RECENT_ENTRY_COUNTS_QUERY',
    'LATEST_ENTRIES_QUERY',
    'CACHED_SCORES_QUERY',
    'DELETE_SCORES_BY_KEY_QUERY',
    'INSERT_SCORE_QUERY',
    'DELETE_EXPIRED_SCORES_QUERY',
    # ----- Insight Queries -----
    'ACTIVE_INSIGHTS_QUERY',
    'DELETE_INSIGHTS_BY_KEY_QUERY',
    'INSERT_INSIGHT_QUERY',
    'DELETE_EXPIRED_INSIGHTS_QUERY',
    'USERS_CREATED_BY_DAY_QUERY',
    'ENTRIES_BY_DAY_QUERY',
]
