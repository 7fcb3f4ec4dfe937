"""
Store Gateway Service for the CoachFit attention engine.

The engine never talks to the database directly. Everything it reads or
writes goes through the StoreGateway protocol below, which is what tests
replace with an in-memory store. PostgresStore is the production
implementation over the shared asyncpg pool and the application's Prisma
tables.

Read operations return Pydantic snapshots (coachfit.models.schemas); rows are
never handed to the scoring functions as raw asyncpg Records.

Write operations follow the delete-then-recreate discipline: every replace_*
call deletes all rows for the given keys and bulk-inserts the new rows inside
a single transaction. Rows are never updated in place.

Timestamps: the engine works in timezone-aware UTC. Prisma columns are
`timestamp(3)` without time zone holding UTC, so values are converted to
naive UTC on the way in and tagged as UTC on the way out.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set

from asyncpg import Pool

from coachfit.core.database import get_db_pool
from coachfit.models import (
    AttentionScore,
    CachedScoreRow,
    CoachSnapshot,
    CohortMembers,
    CohortSnapshot,
    EntityIdentity,
    Insight,
    InsightKey,
    Membership,
    ScoreKey,
)
from coachfit.sql import (
    ACTIVE_CLIENT_IDS_QUERY,
    ACTIVE_INSIGHTS_QUERY,
    CACHED_SCORES_QUERY,
    CLIENT_ROLE,
    COACH_IDS_WITH_COHORTS_QUERY,
    COACH_ROLE,
    COACHES_WITH_COHORTS_QUERY,
    COHORTS_BY_ID_QUERY,
    COHORTS_WITH_MEMBERSHIPS_QUERY,
    DELETE_EXPIRED_INSIGHTS_QUERY,
    DELETE_EXPIRED_SCORES_QUERY,
    DELETE_INSIGHTS_BY_KEY_QUERY,
    DELETE_SCORES_BY_KEY_QUERY,
    ENTRIES_BY_DAY_QUERY,
    INSERT_INSIGHT_QUERY,
    INSERT_SCORE_QUERY,
    LATEST_ENTRIES_QUERY,
    MEMBERSHIPS_QUERY,
    RECENT_ENTRY_COUNTS_QUERY,
    USERS_BY_ID_QUERY,
    USERS_CREATED_BY_DAY_QUERY,
    USERS_WITH_ROLE_QUERY,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Gateway Protocol
# =============================================================================


class StoreGateway(Protocol):
    """
    Read/write operations the attention engine needs from the data store.

    Every method is a single bulk operation; none of them is called per
    entity during scoring.
    """

    # ----- Population reads (batch loader) -----

    async def list_clients(self) -> List[EntityIdentity]: ...

    async def list_client_ids_with_recent_entries(self, since: datetime) -> Set[str]: ...

    async def list_coaches(self) -> List[EntityIdentity]: ...

    async def list_coach_ids_with_cohorts(self) -> Set[str]: ...

    async def list_coaches_with_cohorts(self) -> List[CoachSnapshot]: ...

    async def list_cohorts_with_memberships(self) -> List[CohortSnapshot]: ...

    async def list_memberships(self) -> List[Membership]: ...

    async def count_recent_entries_by_client(self, since: datetime) -> Dict[str, int]: ...

    async def latest_entry_date_by_client(self, client_ids: Sequence[str]) -> Dict[str, datetime]: ...

    # ----- Name resolution (cache hits) -----

    async def lookup_users(self, ids: Sequence[str]) -> Dict[str, EntityIdentity]: ...

    async def lookup_cohorts(self, ids: Sequence[str]) -> Dict[str, EntityIdentity]: ...

    # ----- AttentionScore cache -----

    async def read_cached_scores(self, now: datetime) -> List[CachedScoreRow]: ...

    async def replace_scores(
        self,
        entity_keys: Sequence[ScoreKey],
        rows: Sequence[AttentionScore],
        expires_at: Optional[datetime],
    ) -> None: ...

    async def delete_expired_scores(self, now: datetime) -> int: ...

    # ----- AdminInsight -----

    async def read_active_insights(self, now: datetime) -> List[Insight]: ...

    async def replace_insights(
        self,
        keys: Sequence[InsightKey],
        insights: Sequence[Insight],
        expires_at: Optional[datetime],
    ) -> None: ...

    async def delete_expired_insights(self, now: datetime) -> int: ...

    # ----- Trend aggregates -----

    async def count_users_created_by_day(self, since: datetime) -> Dict[str, int]: ...

    async def count_entries_by_day(self, since: datetime) -> Dict[str, int]: ...


# =============================================================================
# Conversion Helpers
# =============================================================================


def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetime -> naive UTC for Prisma timestamp columns."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _decode_json(value: Any) -> Dict[str, Any]:
    """asyncpg hands jsonb back as text unless a codec is registered."""
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _parse_command_count(status: str) -> int:
    """'DELETE 12' -> 12."""
    try:
        return int(status.rsplit(' ', 1)[-1])
    except (AttributeError, ValueError):
        return 0


def _identity(row: Any) -> EntityIdentity:
    return EntityIdentity(id=row['id'], name=row['name'], email=row.get('email'))


# =============================================================================
# PostgreSQL Implementation
# =============================================================================


class PostgresStore:
    """
    StoreGateway over asyncpg.

    Args:
        pool: Connection pool to use. Defaults to the module-level pool from
            coachfit.core.database, resolved lazily on first use.
    """

    def __init__(self, pool: Optional[Pool] = None):
        self._pool = pool

    async def _get_pool(self) -> Pool:
        if self._pool is None:
            self._pool = await get_db_pool()
        return self._pool

    async def _fetch(self, query: str, *args: Any) -> List[Any]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def _execute(self, query: str, *args: Any) -> str:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            return await conn.execute(query, *args)

    # -------------------------------------------------------------------------
    # Population reads
    # -------------------------------------------------------------------------

    async def list_clients(self) -> List[EntityIdentity]:
        rows = await self._fetch(USERS_WITH_ROLE_QUERY, CLIENT_ROLE)
        return [_identity(row) for row in rows]

    async def list_client_ids_with_recent_entries(self, since: datetime) -> Set[str]:
        rows = await self._fetch(ACTIVE_CLIENT_IDS_QUERY, _to_db_time(since))
        return {row['user_id'] for row in rows}

    async def list_coaches(self) -> List[EntityIdentity]:
        rows = await self._fetch(USERS_WITH_ROLE_QUERY, COACH_ROLE)
        return [_identity(row) for row in rows]

    async def list_coach_ids_with_cohorts(self) -> Set[str]:
        rows = await self._fetch(COACH_IDS_WITH_COHORTS_QUERY, COACH_ROLE)
        return {row['id'] for row in rows}

    async def list_coaches_with_cohorts(self) -> List[CoachSnapshot]:
        """
        Coaches with nested cohorts and member ids.

        The query returns one row per (coach, cohort), ordered by coach, so
        rows are folded into one snapshot per coach here.
        """
        rows = await self._fetch(COACHES_WITH_COHORTS_QUERY, COACH_ROLE)

        coaches: Dict[str, CoachSnapshot] = {}
        for row in rows:
            coach = coaches.get(row['id'])
            if coach is None:
                coach = CoachSnapshot(id=row['id'], name=row['name'], email=row['email'] or '')
                coaches[row['id']] = coach
            if row['cohort_id'] is not None:
                coach.cohorts.append(
                    CohortMembers(id=row['cohort_id'], member_ids=row['member_ids'])
                )
        return list(coaches.values())

    async def list_cohorts_with_memberships(self) -> List[CohortSnapshot]:
        rows = await self._fetch(COHORTS_WITH_MEMBERSHIPS_QUERY)
        return [
            CohortSnapshot(
                id=row['id'],
                name=row['name'] or '',
                coach_id=row['coach_id'],
                member_ids=row['member_ids'],
            )
            for row in rows
        ]

    async def list_memberships(self) -> List[Membership]:
        rows = await self._fetch(MEMBERSHIPS_QUERY)
        return [Membership(user_id=row['user_id'], cohort_id=row['cohort_id']) for row in rows]

    async def count_recent_entries_by_client(self, since: datetime) -> Dict[str, int]:
        rows = await self._fetch(RECENT_ENTRY_COUNTS_QUERY, _to_db_time(since))
        return {row['user_id']: int(row['entry_count']) for row in rows}

    async def latest_entry_date_by_client(self, client_ids: Sequence[str]) -> Dict[str, datetime]:
        if not client_ids:
            return {}

        rows = await self._fetch(LATEST_ENTRIES_QUERY, list(client_ids))

        # Rows are newest first; keep the first one seen per client
        latest: Dict[str, datetime] = {}
        for row in rows:
            if row['user_id'] not in latest:
                latest[row['user_id']] = _from_db_time(row['date'])
        return latest

    # -------------------------------------------------------------------------
    # Name resolution
    # -------------------------------------------------------------------------

    async def lookup_users(self, ids: Sequence[str]) -> Dict[str, EntityIdentity]:
        if not ids:
            return {}
        rows = await self._fetch(USERS_BY_ID_QUERY, list(ids))
        return {row['id']: _identity(row) for row in rows}

    async def lookup_cohorts(self, ids: Sequence[str]) -> Dict[str, EntityIdentity]:
        if not ids:
            return {}
        rows = await self._fetch(COHORTS_BY_ID_QUERY, list(ids))
        return {row['id']: EntityIdentity(id=row['id'], name=row['name']) for row in rows}

    # -------------------------------------------------------------------------
    # AttentionScore cache
    # -------------------------------------------------------------------------

    async def read_cached_scores(self, now: datetime) -> List[CachedScoreRow]:
        rows = await self._fetch(CACHED_SCORES_QUERY, _to_db_time(now))
        return [
            CachedScoreRow(
                entity_type=row['entity_type'],
                entity_id=row['entity_id'],
                score=row['score'],
                priority=row['priority'],
                reasons=row['reasons'],
                metadata=_decode_json(row['metadata']),
                expires_at=_from_db_time(row['expires_at']),
            )
            for row in rows
        ]

    async def replace_scores(
        self,
        entity_keys: Sequence[ScoreKey],
        rows: Sequence[AttentionScore],
        expires_at: Optional[datetime],
    ) -> None:
        """
        Delete every row for entity_keys, then insert rows, in one transaction.

        entity_keys may be wider than rows: keys without a new row simply
        lose their previous score.
        """
        if not entity_keys and not rows:
            return

        keys = _unique(entity_keys)
        db_expires_at = _to_db_time(expires_at)

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                if keys:
                    await conn.execute(
                        DELETE_SCORES_BY_KEY_QUERY,
                        [key.entity_type for key in keys],
                        [key.entity_id for key in keys],
                    )
                if rows:
                    await conn.executemany(
                        INSERT_SCORE_QUERY,
                        [
                            (
                                row.entityType.value,
                                row.entityId,
                                row.priority.value,
                                row.score,
                                list(row.reasons),
                                json.dumps(row.metadata, default=str),
                                db_expires_at,
                            )
                            for row in rows
                        ],
                    )

        logger.debug(f"Replaced {len(keys)} attention score keys with {len(rows)} rows")

    async def delete_expired_scores(self, now: datetime) -> int:
        status = await self._execute(DELETE_EXPIRED_SCORES_QUERY, _to_db_time(now))
        return _parse_command_count(status)

    # -------------------------------------------------------------------------
    # AdminInsight
    # -------------------------------------------------------------------------

    async def read_active_insights(self, now: datetime) -> List[Insight]:
        rows = await self._fetch(ACTIVE_INSIGHTS_QUERY, _to_db_time(now))
        return [
            Insight(
                entityType=row['entity_type'],
                entityId=row['entity_id'],
                insightType=row['insight_type'],
                category=row['category'],
                title=row['title'],
                description=row['description'],
                severity=row['severity'],
                priority=row['priority'],
                actionable=row['actionable'],
                metadata=_decode_json(row['metadata']),
                expiresAt=_from_db_time(row['expires_at']),
            )
            for row in rows
        ]

    async def replace_insights(
        self,
        keys: Sequence[InsightKey],
        insights: Sequence[Insight],
        expires_at: Optional[datetime],
    ) -> None:
        if not keys and not insights:
            return

        unique_keys = _unique(keys)
        db_expires_at = _to_db_time(expires_at)

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                if unique_keys:
                    await conn.execute(
                        DELETE_INSIGHTS_BY_KEY_QUERY,
                        [key.entity_type for key in unique_keys],
                        [key.entity_id for key in unique_keys],
                        [key.insight_type for key in unique_keys],
                        [key.category for key in unique_keys],
                    )
                if insights:
                    await conn.executemany(
                        INSERT_INSIGHT_QUERY,
                        [
                            (
                                insight.entityType.value,
                                insight.entityId,
                                insight.insightType.value,
                                insight.category.value,
                                insight.title,
                                insight.description,
                                insight.severity.value,
                                insight.priority.value,
                                insight.actionable,
                                json.dumps(insight.metadata, default=str),
                                db_expires_at,
                            )
                            for insight in insights
                        ],
                    )

        logger.debug(f"Replaced {len(unique_keys)} insight keys with {len(insights)} rows")

    async def delete_expired_insights(self, now: datetime) -> int:
        status = await self._execute(DELETE_EXPIRED_INSIGHTS_QUERY, _to_db_time(now))
        return _parse_command_count(status)

    # -------------------------------------------------------------------------
    # Trend aggregates
    # -------------------------------------------------------------------------

    async def count_users_created_by_day(self, since: datetime) -> Dict[str, int]:
        rows = await self._fetch(USERS_CREATED_BY_DAY_QUERY, _to_db_time(since))
        return {row['day']: int(row['value']) for row in rows}

    async def count_entries_by_day(self, since: datetime) -> Dict[str, int]:
        rows = await self._fetch(ENTRIES_BY_DAY_QUERY, _to_db_time(since))
        return {row['day']: int(row['value']) for row in rows}


def _unique(keys: Iterable[Any]) -> List[Any]:
    """Order-preserving de-duplication of key tuples."""
    return list(dict.fromkeys(keys))
