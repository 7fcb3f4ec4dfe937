"""
Admin Insight Engine for the CoachFit attention engine.

Produces discrete findings rather than a blended score:

1. ANOMALIES - from one batch load, resolved in memory
   - Inactive clients: all clients minus the active-id set
   - Coaches without cohorts: all coaches minus coaches owning a cohort
   - Empty cohorts: cohorts with no members
   - Overloaded coaches: more than 50 clients, always red
2. OPPORTUNITIES - underutilized coaches and empty cohorts, platform level
3. TRENDS - daily new users or daily entries over 7 or 30 days
4. OVERVIEW - red anomalies + opportunities + 30-day trends, memoized
   in-process for a few minutes

Insights are persisted to "AdminInsight" with delete-then-recreate keyed by
(entityType, entityId, insightType, category) and a 24-hour expiry.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from coachfit.core.config import Settings, get_settings
from coachfit.models import (
    EffortLevel,
    EntityType,
    Insight,
    InsightCategory,
    InsightSeverity,
    InsightsOverview,
    InsightType,
    Opportunity,
    Priority,
    Trend,
    TrendDataPoint,
    TrendDirection,
    TrendMetric,
    TrendTimeframe,
)
from coachfit.services.attention_queue import Loader
from coachfit.services.attention_scoring import (
    MAX_RECOMMENDED_CLIENTS,
    MIN_RECOMMENDED_CLIENTS,
    WINDOW_DAYS,
)
from coachfit.services.batch_loader import BatchData, load_batch
from coachfit.services.store import StoreGateway


logger = logging.getLogger(__name__)


# =============================================================================
# Overview Memo
# =============================================================================

_OVERVIEW_KEY = 'insights-overview'
_memo: Dict[str, Tuple[float, Any]] = {}


def _memo_get(key: str, ttl_s: int) -> Any:
    item = _memo.get(key)
    if not item:
        return None
    ts, value = item
    if time.monotonic() - ts > ttl_s:
        _memo.pop(key, None)
        return None
    return value


def _memo_set(key: str, value: Any) -> None:
    _memo[key] = (time.monotonic(), value)


def clear_overview_cache() -> None:
    """Drop the memoized overview so the next request regenerates it."""
    _memo.clear()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Detection (pure, over a loaded batch)
# =============================================================================


def find_anomalies_in_batch(batch: BatchData) -> List[Insight]:
    """Anomaly insights for one batch, in detection order."""
    insights: List[Insight] = []

    for client in batch.clients:
        if client.id in batch.active_client_ids:
            continue
        insights.append(Insight(
            entityType=EntityType.USER,
            entityId=client.id,
            insightType=InsightType.ANOMALY,
            category=InsightCategory.ENGAGEMENT,
            title="Inactive Client",
            description=(
                f"{client.name or client.email or client.id} has not logged any entries "
                f"in the last {WINDOW_DAYS} days"
            ),
            severity=InsightSeverity.WARNING,
            priority=Priority.AMBER,
            metadata={
                'lastActivityDays': WINDOW_DAYS,
                'clientName': client.name,
                'clientEmail': client.email,
            },
        ))

    for coach in batch.coaches:
        if coach.id in batch.coach_ids_with_cohorts:
            continue
        insights.append(Insight(
            entityType=EntityType.COACH,
            entityId=coach.id,
            insightType=InsightType.ANOMALY,
            category=InsightCategory.CAPACITY,
            title="Coach Without Cohorts",
            description=f"{coach.name or coach.email or coach.id} is not assigned to any cohorts",
            severity=InsightSeverity.INFO,
            priority=Priority.AMBER,
            metadata={'coachName': coach.name, 'coachEmail': coach.email},
        ))

    for cohort in batch.cohorts:
        if cohort.member_ids:
            continue
        insights.append(Insight(
            entityType=EntityType.COHORT,
            entityId=cohort.id,
            insightType=InsightType.ANOMALY,
            category=InsightCategory.ENGAGEMENT,
            title="Empty Cohort",
            description=f'Cohort "{cohort.display_name}" has no active members',
            severity=InsightSeverity.WARNING,
            priority=Priority.AMBER,
            metadata={'cohortName': cohort.name, 'memberCount': 0},
        ))

    for coach in batch.coaches_with_cohorts:
        total_clients = coach.total_clients
        if total_clients <= MAX_RECOMMENDED_CLIENTS:
            continue
        # Red regardless of anything else about the coach
        insights.append(Insight(
            entityType=EntityType.COACH,
            entityId=coach.id,
            insightType=InsightType.ANOMALY,
            category=InsightCategory.CAPACITY,
            title="Overloaded Coach",
            description=(
                f"{coach.display_name} has {total_clients} clients, "
                f"exceeding recommended capacity"
            ),
            severity=InsightSeverity.WARNING,
            priority=Priority.RED,
            metadata={
                'coachName': coach.name,
                'coachEmail': coach.email,
                'clientCount': total_clients,
                'recommendedMax': MAX_RECOMMENDED_CLIENTS,
            },
        ))

    return insights


def find_opportunities_in_batch(batch: BatchData) -> List[Opportunity]:
    """Platform-level opportunities for one batch."""
    opportunities: List[Opportunity] = []

    client_counts = [coach.total_clients for coach in batch.coaches_with_cohorts]
    average = sum(client_counts) / len(client_counts) if client_counts else 0.0
    underutilized = [count for count in client_counts if 0 < count < MIN_RECOMMENDED_CLIENTS]

    if underutilized:
        opportunities.append(Opportunity(
            type='coach_utilization',
            title="Optimize Coach Capacity",
            description=(
                f"{len(underutilized)} coaches are underutilized (less than "
                f"{MIN_RECOMMENDED_CLIENTS} clients). Consider redistributing clients "
                f"for better balance."
            ),
            impact=EffortLevel.MEDIUM,
            effort=EffortLevel.MEDIUM,
            metadata={
                'underutilizedCount': len(underutilized),
                'averageClientsPerCoach': average,
            },
        ))

    empty_cohorts = [cohort for cohort in batch.cohorts if not cohort.member_ids]
    if empty_cohorts:
        opportunities.append(Opportunity(
            type='cohort_engagement',
            title="Activate Empty Cohorts",
            description=(
                f"{len(empty_cohorts)} cohorts have no members. Consider inviting clients "
                f"or archiving unused cohorts."
            ),
            impact=EffortLevel.LOW,
            effort=EffortLevel.LOW,
            metadata={'emptyCohortCount': len(empty_cohorts)},
        ))

    return opportunities


def build_trend(
    metric: TrendMetric,
    timeframe: TrendTimeframe,
    daily_counts: Dict[str, int],
) -> Optional[Trend]:
    """
    Trend from daily counts keyed by ISO date.

    Needs at least two data points; direction and change compare the first
    and last points only.
    """
    points = [
        TrendDataPoint(date=day, value=value)
        for day, value in sorted(daily_counts.items())
    ]
    if len(points) < 2:
        return None

    first, last = points[0].value, points[-1].value
    change = last - first
    percentage = (change / first) * 100 if first > 0 else 0.0

    if change > 0:
        direction = TrendDirection.UP
    elif change < 0:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.STABLE

    return Trend(
        metric=metric,
        timeframe=timeframe,
        direction=direction,
        change=change,
        percentage=percentage,
        dataPoints=points,
    )


# =============================================================================
# Engine
# =============================================================================


class AdminInsightEngine:
    """
    Detects, stores and serves admin insights.

    Args:
        store: Store gateway.
        settings: Engine settings. Defaults to get_settings().
        loader: Batch loader coroutine, replaceable in tests.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: StoreGateway,
        settings: Optional[Settings] = None,
        loader: Loader = load_batch,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self._loader = loader
        self._clock = clock

    async def _load(self) -> BatchData:
        return await self._loader(
            self.store,
            now=self._clock(),
            timeout=self.settings.batch_query_timeout_seconds,
        )

    async def detect_anomalies(self) -> List[Insight]:
        """
        Run one batch load and return every anomaly insight.

        Raises:
            BatchLoadError: If any bulk read fails.
        """
        batch = await self._load()
        insights = find_anomalies_in_batch(batch)
        logger.info(f"Detected {len(insights)} anomaly insights")
        return insights

    async def store_insights(self, insights: List[Insight]) -> None:
        """Delete-then-recreate insights by dedup key with the insight TTL."""
        now = self._clock()
        if insights:
            expires_at = now + timedelta(hours=self.settings.insight_ttl_hours)
            keys = [insight.key for insight in insights]
            await self.store.replace_insights(keys, insights, expires_at)
        purged = await self.store.delete_expired_insights(now)
        logger.info(f"Stored {len(insights)} insights, purged {purged} expired")

    async def refresh_insights(self) -> List[Insight]:
        """Detect and persist in one pass."""
        insights = await self.detect_anomalies()
        await self.store_insights(insights)
        return insights

    async def list_active_insights(self) -> List[Insight]:
        return await self.store.read_active_insights(self._clock())

    async def find_opportunities(self) -> List[Opportunity]:
        batch = await self._load()
        return find_opportunities_in_batch(batch)

    async def generate_trends(self, metric: str, timeframe: str = '7d') -> List[Trend]:
        """
        Trend for one metric over a trailing window.

        Returns an empty list when fewer than two days have data.

        Raises:
            ValueError: If metric or timeframe is not supported.
        """
        metric = TrendMetric(metric)
        timeframe = TrendTimeframe(timeframe)
        since = self._clock() - timedelta(days=timeframe.days)

        if metric == TrendMetric.USER_GROWTH:
            counts = await self.store.count_users_created_by_day(since)
        else:
            counts = await self.store.count_entries_by_day(since)

        trend = build_trend(metric, timeframe, counts)
        return [trend] if trend else []

    async def build_overview(self) -> InsightsOverview:
        """
        Red anomalies, opportunities and 30-day trends for the overview page.

        Served from an in-process memo for insights_overview_ttl_seconds.
        A generation failure is logged and yields empty sections, and is not
        memoized.
        """
        cached = _memo_get(_OVERVIEW_KEY, self.settings.insights_overview_ttl_seconds)
        if cached is not None:
            return cached

        try:
            batch, user_trends, entry_trends = await asyncio.gather(
                self._load(),
                self.generate_trends(TrendMetric.USER_GROWTH.value, TrendTimeframe.THIRTY_DAYS.value),
                self.generate_trends(TrendMetric.ENTRY_COMPLETION.value, TrendTimeframe.THIRTY_DAYS.value),
            )
        except Exception as e:
            logger.error(f"Error generating insights overview: {e}", exc_info=True)
            return InsightsOverview(generatedAt=self._clock())

        overview = InsightsOverview(
            highPriority=[
                insight for insight in find_anomalies_in_batch(batch)
                if insight.priority == Priority.RED
            ],
            opportunities=find_opportunities_in_batch(batch),
            trends=user_trends + entry_trends,
            generatedAt=self._clock(),
        )
        _memo_set(_OVERVIEW_KEY, overview)
        return overview
