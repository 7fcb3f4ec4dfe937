"""
Attention Queue Orchestrator for the CoachFit attention engine.

Single entry point used by the admin API and the refresh job:

    cache lookup
      -> hit:  group cached rows by priority and return
      -> miss: batch load, score every client/coach/cohort in memory,
               drop zero scores, sort by score desc, group by priority,
               return, and hand the write-back to the background writer

The cache short-circuit is all-or-nothing: when any non-expired row exists the
whole queue is served from cache, even if some entities have no row or a
logically stale one. The batch loader is not called at all in that case.

Also provides single-entity scoring for the admin detail view and the explicit
chunked client refresh behind POST /admin/attention/refresh.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Sequence

from coachfit.core.config import Settings, get_settings
from coachfit.models import (
    AttentionQueue,
    AttentionQueueItem,
    AttentionScore,
    EntityType,
    RefreshAttentionResponse,
    ScoreKey,
)
from coachfit.services.attention_cache import AttentionScoreCache
from coachfit.services.attention_scoring import (
    score_client,
    score_coach,
    score_cohort,
    zero_score,
)
from coachfit.services.background import BackgroundWriter, get_background_writer
from coachfit.services.batch_loader import BatchData, load_batch
from coachfit.services.store import StoreGateway


logger = logging.getLogger(__name__)

Loader = Callable[..., Awaitable[BatchData]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_queue_items(batch: BatchData) -> List[AttentionQueueItem]:
    """
    Score every loaded entity and keep the positive scores, highest first.

    The sort is stable, so entities with equal scores keep load order
    (clients, then coaches, then cohorts).
    """
    items: List[AttentionQueueItem] = []

    for client in batch.client_snapshots():
        score = score_client(client, batch.now, batch.cutoff)
        if score.score > 0:
            items.append(_enrich(score, client.display_name, client.email or None))

    for coach in batch.coach_snapshots():
        score = score_coach(coach, batch.recent_entry_counts)
        if score.score > 0:
            items.append(_enrich(score, coach.display_name, coach.email or None))

    for cohort in batch.cohort_snapshots():
        score = score_cohort(cohort, batch.recent_entry_counts)
        if score.score > 0:
            items.append(_enrich(score, cohort.display_name, None))

    items.sort(key=lambda item: item.score, reverse=True)
    return items


def _enrich(score: AttentionScore, name: str, email: Optional[str]) -> AttentionQueueItem:
    return AttentionQueueItem(**score.model_dump(), entityName=name, entityEmail=email)


class AttentionQueueService:
    """
    Computes and serves the attention queue.

    Args:
        store: Store gateway for reads and cache persistence.
        settings: Engine settings. Defaults to get_settings().
        writer: Background writer for fire-and-forget persistence.
        loader: Batch loader coroutine, replaceable in tests.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: StoreGateway,
        settings: Optional[Settings] = None,
        writer: Optional[BackgroundWriter] = None,
        loader: Loader = load_batch,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.writer = writer or get_background_writer()
        self.cache = AttentionScoreCache(
            store, ttl=timedelta(minutes=self.settings.attention_cache_ttl_minutes)
        )
        self._loader = loader
        self._clock = clock

    async def _load(self, now: datetime) -> BatchData:
        return await self._loader(
            self.store,
            now=now,
            timeout=self.settings.batch_query_timeout_seconds,
        )

    async def compute_queue(self, force_refresh: bool = False) -> AttentionQueue:
        """
        Return the attention queue grouped by priority.

        Args:
            force_refresh: Skip the cache read and recompute from a fresh batch.

        Raises:
            BatchLoadError: When recomputing and any bulk read fails.
        """
        now = self._clock()

        if not force_refresh:
            cached = await self.cache.read(now)
            if cached:
                logger.info(f"Serving attention queue from cache ({len(cached)} rows)")
                return AttentionQueue.from_items(cached, from_cache=True)

        batch = await self._load(now)
        items = build_queue_items(batch)

        self.writer.submit(self.cache.write(items, now), name='attention-cache-write')

        queue = AttentionQueue.from_items(items)
        logger.info(
            f"Computed attention queue: {queue.summary.red} red, "
            f"{queue.summary.amber} amber, {queue.summary.green} green"
        )
        return queue

    async def score_entity(self, entity_type: EntityType, entity_id: str) -> AttentionScore:
        """
        Score a single entity from a fresh batch, bypassing the cache.

        Unknown ids yield a zero, green score.

        Raises:
            ValueError: If entity_type is not user, coach or cohort.
            BatchLoadError: If the batch load fails.
        """
        entity_type = EntityType(entity_type)
        if entity_type == EntityType.SYSTEM:
            raise ValueError("System entities are not scored")

        batch = await self._load(self._clock())

        if entity_type == EntityType.USER:
            for client in batch.client_snapshots():
                if client.id == entity_id:
                    return score_client(client, batch.now, batch.cutoff)
        elif entity_type == EntityType.COACH:
            for coach in batch.coach_snapshots():
                if coach.id == entity_id:
                    return score_coach(coach, batch.recent_entry_counts)
        else:
            for cohort in batch.cohort_snapshots():
                if cohort.id == entity_id:
                    return score_cohort(cohort, batch.recent_entry_counts)

        return zero_score(entity_type, entity_id)

    async def recalculate_client_attention(
        self,
        client_ids: Optional[Sequence[str]] = None,
        batch_size: Optional[int] = None,
    ) -> RefreshAttentionResponse:
        """
        Rescore clients and persist them chunk by chunk.

        Each chunk is persisted before the next one starts, with
        delete-then-recreate over every key in the chunk, so a client whose
        score dropped to zero loses its stale row.

        Args:
            client_ids: Clients to rescore. Defaults to every loaded client.
            batch_size: Clients per persisted chunk. Defaults to
                Settings.refresh_batch_size.

        Raises:
            ValueError: If batch_size < 1.
            BatchLoadError: If the batch load fails.
        """
        if batch_size is None:
            batch_size = self.settings.refresh_batch_size
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        now = self._clock()
        batch = await self._load(now)
        snapshots = {client.id: client for client in batch.client_snapshots()}

        ids = list(client_ids) if client_ids is not None else list(snapshots.keys())

        scored = 0
        for start in range(0, len(ids), batch_size):
            chunk = ids[start:start + batch_size]
            keys = [ScoreKey(EntityType.USER.value, client_id) for client_id in chunk]

            scores: List[AttentionScore] = []
            for client_id in chunk:
                snapshot = snapshots.get(client_id)
                if snapshot is None:
                    continue
                score = score_client(snapshot, batch.now, batch.cutoff)
                if score.score > 0:
                    scores.append(score)

            await self.cache.write(scores, now, keys=keys)
            scored += len(scores)
            logger.debug(f"Refreshed client chunk {start}-{start + len(chunk)}: {len(scores)} scored")

        logger.info(f"Recalculated attention for {len(ids)} clients ({scored} scored)")
        return RefreshAttentionResponse(updated=len(ids), scored=scored, batchSize=batch_size)
