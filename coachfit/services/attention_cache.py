"""
Attention Score Cache for the CoachFit attention engine.

A time-to-live cache of computed scores kept in the "AttentionScore" table.

Contract: last writer wins, no locking. Two concurrent recomputes may both
write; each write deletes and recreates the same keys wholesale, so the
surviving rows always belong to one complete recompute.

Suggested actions have no column of their own; they ride along in the
metadata bag under "suggestedActions" and are lifted back out on read.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from coachfit.models import (
    AttentionQueueItem,
    AttentionScore,
    CachedScoreRow,
    EntityIdentity,
    EntityType,
    ScoreKey,
)
from coachfit.services.store import StoreGateway


logger = logging.getLogger(__name__)

SUGGESTED_ACTIONS_KEY = 'suggestedActions'


class AttentionScoreCache:
    """
    Read/write helpers over the persisted attention scores.

    Args:
        store: Store gateway holding the AttentionScore table.
        ttl: Lifetime of rows written by write().
    """

    def __init__(self, store: StoreGateway, ttl: timedelta = timedelta(hours=1)):
        self.store = store
        self.ttl = ttl

    async def read(self, now: datetime) -> Optional[List[AttentionQueueItem]]:
        """
        Return every non-expired cached score with resolved names.

        Returns None when nothing is cached or when the cache cannot be read;
        callers fall through to a full recompute in both cases.
        """
        try:
            rows = await self.store.read_cached_scores(now)
            if not rows:
                return None
            users, cohorts = await self._resolve_names(rows)
        except Exception as e:
            logger.warning(f"Attention cache read failed, recomputing: {e}")
            return None

        items = [self._to_item(row, users, cohorts) for row in rows]
        items.sort(key=lambda item: item.score, reverse=True)
        return items

    async def write(
        self,
        scores: Sequence[AttentionScore],
        now: datetime,
        keys: Optional[Sequence[ScoreKey]] = None,
    ) -> None:
        """
        Delete-then-recreate scores, then purge expired rows.

        Args:
            scores: Positive scores to persist.
            now: Reference time; rows expire at now + ttl.
            keys: Keys to clear before inserting. Defaults to the keys of
                scores; pass a wider set to drop rows of entities that no
                longer score.

        Raises:
            Any store error. Callers on the read path submit this to the
            background writer, which logs instead of raising.
        """
        if keys is None:
            keys = [score.key for score in scores]
        rows = [self._to_row(score) for score in scores]

        await self.store.replace_scores(keys, rows, now + self.ttl)
        purged = await self.store.delete_expired_scores(now)

        logger.info(f"Cached {len(rows)} attention scores ({len(keys)} keys), purged {purged} expired")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _resolve_names(self, rows: List[CachedScoreRow]):
        user_ids = sorted({
            row.entity_id
            for row in rows
            if row.entity_type in (EntityType.USER, EntityType.COACH)
        })
        cohort_ids = sorted({row.entity_id for row in rows if row.entity_type == EntityType.COHORT})

        users, cohorts = await asyncio.gather(
            self.store.lookup_users(user_ids),
            self.store.lookup_cohorts(cohort_ids),
        )
        return users, cohorts

    @staticmethod
    def _to_row(score: AttentionScore) -> AttentionScore:
        metadata = dict(score.metadata)
        metadata[SUGGESTED_ACTIONS_KEY] = list(score.suggestedActions)
        return score.model_copy(update={'metadata': metadata})

    @staticmethod
    def _to_item(
        row: CachedScoreRow,
        users: Dict[str, EntityIdentity],
        cohorts: Dict[str, EntityIdentity],
    ) -> AttentionQueueItem:
        metadata = dict(row.metadata)
        actions = metadata.pop(SUGGESTED_ACTIONS_KEY, None) or []

        entity_email: Optional[str] = None
        if row.entity_type in (EntityType.USER, EntityType.COACH):
            identity = users.get(row.entity_id)
            entity_name = identity.display_name if identity else row.entity_id
            entity_email = identity.email if identity else None
        elif row.entity_type == EntityType.COHORT:
            identity = cohorts.get(row.entity_id)
            entity_name = identity.display_name if identity else row.entity_id
        else:
            entity_name = row.entity_id

        return AttentionQueueItem(
            entityType=row.entity_type,
            entityId=row.entity_id,
            entityName=entity_name,
            entityEmail=entity_email,
            priority=row.priority,
            score=row.score,
            reasons=list(row.reasons),
            suggestedActions=list(actions),
            metadata=metadata,
        )
