"""
Batch Loader Service for the CoachFit attention engine.

Turns "score everything" into a fixed number of bulk reads regardless of
population size. The reads are independent, so they are issued concurrently
(asyncio.gather) and awaited together; only the latest-entry read waits for
the client list because it is keyed by client id.

Reads per load:
    (a) all client identities
    (b) ids of clients with >=1 entry in the trailing window
    (c) all coach identities
    (d) ids of coaches owning >=1 cohort
    (e) all cohorts with member ids
    (f) all coaches with nested cohort -> member ids
    (g) entry counts per client in the trailing window
    (+) all memberships (client -> cohort ids)
    (h) latest entry date per client

Failure semantics: if any read fails or times out, the whole load fails with
BatchLoadError. A half-loaded batch would silently under- or over-score
entities, so there is no partial result.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Dict, List, Optional, Set

from coachfit.core.config import get_settings
from coachfit.models import (
    ClientSnapshot,
    CoachSnapshot,
    CohortSnapshot,
    EntityIdentity,
    Membership,
)
from coachfit.services.store import StoreGateway


logger = logging.getLogger(__name__)


# Trailing window for activity, volume and engagement rules
RECENT_WINDOW_DAYS = 14


class BatchLoadError(RuntimeError):
    """Raised when any bulk read of a batch load fails or times out."""

    def __init__(self, read_name: str, cause: BaseException):
        self.read_name = read_name
        self.cause = cause
        super().__init__(f"Batch load failed on '{read_name}': {cause!r}")


@dataclass
class BatchData:
    """
    In-memory lookup structures for one scoring pass.

    Attributes:
        now: Reference time of the load.
        cutoff: Start of the trailing 14-day window (now - 14 days).
        clients: Client identities in store order.
        active_client_ids: Clients with at least one entry since cutoff.
        coaches: Coach identities in store order.
        coach_ids_with_cohorts: Coaches owning at least one cohort.
        coaches_with_cohorts: Coaches with nested cohorts and member ids.
        cohorts: Cohorts with owning coach and member ids.
        recent_entry_counts: client id -> entries since cutoff.
        latest_entry_dates: client id -> most recent entry date.
        client_cohort_ids: client id -> cohort ids the client belongs to.
    """
    now: datetime
    cutoff: datetime
    clients: List[EntityIdentity] = field(default_factory=list)
    active_client_ids: Set[str] = field(default_factory=set)
    coaches: List[EntityIdentity] = field(default_factory=list)
    coach_ids_with_cohorts: Set[str] = field(default_factory=set)
    coaches_with_cohorts: List[CoachSnapshot] = field(default_factory=list)
    cohorts: List[CohortSnapshot] = field(default_factory=list)
    recent_entry_counts: Dict[str, int] = field(default_factory=dict)
    latest_entry_dates: Dict[str, datetime] = field(default_factory=dict)
    client_cohort_ids: Dict[str, List[str]] = field(default_factory=dict)

    def client_snapshots(self) -> List[ClientSnapshot]:
        """Denormalized client views, one per loaded client."""
        return [
            ClientSnapshot(
                id=client.id,
                name=client.name,
                email=client.email or '',
                last_entry_at=self.latest_entry_dates.get(client.id),
                recent_entry_count=self.recent_entry_counts.get(client.id, 0),
                cohort_ids=self.client_cohort_ids.get(client.id, []),
            )
            for client in self.clients
        ]

    def coach_snapshots(self) -> List[CoachSnapshot]:
        return list(self.coaches_with_cohorts)

    def cohort_snapshots(self) -> List[CohortSnapshot]:
        return list(self.cohorts)


def _group_memberships(memberships: List[Membership]) -> Dict[str, List[str]]:
    grouped: Dict[str, List[str]] = {}
    for membership in memberships:
        grouped.setdefault(membership.user_id, []).append(membership.cohort_id)
    return grouped


async def _bounded(name: str, awaitable: Awaitable[Any], timeout: float) -> Any:
    """Await one read under the per-query timeout, tagging failures with its name."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise BatchLoadError(name, e) from e
    except BatchLoadError:
        raise
    except Exception as e:
        raise BatchLoadError(name, e) from e


async def load_batch(
    store: StoreGateway,
    now: Optional[datetime] = None,
    timeout: Optional[float] = None,
) -> BatchData:
    """
    Load everything one scoring pass needs in a fixed number of bulk reads.

    Args:
        store: Store gateway to read from.
        now: Reference time. Defaults to the current UTC time.
        timeout: Per-read timeout in seconds. Defaults to
            Settings.batch_query_timeout_seconds.

    Returns:
        BatchData with every lookup map populated.

    Raises:
        BatchLoadError: If any read fails or exceeds the timeout.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)
    if timeout is None:
        timeout = get_settings().batch_query_timeout_seconds

    reads = {
        'clients': store.list_clients(),
        'active_client_ids': store.list_client_ids_with_recent_entries(cutoff),
        'coaches': store.list_coaches(),
        'coach_ids_with_cohorts': store.list_coach_ids_with_cohorts(),
        'cohorts': store.list_cohorts_with_memberships(),
        'coaches_with_cohorts': store.list_coaches_with_cohorts(),
        'recent_entry_counts': store.count_recent_entries_by_client(cutoff),
        'memberships': store.list_memberships(),
    }

    # Let every read settle before raising so no task is left running
    results = await asyncio.gather(
        *(_bounded(name, read, timeout) for name, read in reads.items()),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            logger.error(f"Batch load aborted: {result}")
            raise result

    loaded = dict(zip(reads.keys(), results))

    client_ids = [client.id for client in loaded['clients']]
    try:
        latest_entry_dates = await _bounded(
            'latest_entry_dates',
            store.latest_entry_date_by_client(client_ids),
            timeout,
        )
    except BatchLoadError as e:
        logger.error(f"Batch load aborted: {e}")
        raise

    batch = BatchData(
        now=now,
        cutoff=cutoff,
        clients=loaded['clients'],
        active_client_ids=set(loaded['active_client_ids']),
        coaches=loaded['coaches'],
        coach_ids_with_cohorts=set(loaded['coach_ids_with_cohorts']),
        coaches_with_cohorts=loaded['coaches_with_cohorts'],
        cohorts=loaded['cohorts'],
        recent_entry_counts=loaded['recent_entry_counts'],
        latest_entry_dates=latest_entry_dates,
        client_cohort_ids=_group_memberships(loaded['memberships']),
    )

    logger.info(
        f"Batch loaded {len(batch.clients)} clients, {len(batch.coaches)} coaches, "
        f"{len(batch.cohorts)} cohorts"
    )
    return batch
