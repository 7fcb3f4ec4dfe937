"""
Tests for the batch loader.

Test Classes:
- TestLoadBatch: Lookup maps and fixed read count
- TestLoadBatchFailures: Failed and timed-out reads abort the whole load
"""

import asyncio
from datetime import timedelta

import pytest

from coachfit.services.batch_loader import BatchLoadError, load_batch
from coachfit.tests.conftest import NOW, FakeStore, daily_entries


pytestmark = pytest.mark.asyncio


class SlowStore(FakeStore):
    """Store whose coach read never finishes in time."""

    async def list_coaches(self):
        self._record('list_coaches')
        await asyncio.sleep(5)
        return []


class TestLoadBatch:
    """Lookup structures built from one bulk load."""

    async def test_builds_lookup_maps(self, populated_store):
        batch = await load_batch(populated_store, now=NOW, timeout=5)

        assert batch.now == NOW
        assert batch.cutoff == NOW - timedelta(days=14)
        assert [c.id for c in batch.clients] == ['client-inactive', 'client-gap', 'client-steady']
        assert batch.active_client_ids == {'client-gap', 'client-steady'}
        assert batch.coach_ids_with_cohorts == {'coach-busy'}
        assert batch.recent_entry_counts == {'client-gap': 10, 'client-steady': 12}
        assert batch.client_cohort_ids == {
            'client-gap': ['cohort-a'],
            'client-steady': ['cohort-a'],
        }
        assert set(batch.latest_entry_dates) == {'client-gap', 'client-steady'}
        assert batch.latest_entry_dates['client-gap'] == NOW - timedelta(days=2, hours=1)

    async def test_client_snapshots_are_denormalized(self, populated_store):
        batch = await load_batch(populated_store, now=NOW, timeout=5)

        snapshots = {s.id: s for s in batch.client_snapshots()}

        assert snapshots['client-inactive'].last_entry_at is None
        assert snapshots['client-inactive'].recent_entry_count == 0
        assert snapshots['client-inactive'].cohort_ids == []
        assert snapshots['client-steady'].recent_entry_count == 12
        assert snapshots['client-steady'].email == 'client-steady@example.com'

    async def test_nested_coach_cohorts(self, populated_store):
        batch = await load_batch(populated_store, now=NOW, timeout=5)

        coaches = {c.id: c for c in batch.coach_snapshots()}

        assert coaches['coach-idle'].cohorts == []
        assert coaches['coach-busy'].total_clients == 2

    async def test_read_count_is_fixed(self, populated_store):
        for i in range(40):
            populated_store.add_client(f'extra-{i}', entries=daily_entries(3))

        await load_batch(populated_store, now=NOW, timeout=5)

        assert sum(populated_store.calls.values()) == 9
        assert all(count == 1 for count in populated_store.calls.values())

    async def test_latest_entry_keeps_newest(self):
        store = FakeStore()
        store.add_client('c1', entries=[NOW - timedelta(days=9), NOW - timedelta(days=3), NOW - timedelta(days=6)])

        batch = await load_batch(store, now=NOW, timeout=5)

        assert batch.latest_entry_dates == {'c1': NOW - timedelta(days=3)}

    async def test_empty_population(self):
        batch = await load_batch(FakeStore(), now=NOW, timeout=5)

        assert batch.clients == []
        assert batch.client_snapshots() == []
        assert batch.latest_entry_dates == {}


class TestLoadBatchFailures:
    """No partial batch is ever returned."""

    async def test_failed_read_raises_batch_load_error(self, populated_store):
        populated_store.failing.add('count_recent_entries_by_client')

        with pytest.raises(BatchLoadError) as exc_info:
            await load_batch(populated_store, now=NOW, timeout=5)

        assert exc_info.value.read_name == 'recent_entry_counts'
        assert isinstance(exc_info.value.cause, RuntimeError)

    async def test_failed_latest_entry_read(self, populated_store):
        populated_store.failing.add('latest_entry_date_by_client')

        with pytest.raises(BatchLoadError) as exc_info:
            await load_batch(populated_store, now=NOW, timeout=5)

        assert exc_info.value.read_name == 'latest_entry_dates'

    async def test_timed_out_read_raises(self):
        store = SlowStore()

        with pytest.raises(BatchLoadError) as exc_info:
            await load_batch(store, now=NOW, timeout=0.05)

        assert exc_info.value.read_name == 'coaches'
        assert isinstance(exc_info.value.cause, asyncio.TimeoutError)
