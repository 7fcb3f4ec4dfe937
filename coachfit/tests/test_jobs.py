"""
Tests for the scheduler-facing refresh jobs.

The jobs run on the real clock, so population data here is built relative
to the current time.

Test Classes:
- TestRunAttentionRefresh: Forced recompute plus chunked client refresh
- TestRunInsightRefresh: Detection plus persistence
"""

from datetime import datetime, timedelta, timezone

import pytest

from coachfit.jobs import run_attention_refresh, run_insight_refresh
from coachfit.tests.conftest import FakeStore


pytestmark = pytest.mark.asyncio


@pytest.fixture
def live_store():
    now = datetime.now(timezone.utc)
    store = FakeStore()
    store.add_client('never-logged', name='Nia Never')
    store.add_client('regular', name='Reg Ular', entries=[now - timedelta(hours=2 + 24 * i) for i in range(10)])
    store.add_coach('coach-1', name='Coach One')
    store.add_cohort('cohort-1', name='Core', coach_id='coach-1', member_ids=['regular'])
    store.add_cohort('cohort-2', name='Orphan')
    return store


class TestRunAttentionRefresh:

    async def test_success(self, live_store, settings):
        result = await run_attention_refresh(store=live_store, settings=settings, batch_size=1)

        assert result['success'] is True
        assert result['updated'] == 2
        assert result['scored'] == 1
        assert result['batchSize'] == 1
        assert result['summary']['total'] >= 2
        assert live_store.calls['replace_scores'] == 3
        keys = [row.key for row in live_store.score_rows]
        assert len(keys) == len(set(keys))
        assert ('user', 'never-logged') in keys
        assert ('cohort', 'cohort-2') in keys

    async def test_load_failure_is_reported(self, live_store, settings):
        live_store.failing.add('list_clients')

        result = await run_attention_refresh(store=live_store, settings=settings)

        assert result['success'] is False
        assert 'list_clients' in result['error']

    async def test_write_failure_is_reported(self, live_store, settings):
        live_store.failing.add('replace_scores')

        result = await run_attention_refresh(store=live_store, settings=settings)

        assert result['success'] is False
        assert result['error']


class TestRunInsightRefresh:

    async def test_success(self, live_store, settings):
        result = await run_insight_refresh(store=live_store, settings=settings)

        assert result == {'success': True, 'insights': 2}
        assert {row.title for row in live_store.insight_rows} == {'Inactive Client', 'Empty Cohort'}

    async def test_failure_is_reported(self, live_store, settings):
        live_store.failing.add('replace_insights')

        result = await run_insight_refresh(store=live_store, settings=settings)

        assert result['success'] is False
