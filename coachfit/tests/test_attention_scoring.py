"""
Tests for the pure attention scoring functions.

Test Classes:
- TestPriorityForScore: Tier boundaries
- TestScoreClient: Client rules 1-4
- TestScoreCoach: Capacity and engagement rules
- TestScoreCohort: Membership, engagement and ownership rules
- TestScoreBounds: Score range and priority consistency across inputs
"""

from datetime import timedelta

import pytest

from coachfit.models import (
    ClientSnapshot,
    CoachSnapshot,
    CohortMembers,
    CohortSnapshot,
    EntityType,
    Priority,
)
from coachfit.services.attention_scoring import (
    days_between,
    engagement_rate,
    priority_for_score,
    score_client,
    score_coach,
    score_cohort,
    zero_score,
)
from coachfit.tests.conftest import NOW


CUTOFF = NOW - timedelta(days=14)


def _client(days_since=None, entries=0, cohorts=('cohort-1',), client_id='client-1'):
    last_entry = NOW - timedelta(days=days_since, hours=1) if days_since is not None else None
    return ClientSnapshot(
        id=client_id,
        name='Casey Client',
        email='casey@example.com',
        last_entry_at=last_entry,
        recent_entry_count=entries,
        cohort_ids=list(cohorts),
    )


def _coach(*cohorts):
    return CoachSnapshot(
        id='coach-1',
        name='Corey Coach',
        email='corey@example.com',
        cohorts=[CohortMembers(id=f'cohort-{i}', member_ids=members) for i, members in enumerate(cohorts)],
    )


def _members(count, prefix='m'):
    return [f'{prefix}{i}' for i in range(count)]


class TestPriorityForScore:
    """Tier thresholds: red >= 60, amber >= 30, green below."""

    @pytest.mark.parametrize('score,expected', [
        (0, Priority.GREEN),
        (29, Priority.GREEN),
        (30, Priority.AMBER),
        (59, Priority.AMBER),
        (60, Priority.RED),
        (100, Priority.RED),
    ])
    def test_boundaries(self, score, expected):
        assert priority_for_score(score) == expected


class TestScoreClient:
    """Client rules: staleness, gap floor, volume, cohort membership."""

    def test_never_logged_without_cohort(self):
        result = score_client(_client(days_since=None, entries=0, cohorts=()), NOW, CUTOFF)

        assert result.score == 90
        assert result.priority == Priority.RED
        assert result.entityType == EntityType.USER
        assert result.reasons == [
            "No entries for 999 days",
            "No entries in last 14 days",
            "Not assigned to any cohort",
        ]
        assert result.metadata['daysSinceLastEntry'] == 999
        assert result.metadata['entriesLast14Days'] == 0
        assert result.metadata['cohortCount'] == 0
        assert len(result.suggestedActions) == 3

    def test_two_day_gap_is_floored_to_amber(self):
        result = score_client(_client(days_since=2, entries=10), NOW, CUTOFF)

        assert result.score == 30
        assert result.priority == Priority.AMBER
        assert result.reasons == ["No entry in the last 2 days"]
        assert result.metadata['daysSinceLastEntry'] == 2

    def test_single_day_gap_uses_singular(self):
        result = score_client(_client(days_since=1, entries=10), NOW, CUTOFF)

        assert result.reasons == ["No entry in the last 1 day"]

    def test_gap_floor_then_volume_and_cohort_add(self):
        result = score_client(_client(days_since=1, entries=3, cohorts=()), NOW, CUTOFF)

        assert result.score == 30 + 15 + 20
        assert result.priority == Priority.RED
        assert "Only 3 entries in last 14 days (low engagement)" in result.reasons

    def test_stale_between_14_and_30_days(self):
        result = score_client(_client(days_since=20, entries=0), NOW, CUTOFF)

        assert result.score == 25 + 30
        assert result.priority == Priority.AMBER
        assert result.reasons[0] == "No entries for 20 days"

    def test_stale_over_30_days(self):
        result = score_client(_client(days_since=45, entries=0, cohorts=()), NOW, CUTOFF)

        assert result.score == 90
        assert result.metadata['daysSinceLastEntry'] == 45

    def test_logged_today_with_good_volume_scores_zero(self):
        result = score_client(_client(days_since=0, entries=12), NOW, CUTOFF)

        assert result.score == 0
        assert result.priority == Priority.GREEN
        assert result.reasons == []
        assert result.suggestedActions == []

    def test_volume_uses_window_count(self):
        result = score_client(_client(days_since=0, entries=6), NOW, CUTOFF)

        assert result.score == 15
        assert result.metadata['entriesLast14Days'] == 6

    def test_null_cohorts_count_as_none(self):
        client = ClientSnapshot(id='client-x', last_entry_at=None, cohort_ids=None)

        result = score_client(client, NOW, CUTOFF)

        assert result.score == 90
        assert result.entityId == 'client-x'


class TestScoreCoach:
    """Coach rules: overload, cohorts, underutilization, engagement."""

    def test_no_cohorts(self):
        result = score_coach(_coach(), {})

        assert result.score == 30
        assert result.priority == Priority.AMBER
        assert result.reasons == ["No cohorts assigned"]
        assert result.metadata['clientCount'] == 0
        assert result.metadata['cohortCount'] == 0
        assert result.metadata['hasNoCohorts'] is True

    def test_cohorts_without_members(self):
        result = score_coach(_coach([], []), {})

        assert result.score == 20
        assert result.priority == Priority.GREEN
        assert result.metadata['cohortCount'] == 2

    def test_small_roster_with_no_entries(self):
        result = score_coach(_coach(_members(5)), {})

        assert result.score == 10 + 25
        assert result.priority == Priority.AMBER
        assert result.metadata['underutilized'] is True
        assert result.metadata['engagementRate'] == 0.0
        assert result.metadata['expectedEntries'] == 70

    def test_moderate_engagement(self):
        members = _members(12)
        counts = {member: 6 for member in members}

        result = score_coach(_coach(members), counts)

        # 72 of 168 expected entries
        assert result.score == 15
        assert result.metadata['moderateEngagement'] is True

    def test_overloaded_coach_scores_at_least_50(self):
        members = _members(51)
        fully_engaged = {member: 14 for member in members}

        engaged = score_coach(_coach(members[:30], members[30:]), fully_engaged)
        disengaged = score_coach(_coach(members[:30], members[30:]), {})

        assert engaged.score == 50
        assert engaged.metadata['overloaded'] is True
        assert engaged.metadata['recommendedMax'] == 50
        assert engaged.reasons[0] == "Overloaded: 51 clients (recommended max: 50)"
        assert disengaged.score == 75
        assert disengaged.priority == Priority.RED

    def test_exactly_fifty_clients_is_not_overloaded(self):
        members = _members(50)

        result = score_coach(_coach(members), {member: 14 for member in members})

        assert result.score == 0
        assert 'overloaded' not in result.metadata

    def test_null_cohorts_do_not_raise(self):
        coach = CoachSnapshot(id='coach-x', cohorts=None)

        result = score_coach(coach, {})

        assert result.score == 30


class TestScoreCohort:
    """Cohort rules: empty, engagement bands, missing coach."""

    def test_empty_cohort_without_coach(self):
        cohort = CohortSnapshot(id='cohort-1', name='Ghost Town')

        result = score_cohort(cohort, {})

        assert result.score == 70
        assert result.priority == Priority.RED
        assert result.reasons == ["No active members", "No coach assigned"]
        assert result.metadata['isEmpty'] is True
        assert result.metadata['cohortName'] == 'Ghost Town'

    def test_high_engagement_is_clamped_to_zero(self):
        members = _members(50)
        # 567 of 700 expected entries: 81%
        counts = {members[0]: 567}
        cohort = CohortSnapshot(id='cohort-1', coach_id='coach-1', member_ids=members)

        result = score_cohort(cohort, counts)

        assert result.score == 0
        assert result.priority == Priority.GREEN
        assert result.metadata['highEngagement'] is True
        assert result.reasons == ["High engagement: 81% entry completion"]

    def test_very_low_engagement(self):
        members = _members(4)
        cohort = CohortSnapshot(id='cohort-1', coach_id='coach-1', member_ids=members)

        result = score_cohort(cohort, {members[0]: 3})

        assert result.score == 35
        assert result.metadata['veryLowEngagement'] is True

    def test_low_engagement_without_coach(self):
        members = _members(2)
        cohort = CohortSnapshot(id='cohort-1', member_ids=members)

        result = score_cohort(cohort, {members[0]: 6, members[1]: 5})

        # 11 of 28
        assert result.score == 20 + 30
        assert result.priority == Priority.AMBER

    def test_null_members_treated_as_empty(self):
        cohort = CohortSnapshot(id='cohort-1', coach_id='coach-1', member_ids=None)

        result = score_cohort(cohort, {})

        assert result.score == 40


class TestScoreBounds:
    """Scores stay in [0, 100] and priority always follows the score."""

    @pytest.mark.parametrize('days_since', [None, 0, 1, 5, 13, 14, 29, 30, 400])
    @pytest.mark.parametrize('entries', [0, 3, 7, 20])
    @pytest.mark.parametrize('cohorts', [(), ('cohort-1',)])
    def test_client_scores_are_bounded(self, days_since, entries, cohorts):
        result = score_client(_client(days_since=days_since, entries=entries, cohorts=cohorts), NOW, CUTOFF)

        assert 0 <= result.score <= 100
        assert result.priority == priority_for_score(result.score)

    def test_helpers(self):
        assert engagement_rate([], {}) == 0.0
        assert engagement_rate(['a', 'b'], {'a': 14, 'b': 14}) == 1.0
        assert days_between(NOW - timedelta(days=3, hours=5), NOW) == 3
        assert days_between(NOW.replace(tzinfo=None) - timedelta(days=1), NOW) == 1

    def test_zero_score(self):
        result = zero_score(EntityType.COHORT, 'missing')

        assert result.score == 0
        assert result.priority == Priority.GREEN
        assert result.reasons == []
