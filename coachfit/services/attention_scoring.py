"""
Attention Scoring Functions for the CoachFit attention engine.

One pure function per entity kind. Each takes a snapshot plus the shared
lookup data of a batch load and returns an AttentionScore; none of them does
I/O, reads the clock or keeps state, so scoring the same batch twice yields
identical results.

Scores are additive and bounded to [0, 100]. Priority is derived from the
final score only:

    red    score >= 60
    amber  30 <= score < 60
    green  score < 30

Client rules:
    1. Staleness: when the latest entry is older than the 14-day cutoff (or
       missing), +40 if >= 30 days since it (999 when never logged), else +25
       if >= 14 days.
    2. Gap floor: when 1 <= days since latest entry < 14, score = max(score, 30).
    3. Volume: +30 with 0 entries in the window, else +15 with fewer than 7.
    4. No cohort: +20.

Coach rules:
    - +50 when over 50 clients, else +30 without cohorts, else +20 when the
      cohorts have no members.
    - +10 when 0 < clients < 10 (underutilized).
    - Engagement over all clients: +25 below 0.3, else +15 below 0.5.

Cohort rules:
    - +40 without members, otherwise engagement +35 below 0.3, +20 below 0.5,
      or -10 above 0.8.
    - +30 without an owning coach.

Engagement rate = entries in the window / (members x 14).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from coachfit.models import (
    AttentionScore,
    ClientSnapshot,
    CoachSnapshot,
    CohortSnapshot,
    EntityType,
    Priority,
)


# =============================================================================
# Thresholds
# =============================================================================

MAX_SCORE = 100
RED_THRESHOLD = 60
AMBER_THRESHOLD = 30

WINDOW_DAYS = 14
NEVER_LOGGED_DAYS = 999
STALE_DAYS_HIGH = 30
STALE_DAYS_LOW = 14
GAP_FLOOR_SCORE = 30
LOW_VOLUME_ENTRIES = 7

MAX_RECOMMENDED_CLIENTS = 50
MIN_RECOMMENDED_CLIENTS = 10

LOW_ENGAGEMENT_RATE = 0.3
MODERATE_ENGAGEMENT_RATE = 0.5
HIGH_ENGAGEMENT_RATE = 0.8


# =============================================================================
# Shared Helpers
# =============================================================================


def priority_for_score(score: int) -> Priority:
    """Map a clamped score to its priority tier."""
    if score >= RED_THRESHOLD:
        return Priority.RED
    if score >= AMBER_THRESHOLD:
        return Priority.AMBER
    return Priority.GREEN


def clamp_score(score: int) -> int:
    return max(0, min(score, MAX_SCORE))


def engagement_rate(member_ids: Sequence[str], entry_counts: Mapping[str, int]) -> float:
    """Share of expected entries (members x 14) actually logged in the window."""
    expected = len(member_ids) * WINDOW_DAYS
    if expected == 0:
        return 0.0
    recent = sum(entry_counts.get(member_id, 0) for member_id in member_ids)
    return recent / expected


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from earlier to later (floored)."""
    return int((_as_utc(later) - _as_utc(earlier)).total_seconds() // 86400)


def _percent(rate: float) -> str:
    return f"{rate * 100:.0f}%"


def _build(
    entity_type: EntityType,
    entity_id: str,
    score: int,
    reasons: List[str],
    actions: List[str],
    metadata: Dict[str, Any],
) -> AttentionScore:
    score = clamp_score(score)
    return AttentionScore(
        entityType=entity_type,
        entityId=entity_id,
        priority=priority_for_score(score),
        score=score,
        reasons=reasons,
        suggestedActions=actions,
        metadata=metadata,
    )


# =============================================================================
# Client Scoring
# =============================================================================


def score_client(client: ClientSnapshot, now: datetime, cutoff: datetime) -> AttentionScore:
    """
    Score one client.

    Args:
        client: Client snapshot with latest entry date, 14-day entry count and
            cohort memberships.
        now: Reference time of the batch.
        cutoff: Start of the trailing 14-day window.
    """
    score = 0
    reasons: List[str] = []
    actions: List[str] = []
    metadata: Dict[str, Any] = {}

    last_entry = client.last_entry_at
    days_since: Optional[int] = days_between(last_entry, now) if last_entry else None

    # Rule 1: staleness escalation, only past the cutoff
    if last_entry is None or _as_utc(last_entry) < _as_utc(cutoff):
        stale_days = NEVER_LOGGED_DAYS if days_since is None else days_since
        if stale_days >= STALE_DAYS_HIGH:
            score += 40
            reasons.append(f"No entries for {stale_days} days")
            actions.append("Contact client to check engagement")
            metadata['daysSinceLastEntry'] = stale_days
        elif stale_days >= STALE_DAYS_LOW:
            score += 25
            reasons.append(f"No entries for {stale_days} days")
            actions.append("Send reminder to client")
            metadata['daysSinceLastEntry'] = stale_days

    # Rule 2: floor, not an add
    if days_since is not None and 1 <= days_since < STALE_DAYS_LOW:
        score = max(score, GAP_FLOOR_SCORE)
        day_word = "day" if days_since == 1 else "days"
        reasons.append(f"No entry in the last {days_since} {day_word}")
        actions.append("Check in with client")
        metadata['daysSinceLastEntry'] = days_since

    # Rule 3: volume in the window
    entries = client.recent_entry_count
    if entries == 0:
        score += 30
        reasons.append(f"No entries in last {WINDOW_DAYS} days")
        actions.append("Send engagement reminder")
        metadata['entriesLast14Days'] = 0
    elif entries < LOW_VOLUME_ENTRIES:
        score += 15
        reasons.append(f"Only {entries} entries in last {WINDOW_DAYS} days (low engagement)")
        actions.append("Review client engagement")
        metadata['entriesLast14Days'] = entries

    # Rule 4: membership
    if not client.cohort_ids:
        score += 20
        reasons.append("Not assigned to any cohort")
        actions.append("Assign client to a cohort")
        metadata['cohortCount'] = 0

    return _build(EntityType.USER, client.id, score, reasons, actions, metadata)


# =============================================================================
# Coach Scoring
# =============================================================================


def score_coach(coach: CoachSnapshot, entry_counts: Mapping[str, int]) -> AttentionScore:
    """Score one coach from its nested cohorts and the client entry counts."""
    score = 0
    reasons: List[str] = []
    actions: List[str] = []

    total_clients = coach.total_clients
    cohort_count = len(coach.cohorts)
    metadata: Dict[str, Any] = {
        'clientCount': total_clients,
        'cohortCount': cohort_count,
    }

    if total_clients > MAX_RECOMMENDED_CLIENTS:
        score += 50
        reasons.append(
            f"Overloaded: {total_clients} clients (recommended max: {MAX_RECOMMENDED_CLIENTS})"
        )
        actions.append("Reassign some clients to other coaches")
        actions.append("Consider adding another coach")
        metadata['overloaded'] = True
        metadata['recommendedMax'] = MAX_RECOMMENDED_CLIENTS
    elif cohort_count == 0:
        score += 30
        reasons.append("No cohorts assigned")
        actions.append("Assign coach to cohorts")
        metadata['hasNoCohorts'] = True
    elif total_clients == 0:
        score += 20
        reasons.append("No active clients in assigned cohorts")
        actions.append("Review cohort assignments")
        metadata['hasNoClients'] = True

    if 0 < total_clients < MIN_RECOMMENDED_CLIENTS and cohort_count > 0:
        score += 10
        reasons.append(f"Underutilized: Only {total_clients} clients (could take more)")
        actions.append("Assign more clients to optimize capacity")
        metadata['underutilized'] = True
        metadata['recommendedMin'] = MIN_RECOMMENDED_CLIENTS

    if total_clients > 0:
        member_ids = coach.member_ids
        rate = engagement_rate(member_ids, entry_counts)
        metadata['engagementRate'] = rate
        metadata['recentEntries'] = sum(entry_counts.get(member, 0) for member in member_ids)
        metadata['expectedEntries'] = total_clients * WINDOW_DAYS

        if rate < LOW_ENGAGEMENT_RATE:
            score += 25
            reasons.append(f"Low client engagement: {_percent(rate)} entry completion")
            actions.append("Review client engagement strategies")
            metadata['lowEngagement'] = True
        elif rate < MODERATE_ENGAGEMENT_RATE:
            score += 15
            reasons.append(f"Moderate client engagement: {_percent(rate)} entry completion")
            actions.append("Monitor client engagement")
            metadata['moderateEngagement'] = True

    return _build(EntityType.COACH, coach.id, score, reasons, actions, metadata)


# =============================================================================
# Cohort Scoring
# =============================================================================


def score_cohort(cohort: CohortSnapshot, entry_counts: Mapping[str, int]) -> AttentionScore:
    """Score one cohort. The only rule set that can subtract."""
    score = 0
    reasons: List[str] = []
    actions: List[str] = []

    member_count = len(cohort.member_ids)
    metadata: Dict[str, Any] = {
        'clientCount': member_count,
        'cohortName': cohort.name,
    }

    if member_count == 0:
        score += 40
        reasons.append("No active members")
        actions.append("Invite clients to join cohort")
        actions.append("Review cohort purpose and goals")
        metadata['isEmpty'] = True
    else:
        rate = engagement_rate(cohort.member_ids, entry_counts)
        metadata['engagementRate'] = rate
        metadata['recentEntries'] = sum(entry_counts.get(member, 0) for member in cohort.member_ids)
        metadata['expectedEntries'] = member_count * WINDOW_DAYS

        if rate < LOW_ENGAGEMENT_RATE:
            score += 35
            reasons.append(f"Very low engagement: {_percent(rate)} entry completion")
            actions.append("Review cohort engagement strategies")
            actions.append("Contact coach to discuss")
            metadata['veryLowEngagement'] = True
        elif rate < MODERATE_ENGAGEMENT_RATE:
            score += 20
            reasons.append(f"Low engagement: {_percent(rate)} entry completion")
            actions.append("Monitor engagement closely")
            metadata['lowEngagement'] = True
        elif rate > HIGH_ENGAGEMENT_RATE:
            score -= 10
            reasons.append(f"High engagement: {_percent(rate)} entry completion")
            metadata['highEngagement'] = True

    if not cohort.coach_id:
        score += 30
        reasons.append("No coach assigned")
        actions.append("Assign coach to cohort")
        metadata['hasNoCoach'] = True

    return _build(EntityType.COHORT, cohort.id, score, reasons, actions, metadata)


def zero_score(entity_type: EntityType, entity_id: str) -> AttentionScore:
    """Neutral score for an entity that is unknown to the current batch."""
    return AttentionScore(
        entityType=entity_type,
        entityId=entity_id,
        priority=Priority.GREEN,
        score=0,
    )
