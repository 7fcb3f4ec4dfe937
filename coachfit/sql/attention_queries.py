"""
Attention Queries Module for the CoachFit attention engine.

Parameterized asyncpg queries ($1, $2, ...) against the application's Prisma
tables. Prisma keeps camelCase column names, so every identifier is quoted.

Tables read:
- "User": id, name, email, roles (Role[]), "createdAt"
- "Cohort": id, name, "coachId"
- "CohortMembership": "userId", "cohortId"
- "Entry": "userId", date

Table owned by the engine:
- "AttentionScore": "entityType", "entityId", priority, score, reasons,
  metadata (jsonb), "expiresAt"

The batch loader issues every *_QUERY below once per load, so the number of
round-trips is fixed regardless of population size.
"""


# =============================================================================
# CONSTANTS
# =============================================================================

CLIENT_ROLE: str = 'CLIENT'
COACH_ROLE: str = 'COACH'


# =============================================================================
# IDENTITY QUERIES
# =============================================================================

# $1: role name
USERS_WITH_ROLE_QUERY = """
    SELECT u.id, u.name, u.email
    FROM "User" u
    WHERE $1 = ANY(u.roles::text[])
    ORDER BY u.id
"""

# $1: text[] of user ids
USERS_BY_ID_QUERY = """
    SELECT u.id, u.name, u.email
    FROM "User" u
    WHERE u.id = ANY($1::text[])
"""

# $1: text[] of cohort ids
COHORTS_BY_ID_QUERY = """
    SELECT c.id, c.name
    FROM "Cohort" c
    WHERE c.id = ANY($1::text[])
"""


# =============================================================================
# MEMBERSHIP QUERIES
# =============================================================================

# Coaches that own at least one cohort
COACH_IDS_WITH_COHORTS_QUERY = """
    SELECT DISTINCT u.id
    FROM "User" u
    JOIN "Cohort" c ON c."coachId" = u.id
    WHERE $1 = ANY(u.roles::text[])
"""

# One row per (coach, cohort); cohorts without members carry an empty array,
# coaches without cohorts carry a NULL cohort_id
COACHES_WITH_COHORTS_QUERY = """
    SELECT
        u.id,
        u.name,
        u.email,
        c.id AS cohort_id,
        COALESCE(
            ARRAY_AGG(m."userId" ORDER BY m."userId") FILTER (WHERE m."userId" IS NOT NULL),
            ARRAY[]::text[]
        ) AS member_ids
    FROM "User" u
    LEFT JOIN "Cohort" c ON c."coachId" = u.id
    LEFT JOIN "CohortMembership" m ON m."cohortId" = c.id
    WHERE $1 = ANY(u.roles::text[])
    GROUP BY u.id, u.name, u.email, c.id
    ORDER BY u.id, c.id
"""

COHORTS_WITH_MEMBERSHIPS_QUERY = """
    SELECT
        c.id,
        c.name,
        c."coachId" AS coach_id,
        COALESCE(
            ARRAY_AGG(m."userId" ORDER BY m."userId") FILTER (WHERE m."userId" IS NOT NULL),
            ARRAY[]::text[]
        ) AS member_ids
    FROM "Cohort" c
    LEFT JOIN "CohortMembership" m ON m."cohortId" = c.id
    GROUP BY c.id, c.name, c."coachId"
    ORDER BY c.id
"""

MEMBERSHIPS_QUERY = """
    SELECT m."userId" AS user_id, m."cohortId" AS cohort_id
    FROM "CohortMembership" m
"""


# =============================================================================
# ENTRY QUERIES
# =============================================================================

# $1: window start
ACTIVE_CLIENT_IDS_QUERY = """
    SELECT DISTINCT e."userId" AS user_id
    FROM "Entry" e
    WHERE e.date >= $1
"""

# $1: window start
RECENT_ENTRY_COUNTS_QUERY = """
    SELECT e."userId" AS user_id, COUNT(*) AS entry_count
    FROM "Entry" e
    WHERE e.date >= $1
    GROUP BY e."userId"
"""

# $1: text[] of client ids. Ordered newest first; the first row seen per
# client is its latest entry.
LATEST_ENTRIES_QUERY = """
    SELECT e."userId" AS user_id, e.date
    FROM "Entry" e
    WHERE e."userId" = ANY($1::text[])
    ORDER BY e.date DESC
"""


# =============================================================================
# ATTENTION SCORE CACHE QUERIES
# =============================================================================

# $1: now
CACHED_SCORES_QUERY = """
    SELECT
        s."entityType" AS entity_type,
        s."entityId" AS entity_id,
        s.score,
        s.priority,
        s.reasons,
        s.metadata,
        s."expiresAt" AS expires_at
    FROM "AttentionScore" s
    WHERE s."expiresAt" IS NULL OR s."expiresAt" > $1
    ORDER BY s.score DESC
"""

# $1: text[] entity types, $2: text[] entity ids (zipped pairwise)
DELETE_SCORES_BY_KEY_QUERY = """
    DELETE FROM "AttentionScore" s
    USING unnest($1::text[], $2::text[]) AS k(entity_type, entity_id)
    WHERE s."entityType" = k.entity_type
      AND s."entityId" = k.entity_id
"""

INSERT_SCORE_QUERY = """
    INSERT INTO "AttentionScore" (
        id, "entityType", "entityId", priority, score, reasons, metadata, "expiresAt"
    ) VALUES (
        gen_random_uuid()::text, $1, $2, $3, $4, $5::text[], $6::jsonb, $7
    )
"""

# $1: now
DELETE_EXPIRED_SCORES_QUERY = """
    DELETE FROM "AttentionScore"
    WHERE "expiresAt" <= $1
"""
