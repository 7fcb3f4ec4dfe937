"""
Insight Queries Module for the CoachFit attention engine.

Persistence for the "AdminInsight" table plus the daily aggregates behind the
trend charts. Same conventions as attention_queries: asyncpg positional
parameters and quoted Prisma identifiers.
"""


# =============================================================================
# ADMIN INSIGHT QUERIES
# =============================================================================

# $1: now
ACTIVE_INSIGHTS_QUERY = """
    SELECT
        i."entityType" AS entity_type,
        i."entityId" AS entity_id,
        i."insightType" AS insight_type,
        i.category,
        i.title,
        i.description,
        i.severity,
        i.priority,
        i.actionable,
        i.metadata,
        i."expiresAt" AS expires_at
    FROM "AdminInsight" i
    WHERE i."expiresAt" IS NULL OR i."expiresAt" > $1
    ORDER BY i.priority, i."entityType", i."entityId"
"""

# $1..$4: text[] entity types, entity ids, insight types, categories (zipped)
DELETE_INSIGHTS_BY_KEY_QUERY = """
    DELETE FROM "AdminInsight" i
    USING unnest($1::text[], $2::text[], $3::text[], $4::text[])
        AS k(entity_type, entity_id, insight_type, category)
    WHERE i."entityType" = k.entity_type
      AND i."entityId" = k.entity_id
      AND i."insightType" = k.insight_type
      AND i.category = k.category
"""

INSERT_INSIGHT_QUERY = """
    INSERT INTO "AdminInsight" (
        id, "entityType", "entityId", "insightType", category,
        title, description, severity, priority, actionable, metadata, "expiresAt"
    ) VALUES (
        gen_random_uuid()::text, $1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb, $11
    )
"""

# $1: now
DELETE_EXPIRED_INSIGHTS_QUERY = """
    DELETE FROM "AdminInsight"
    WHERE "expiresAt" <= $1
"""


# =============================================================================
# DAILY AGGREGATE QUERIES (trends)
# =============================================================================

# $1: window start. Prisma stores timestamps in UTC, so days are UTC days.
USERS_CREATED_BY_DAY_QUERY = """
    SELECT
        TO_CHAR(DATE_TRUNC('day', u."createdAt"), 'YYYY-MM-DD') AS day,
        COUNT(*) AS value
    FROM "User" u
    WHERE u."createdAt" >= $1
    GROUP BY 1
    ORDER BY 1
"""

ENTRIES_BY_DAY_QUERY = """
    SELECT
        TO_CHAR(DATE_TRUNC('day', e.date), 'YYYY-MM-DD') AS day,
        COUNT(*) AS value
    FROM "Entry" e
    WHERE e.date >= $1
    GROUP BY 1
    ORDER BY 1
"""
