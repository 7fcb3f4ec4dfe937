"""
CoachFit Admin Attention Engine Package.

FastAPI service layer for the CoachFit admin console. Computes the prioritized
"who needs attention" queue across clients, coaches and cohorts, and detects
discrete admin insights (inactive clients, empty cohorts, overloaded coaches).

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Store gateway, batch loader, scoring, cache and insight engine
    - jobs: Refresh entry points for an external scheduler
    - sql: Parameterized SQL queries

The engine reads the same PostgreSQL tables as the Next.js application and
writes back only the AttentionScore and AdminInsight tables.
"""

__version__ = "1.0.0"
