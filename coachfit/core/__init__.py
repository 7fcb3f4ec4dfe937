"""
Core infrastructure package for the CoachFit attention engine.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg

This module re-exports the configuration and pool helpers so other modules can
write:

    from coachfit.core import get_settings, get_db_pool

FastAPI dependencies live in coachfit.core.dependencies and are imported from
there directly, since they wire in the service layer.
"""

# =============================================================================
# Re-exports from coachfit.core.config
# =============================================================================
from coachfit.core.config import Settings, get_settings

# =============================================================================
# Re-exports from coachfit.core.database
# =============================================================================
from coachfit.core.database import init_db, close_db, get_db_pool


__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
]
