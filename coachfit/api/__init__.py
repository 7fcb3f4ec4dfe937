"""
API package initialization.

Router modules for the admin console:
- attention: Attention queue, explicit refresh, single-entity scores
- insights: Stored insights, refresh, opportunities, trends, overview
"""

from fastapi import APIRouter

from coachfit.api.attention import router as attention_router
from coachfit.api.insights import router as insights_router

# Both routers carry their own /admin/... prefix
api_router = APIRouter()
api_router.include_router(attention_router)
api_router.include_router(insights_router)

__all__ = [
    "api_router",
    "attention_router",
    "insights_router",
]
