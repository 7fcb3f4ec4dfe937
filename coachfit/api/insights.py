"""
FastAPI router module for admin insights.

Endpoints:
- GET  /admin/insights                Active (non-expired) stored insights
- POST /admin/insights/refresh        Detect anomalies and store them
- GET  /admin/insights/opportunities  Platform optimization opportunities
- GET  /admin/insights/trends         Daily trend for one metric
- GET  /admin/insights/overview       Overview bundle (memoized)
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query

from coachfit.core.dependencies import InsightEngineDep
from coachfit.models import (
    Insight,
    InsightsOverview,
    Opportunity,
    Trend,
    TrendMetric,
    TrendTimeframe,
)
from coachfit.services.batch_loader import BatchLoadError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/insights", tags=["insights"])


@router.get("", response_model=List[Insight])
async def list_insights(engine: InsightEngineDep) -> List[Insight]:
    """List stored insights that have not expired."""
    try:
        return await engine.list_active_insights()
    except Exception as e:
        logger.error(f"Error reading insights: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/refresh", response_model=List[Insight])
async def refresh_insights(engine: InsightEngineDep) -> List[Insight]:
    """
    Run anomaly detection and replace the stored insights.

    Raises:
        HTTPException 500: If the batch load or persistence fails
    """
    try:
        return await engine.refresh_insights()
    except BatchLoadError as e:
        logger.error(f"Error loading insight data: {e}")
        raise HTTPException(status_code=500, detail="Failed to load insight data")
    except Exception as e:
        logger.error(f"Error refreshing insights: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/opportunities", response_model=List[Opportunity])
async def get_opportunities(engine: InsightEngineDep) -> List[Opportunity]:
    try:
        return await engine.find_opportunities()
    except BatchLoadError as e:
        logger.error(f"Error loading insight data: {e}")
        raise HTTPException(status_code=500, detail="Failed to load insight data")
    except Exception as e:
        logger.error(f"Error finding opportunities: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/trends", response_model=List[Trend])
async def get_trends(
    engine: InsightEngineDep,
    metric: TrendMetric = Query(..., description="user_growth or entry_completion"),
    timeframe: TrendTimeframe = Query(TrendTimeframe.SEVEN_DAYS, description="7d or 30d"),
) -> List[Trend]:
    """
    Daily trend for one metric.

    Empty when fewer than two days in the window have data.
    """
    try:
        return await engine.generate_trends(metric.value, timeframe.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error generating trends: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/overview", response_model=InsightsOverview)
async def get_overview(engine: InsightEngineDep) -> InsightsOverview:
    """Red anomalies, opportunities and 30-day trends. Never fails on data errors."""
    return await engine.build_overview()
