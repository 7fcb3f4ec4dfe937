"""
FastAPI router module for the admin attention queue.

Endpoints:
- GET  /admin/attention                          Queue grouped by priority + summary
- POST /admin/attention/refresh                  Chunked rescore of every client
- GET  /admin/attention/{entity_type}/{entity_id}  Fresh score for one entity

Handlers only call the engine and shape responses. Admin authentication is
enforced upstream by the web application.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from coachfit.core.dependencies import AttentionServiceDep
from coachfit.models import (
    AttentionQueue,
    AttentionScore,
    EntityType,
    RefreshAttentionRequest,
    RefreshAttentionResponse,
)
from coachfit.services.batch_loader import BatchLoadError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/attention", tags=["attention"])


@router.get("", response_model=AttentionQueue)
async def get_attention_queue(
    service: AttentionServiceDep,
    refresh: Optional[str] = Query(None, description="Pass 1 to bypass cached scores"),
) -> AttentionQueue:
    """
    Get the attention queue.

    Served from cached scores when any non-expired row exists, unless
    refresh=1 forces a recompute.

    Raises:
        HTTPException 500: If the batch load or scoring fails
    """
    try:
        return await service.compute_queue(force_refresh=refresh == "1")
    except BatchLoadError as e:
        logger.error(f"Error loading attention data: {e}")
        raise HTTPException(status_code=500, detail="Failed to load attention data")
    except Exception as e:
        logger.error(f"Error fetching attention queue: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/refresh", response_model=RefreshAttentionResponse)
async def refresh_attention_scores(
    service: AttentionServiceDep,
    request: Optional[RefreshAttentionRequest] = None,
) -> RefreshAttentionResponse:
    """
    Rescore every client and persist the results chunk by chunk.

    Body is optional; batchSize falls back to the configured default.

    Raises:
        HTTPException 400: If batchSize is invalid
        HTTPException 500: If the batch load or persistence fails
    """
    batch_size = request.batchSize if request else None
    try:
        result = await service.recalculate_client_attention(batch_size=batch_size)
        logger.info(f"Attention refresh: {result.updated} clients, batch size {result.batchSize}")
        return result
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchLoadError as e:
        logger.error(f"Error loading attention data: {e}")
        raise HTTPException(status_code=500, detail="Failed to load attention data")
    except Exception as e:
        logger.error(f"Error refreshing attention scores: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{entity_type}/{entity_id}", response_model=AttentionScore)
async def get_entity_score(
    entity_type: EntityType,
    entity_id: str,
    service: AttentionServiceDep,
) -> AttentionScore:
    """
    Score one user, coach or cohort from fresh data.

    Unknown ids return a zero score with green priority.

    Raises:
        HTTPException 400: For entity_type 'system'
        HTTPException 500: If the batch load fails
    """
    try:
        return await service.score_entity(entity_type, entity_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BatchLoadError as e:
        logger.error(f"Error loading attention data: {e}")
        raise HTTPException(status_code=500, detail="Failed to load attention data")
    except Exception as e:
        logger.error(f"Error scoring {entity_type.value} {entity_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
