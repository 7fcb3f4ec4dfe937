"""
Refresh jobs for the CoachFit attention engine.

The engine has no scheduler of its own. These entry points are what an
externally owned cron (or a one-off shell invocation) calls:

- run_attention_refresh(): forced recompute of the attention queue, then a
  chunked rescore of every client; the cache write-back is drained before
  returning so the process can exit safely
- run_insight_refresh(): anomaly detection + insight persistence

Both return a result dict and never raise; failures are logged and reported
under 'error'.

Usage:
    python -m coachfit.jobs.refresh_attention
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from coachfit.core.config import Settings, get_settings
from coachfit.core.database import close_db, init_db
from coachfit.services.attention_queue import AttentionQueueService
from coachfit.services.background import BackgroundWriter
from coachfit.services.insights import AdminInsightEngine
from coachfit.services.store import PostgresStore, StoreGateway


logger = logging.getLogger(__name__)


async def run_attention_refresh(
    store: Optional[StoreGateway] = None,
    settings: Optional[Settings] = None,
    batch_size: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Recompute the attention queue and rescore every client.

    Args:
        store: Store gateway. Defaults to PostgresStore over the shared pool.
        settings: Engine settings. Defaults to get_settings().
        batch_size: Client chunk size for the rescore.

    Returns:
        Dict with success flag, queue summary counts and refresh counts, or
        success=False with an error message.
    """
    store = store or PostgresStore()
    writer = BackgroundWriter()
    service = AttentionQueueService(store, settings=settings, writer=writer)

    try:
        queue = await service.compute_queue(force_refresh=True)
        # The queue write covers coaches and cohorts; the chunked pass below
        # replaces client rows again, dropping clients that scored zero
        await writer.drain()
        refresh = await service.recalculate_client_attention(batch_size=batch_size)
    except Exception as e:
        logger.error(f"Attention refresh failed: {e}", exc_info=True)
        await writer.drain()
        return {'success': False, 'error': str(e)}

    result = {
        'success': writer.failures == 0,
        'summary': queue.summary.model_dump(),
        'updated': refresh.updated,
        'scored': refresh.scored,
        'batchSize': refresh.batchSize,
    }
    if writer.failures:
        result['error'] = 'Attention cache write failed; see logs'
    logger.info(f"Attention refresh finished: {result}")
    return result


async def run_insight_refresh(
    store: Optional[StoreGateway] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Detect anomalies and replace the stored insights.

    Returns:
        Dict with success flag and the number of insights stored, or
        success=False with an error message.
    """
    engine = AdminInsightEngine(store or PostgresStore(), settings=settings)

    try:
        insights = await engine.refresh_insights()
    except Exception as e:
        logger.error(f"Insight refresh failed: {e}", exc_info=True)
        return {'success': False, 'error': str(e)}

    logger.info(f"Insight refresh finished: {len(insights)} insights stored")
    return {'success': True, 'insights': len(insights)}


async def main() -> Dict[str, Any]:
    """Run both refreshes once against the configured database."""
    await init_db()
    try:
        attention = await run_attention_refresh()
        insights = await run_insight_refresh()
    finally:
        await close_db()
    return {'attention': attention, 'insights': insights}


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    outcome = asyncio.run(main())
    ok = outcome['attention']['success'] and outcome['insights']['success']
    raise SystemExit(0 if ok else 1)
