"""
FastAPI dependency injection module for the CoachFit attention engine.

Route handlers never construct services themselves. They declare one of the
type aliases below and FastAPI resolves the chain:

    Settings -> PostgresStore -> AttentionQueueService / AdminInsightEngine

Key Dependencies Provided:
- get_db_session: Async generator yielding a connection from the pool
- get_settings_dependency: Returns the cached Settings singleton
- get_store: Store gateway over the shared asyncpg pool
- get_attention_service / get_insight_engine: Engine entry points

Tests swap the whole engine for an in-memory store with:

    app.dependency_overrides[get_store] = lambda: fake_store

Usage Example:
    @router.get("/admin/attention")
    async def get_attention_queue(service: AttentionServiceDep) -> AttentionQueue:
        return await service.compute_queue()
"""

from typing import Annotated, AsyncGenerator

from asyncpg import Connection
from fastapi import Depends

from coachfit.core.config import Settings, get_settings
from coachfit.core.database import get_db_pool
from coachfit.services.attention_queue import AttentionQueueService
from coachfit.services.background import BackgroundWriter, get_background_writer
from coachfit.services.insights import AdminInsightEngine
from coachfit.services.store import PostgresStore, StoreGateway


# =============================================================================
# Database Session Dependency
# =============================================================================

async def get_db_session() -> AsyncGenerator[Connection, None]:
    """
    Yield an async database connection from the pool.

    The connection is released back to the pool when the endpoint completes,
    whether or not it raised.

    Yields:
        asyncpg.Connection: An active database connection from the pool.
    """
    pool = await get_db_pool()
    async with pool.acquire() as connection:
        yield connection


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can use
    app.dependency_overrides[get_settings_dependency].
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

DBSessionDep = Annotated[Connection, Depends(get_db_session)]


# =============================================================================
# Engine Dependencies
# =============================================================================

def get_store() -> StoreGateway:
    """Store gateway backed by the module-level asyncpg pool."""
    return PostgresStore()


StoreDep = Annotated[StoreGateway, Depends(get_store)]


def get_writer() -> BackgroundWriter:
    return get_background_writer()


WriterDep = Annotated[BackgroundWriter, Depends(get_writer)]


def get_attention_service(
    store: StoreDep,
    settings: SettingsDep,
    writer: WriterDep,
) -> AttentionQueueService:
    """Attention queue orchestrator bound to the request's store."""
    return AttentionQueueService(store, settings=settings, writer=writer)


AttentionServiceDep = Annotated[AttentionQueueService, Depends(get_attention_service)]


def get_insight_engine(store: StoreDep, settings: SettingsDep) -> AdminInsightEngine:
    """Insight detector bound to the request's store."""
    return AdminInsightEngine(store, settings=settings)


InsightEngineDep = Annotated[AdminInsightEngine, Depends(get_insight_engine)]
