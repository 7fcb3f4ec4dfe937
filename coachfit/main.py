"""
FastAPI application entry point for the CoachFit attention engine.

Configures logging and CORS, registers the admin routers, and owns the
lifecycle of the asyncpg pool and the background writer.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coachfit import __version__
from coachfit.api import api_router
from coachfit.core.config import get_settings
from coachfit.core.database import close_db, init_db
from coachfit.services.background import get_background_writer


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown.

    On startup:
        - Initialize the database connection pool
    On shutdown:
        - Wait for pending cache writes
        - Close the database connection pool
    """
    logger.info("CoachFit attention engine starting")
    try:
        await init_db()
        logger.info("Database connection pool initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        # Pool is created lazily on first request if startup failed

    yield

    logger.info("CoachFit attention engine shutting down")
    await get_background_writer().drain()
    try:
        await close_db()
        logger.info("Database connection pool closed")
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title="CoachFit Attention Engine",
    version=__version__,
    description=(
        "Admin attention queue and insight engine for CoachFit. "
        "Scores clients, coaches and cohorts and surfaces admin insights."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring and load balancer probes."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """API name, version and docs location."""
    return {
        "name": "CoachFit Attention Engine",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "coachfit.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
