"""
FastAPI application entry point.

Registers all API routers and starts the periodic member feed refresh.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
import logging

from dashboard.settings import (
    MODE,
    REFRESH_ENABLED,
    REFRESH_INTERVAL_SECONDS,
    setup_logging
)
from dashboard.api.dependencies import get_membership_service

# Import all routers
from dashboard.api.routers.members_router import router as members_router
from dashboard.api.routers.annotations_router import router as annotations_router
from dashboard.api.routers.analytics_router import router as analytics_router

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


async def periodic_refresh(interval_seconds: int):
    """Refetch the member feed every interval_seconds until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            records = await asyncio.to_thread(get_membership_service().refresh)
            logger.info(f"[Refresh] Periodic refresh loaded {len(records)} members")
        except Exception as e:
            logger.error(f"[Refresh] Periodic refresh failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = None
    if REFRESH_ENABLED:
        task = asyncio.create_task(periodic_refresh(REFRESH_INTERVAL_SECONDS))
        logger.info(f"[Startup] Periodic refresh every {REFRESH_INTERVAL_SECONDS}s")
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("[Shutdown] Periodic refresh stopped")


# Initialize FastAPI application
app = FastAPI(
    title="Membership Dashboard API",
    description="API for member expirations, annotations, filters and churn analytics",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/")
def default():
    return {"Success": "Membership dashboard default"}


# Register routers
app.include_router(members_router, tags=["Members"])
app.include_router(annotations_router, tags=["Annotations"])
app.include_router(analytics_router, tags=["Analytics"])

logger.info("[Startup] All routers registered successfully")
logger.info("[Startup] Application started in %s mode", MODE.upper())
