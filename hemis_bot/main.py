"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

from hemis_bot.api.errors import setup_exception_handlers
from hemis_bot.api.middleware import RequestContextMiddleware
from hemis_bot.api.slack_commands import get_services, wait_for_pending_commands
from hemis_bot.api.slack_commands import router as slack_router
from hemis_bot.core.config import settings
from hemis_bot.core.logging import logger, setup_logging
from hemis_bot.services.container import build_services
from hemis_bot.services.scheduler import (
    create_scheduler,
    shutdown_scheduler,
    start_scheduler,
)
from hemis_bot.utils.time import from_epoch_ms

# Configure logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    logger.info("application_starting")
    services = build_services(settings)
    app.state.services = services

    # Warm the cache BEFORE starting the scheduler
    try:
        await services.cache.refresh(force=False)
    except Exception:
        logger.exception("initial_cache_refresh_failed")

    scheduler = create_scheduler(services)
    app.state.scheduler = scheduler
    start_scheduler(scheduler)

    logger.info("application_ready")

    yield

    # Shutdown
    logger.info("application_shutting_down")
    shutdown_scheduler(scheduler)
    await wait_for_pending_commands()
    app.state.services = None
    logger.info("application_stopped")


app = FastAPI(
    title="HEMIS Directory Bot",
    description="Employee directory and birthday notifications from HEMIS for Slack",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
setup_exception_handlers(app)

app.include_router(slack_router)


@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """
    Health check endpoint.

    Reports cache size and age, notification state and scheduler status.
    Reads local files only; never calls HEMIS.

    Returns:
        dict: Health status with cache, notification and scheduler information

    Raises:
        HTTPException: 503 if services are not initialized
    """
    services = get_services(request)
    snapshot = services.cache.load()
    state = services.state.load()
    scheduler = getattr(request.app.state, "scheduler", None)

    return {
        "status": "healthy",
        "scheduler": "running" if scheduler is not None and scheduler.running else "stopped",
        "cache": {
            "employees": len(snapshot["items"]),
            "counts": snapshot["counts"],
            "updated_at": (
                from_epoch_ms(snapshot["updatedAt"], services.settings.tz).isoformat()
                if snapshot["updatedAt"]
                else None
            ),
            "fresh": services.cache.is_fresh(snapshot),
        },
        "notifications": {
            "target_chat_configured": bool(state["targetChatId"]),
            "last_sent_date": state["lastSentDate"] or None,
        },
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "HEMIS Directory Bot"}
