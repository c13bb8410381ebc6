"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from workflow_orchestrator import __version__
from workflow_orchestrator.api.dependencies import (
    get_data_index_service,
    get_runtime_client,
    get_scheduler,
    get_workflow_cache,
)
from workflow_orchestrator.api.error_handlers import register_exception_handlers
from workflow_orchestrator.api.routers import get_api_router
from workflow_orchestrator.core.config import AppSettings, get_settings
from workflow_orchestrator.core.logging import configure_logging
from workflow_orchestrator.events_engine.publisher import get_cloud_event_publisher

LOGGER = logging.getLogger("workflow_orchestrator.main")


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: D401
    """Start the availability poll on startup and release clients on shutdown."""

    settings = get_settings()
    scheduler = get_scheduler()
    get_workflow_cache().schedule(
        scheduler,
        frequency_seconds=settings.workflow_cache_frequency_seconds,
        timeout_minutes=settings.workflow_cache_timeout_minutes,
    )

    yield

    await scheduler.shutdown()
    await get_runtime_client().aclose()
    await get_data_index_service().aclose()
    await get_cloud_event_publisher().close()
    LOGGER.info("workflow_orchestrator_stopped")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Application factory."""

    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Workflow Orchestrator",
        version=__version__,
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.include_router(get_api_router())
    return app


app = create_app()
