"""Exception handlers for the FastAPI app."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from workflow_orchestrator.events_engine.publisher import CloudEventPublishError
from workflow_orchestrator.helpers.filter_builder import FilterValidationError
from workflow_orchestrator.helpers.retry import RetryExhaustedError
from workflow_orchestrator.helpers.workflow_source import WorkflowSourceError
from workflow_orchestrator.services.data_index import DataIndexError
from workflow_orchestrator.services.runtime_client import WorkflowServiceError
from workflow_orchestrator.services.workflow_api import WorkflowApiError, WorkflowNotFoundError
from workflow_orchestrator.services.workflow_cache import WorkflowUnavailableError

LOGGER = logging.getLogger("workflow_orchestrator.api.errors")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FilterValidationError)
    async def filter_validation_handler(request: Request, exc: FilterValidationError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(WorkflowNotFoundError)
    async def not_found_handler(request: Request, exc: WorkflowNotFoundError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(WorkflowUnavailableError)
    async def unavailable_handler(request: Request, exc: WorkflowUnavailableError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(DataIndexError)
    async def data_index_handler(request: Request, exc: DataIndexError) -> JSONResponse:  # noqa: WPS430
        LOGGER.error("data_index_request_failed", extra={"path": request.url.path, "error": str(exc)})
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(WorkflowServiceError)
    async def workflow_service_handler(request: Request, exc: WorkflowServiceError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(WorkflowSourceError)
    async def workflow_source_handler(request: Request, exc: WorkflowSourceError) -> JSONResponse:  # noqa: WPS430
        LOGGER.error("workflow_source_unparsable", extra={"path": request.url.path, "error": str(exc)})
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(CloudEventPublishError)
    async def cloud_event_handler(request: Request, exc: CloudEventPublishError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(RetryExhaustedError)
    async def retry_exhausted_handler(request: Request, exc: RetryExhaustedError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=504, content={"detail": str(exc)})

    @app.exception_handler(WorkflowApiError)
    async def workflow_api_handler(request: Request, exc: WorkflowApiError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=500, content={"detail": str(exc)})
