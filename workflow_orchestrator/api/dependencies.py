"""Dependency injection helpers for FastAPI routes."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from workflow_orchestrator.core.config import get_settings
from workflow_orchestrator.services.data_index import DataIndexService
from workflow_orchestrator.services.orchestrator import OrchestratorService
from workflow_orchestrator.services.runtime_client import SonataFlowService
from workflow_orchestrator.services.scheduler import AsyncioScheduler
from workflow_orchestrator.services.workflow_api import WorkflowApiService
from workflow_orchestrator.services.workflow_cache import WorkflowCacheService


@lru_cache
def get_data_index_service() -> DataIndexService:
    settings = get_settings()
    return DataIndexService(settings.data_index_url, timeout=settings.runtime_request_timeout)


@lru_cache
def get_runtime_client() -> SonataFlowService:
    return SonataFlowService(get_data_index_service(), timeout=get_settings().runtime_request_timeout)


@lru_cache
def get_workflow_cache() -> WorkflowCacheService:
    return WorkflowCacheService(get_data_index_service(), get_runtime_client())


@lru_cache
def get_scheduler() -> AsyncioScheduler:
    return AsyncioScheduler()


def get_orchestrator_service() -> OrchestratorService:
    return OrchestratorService(get_data_index_service(), get_runtime_client(), get_workflow_cache())


def get_workflow_api_service(
    orchestrator: OrchestratorService = Depends(get_orchestrator_service),
) -> WorkflowApiService:
    settings = get_settings()
    return WorkflowApiService(
        orchestrator,
        fetch_instance_max_attempts=settings.fetch_instance_max_attempts,
        fetch_instance_retry_delay_ms=settings.fetch_instance_retry_delay_ms,
    )


def reset_dependencies() -> None:
    """Drop cached service instances (primarily for tests)."""

    for factory in (get_data_index_service, get_runtime_client, get_workflow_cache, get_scheduler):
        factory.cache_clear()
