"""Health check endpoints."""

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends

from workflow_orchestrator.api.dependencies import get_workflow_cache
from workflow_orchestrator.services.workflow_cache import WorkflowCacheService

router = APIRouter()


@router.get("/healthz", summary="Liveness probe")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Workflow availability snapshot")
def readiness_check(
    cache: WorkflowCacheService = Depends(get_workflow_cache),
) -> Dict[str, List[str]]:
    return {
        "available": cache.definition_ids,
        "unavailable": cache.unavailable_definition_ids,
    }
