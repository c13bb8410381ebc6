"""Router registrations."""

from fastapi import APIRouter

from workflow_orchestrator.api.routers import health, workflows


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router, tags=["health"])
    router.include_router(workflows.router, prefix="/api/v2/workflows", tags=["workflows"])
    return router
