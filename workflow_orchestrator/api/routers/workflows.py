"""Workflow HTTP endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query

from workflow_orchestrator.api.dependencies import get_workflow_api_service
from workflow_orchestrator.schemas.api import (
    AssessedProcessInstance,
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    InstancesSearchRequest,
    MessageResponse,
    ProcessInstanceListResult,
    SearchRequest,
    WorkflowOverviewListResult,
    WorkflowRunStatus,
    WorkflowSource,
)
from workflow_orchestrator.schemas.pagination import Pagination
from workflow_orchestrator.schemas.workflow import WorkflowInfo, WorkflowOverview
from workflow_orchestrator.services.workflow_api import WorkflowApiService, WorkflowNotFoundError

router = APIRouter()


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


@router.get(
    "/overview",
    response_model=WorkflowOverviewListResult,
)
async def list_workflow_overviews(
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> WorkflowOverviewListResult:
    return await service.get_workflows_overview(Pagination())


@router.post(
    "/overview",
    response_model=WorkflowOverviewListResult,
)
async def search_workflow_overviews(
    payload: SearchRequest,
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> WorkflowOverviewListResult:
    pagination = payload.pagination_info.to_pagination() if payload.pagination_info else Pagination()
    return await service.get_workflows_overview(pagination, payload.filters)


@router.get(
    "/ids",
    response_model=List[str],
)
def list_workflow_ids(
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> List[str]:
    return service.get_workflow_ids()


@router.get(
    "/instances/statuses",
    response_model=List[WorkflowRunStatus],
)
def list_workflow_statuses(
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> List[WorkflowRunStatus]:
    return service.get_workflow_statuses()


@router.post(
    "/instances",
    response_model=ProcessInstanceListResult,
)
async def search_instances(
    payload: InstancesSearchRequest,
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> ProcessInstanceListResult:
    pagination = payload.pagination_info.to_pagination() if payload.pagination_info else None
    return await service.get_instances(pagination, payload.filters, payload.workflow_ids)


@router.get(
    "/instances/{instance_id}",
    response_model=AssessedProcessInstance,
)
async def get_instance(
    instance_id: str,
    include_assessment: bool = Query(default=False, alias="includeAssessment"),
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> AssessedProcessInstance:
    return await service.get_instance_by_id(instance_id, include_assessment)


@router.delete(
    "/instances/{instance_id}/abort",
    response_model=MessageResponse,
)
async def abort_instance(
    instance_id: str,
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> MessageResponse:
    return MessageResponse(message=await service.abort_workflow(instance_id))


@router.get(
    "/{workflow_id}/overview",
    response_model=WorkflowOverview,
)
async def get_workflow_overview(
    workflow_id: str,
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> WorkflowOverview:
    return await service.get_workflow_overview_by_id(workflow_id)


@router.get(
    "/{workflow_id}/source",
    response_model=WorkflowSource,
)
async def get_workflow_source(
    workflow_id: str,
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> WorkflowSource:
    source = await service.get_workflow_source_by_id(workflow_id)
    return WorkflowSource(workflow_id=workflow_id, source=source)


@router.get(
    "/{workflow_id}/inputSchema",
    response_model=WorkflowInfo,
)
async def get_workflow_input_schema(
    workflow_id: str,
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> WorkflowInfo:
    info = await service.get_workflow_input_schema_by_id(workflow_id)
    if info is None:
        raise WorkflowNotFoundError(f"Couldn't fetch workflow input schema for {workflow_id}")
    return info


@router.post(
    "/{workflow_id}/execute",
    response_model=ExecuteWorkflowResponse,
)
async def execute_workflow(
    workflow_id: str,
    payload: ExecuteWorkflowRequest,
    business_key: Optional[str] = Query(default=None, alias="businessKey"),
    authorization: Optional[str] = Header(default=None),
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> ExecuteWorkflowResponse:
    return await service.execute_workflow(
        payload,
        workflow_id,
        business_key=business_key,
        backstage_token=_bearer_token(authorization),
    )


@router.post(
    "/{workflow_id}/{instance_id}/retrigger",
    response_model=MessageResponse,
)
async def retrigger_instance(
    workflow_id: str,
    instance_id: str,
    authorization: Optional[str] = Header(default=None),
    service: WorkflowApiService = Depends(get_workflow_api_service),
) -> MessageResponse:
    await service.retrigger_instance(workflow_id, instance_id, backstage_token=_bearer_token(authorization))
    return MessageResponse(message=f"Workflow instance {instance_id} retriggered")
