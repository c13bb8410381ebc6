"""Workflow API operations built on the orchestration facade."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from workflow_orchestrator.helpers.filter_builder import AnyFilter
from workflow_orchestrator.helpers.retry import retry_async_function
from workflow_orchestrator.schemas.api import (
    AssessedProcessInstance,
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    PaginationInfo,
    ProcessInstanceListResult,
    WorkflowOverviewListResult,
    WorkflowRunStatus,
)
from workflow_orchestrator.schemas.pagination import Pagination
from workflow_orchestrator.schemas.workflow import ProcessInstanceState, WorkflowInfo, WorkflowOverview
from workflow_orchestrator.services.orchestrator import OrchestratorService

WORKFLOW_STATUSES = [
    ProcessInstanceState.ACTIVE,
    ProcessInstanceState.ERROR,
    ProcessInstanceState.COMPLETED,
    ProcessInstanceState.ABORTED,
    ProcessInstanceState.SUSPENDED,
    ProcessInstanceState.PENDING,
]


class WorkflowApiError(RuntimeError):
    """Raised when a workflow API operation cannot be completed."""


class WorkflowNotFoundError(LookupError):
    """Raised when a requested workflow or instance does not exist."""


class WorkflowApiService:
    """Maps facade results to API payloads."""

    def __init__(
        self,
        orchestrator: OrchestratorService,
        *,
        fetch_instance_max_attempts: int = 10,
        fetch_instance_retry_delay_ms: int = 1000,
    ) -> None:
        self._orchestrator = orchestrator
        self._fetch_instance_max_attempts = fetch_instance_max_attempts
        self._fetch_instance_retry_delay_ms = fetch_instance_retry_delay_ms
        self._logger = logging.getLogger("workflow_orchestrator.services.workflow_api")

    async def get_workflows_overview(
        self,
        pagination: Pagination,
        filter: Optional[AnyFilter] = None,
    ) -> WorkflowOverviewListResult:
        overviews = await self._orchestrator.fetch_workflow_overviews(pagination=pagination, filter=filter)
        return WorkflowOverviewListResult(
            overviews=overviews,
            pagination_info=PaginationInfo(
                page_size=pagination.limit,
                offset=pagination.offset,
                total_count=len(overviews),
            ),
        )

    def get_workflow_ids(self) -> List[str]:
        return self._orchestrator.get_workflow_ids()

    async def get_workflow_overview_by_id(self, workflow_id: str) -> WorkflowOverview:
        overview = await self._orchestrator.fetch_workflow_overview(workflow_id)
        if overview is None:
            raise WorkflowNotFoundError(f"Couldn't fetch workflow overview for {workflow_id}")
        return overview

    async def get_workflow_source_by_id(self, workflow_id: str) -> str:
        source = await self._orchestrator.fetch_workflow_source(workflow_id, cache_handler="throw")
        if not source:
            raise WorkflowNotFoundError(f"Couldn't fetch workflow source for {workflow_id}")
        return source

    async def get_instances(
        self,
        pagination: Optional[Pagination] = None,
        filter: Optional[AnyFilter] = None,
        workflow_ids: Optional[Sequence[str]] = None,
    ) -> ProcessInstanceListResult:
        instances = await self._orchestrator.fetch_instances(
            pagination=pagination,
            filter=filter,
            workflow_ids=workflow_ids,
        )
        return ProcessInstanceListResult(
            items=instances,
            pagination_info=PaginationInfo(
                page_size=pagination.limit if pagination else None,
                offset=pagination.offset if pagination else None,
                total_count=len(instances),
            ),
        )

    async def get_instance_by_id(
        self,
        instance_id: str,
        include_assessment: bool = False,
    ) -> AssessedProcessInstance:
        instance = await self._orchestrator.fetch_instance(instance_id)
        if instance is None:
            raise WorkflowNotFoundError(f"Couldn't fetch process instance {instance_id}")

        assessed_by = None
        # An assessment run stores the assessing instance id as its business key.
        if include_assessment and instance.business_key:
            assessed_by = await self._orchestrator.fetch_instance(instance.business_key)

        return AssessedProcessInstance(instance=instance, assessed_by=assessed_by)

    async def _require_service_url(self, workflow_id: str) -> str:
        definition = await self._orchestrator.fetch_workflow_info(workflow_id, cache_handler="throw")
        if definition is None:
            raise WorkflowNotFoundError(f"Couldn't fetch workflow definition for {workflow_id}")
        if not definition.service_url:
            raise WorkflowApiError(f"ServiceURL is not defined for workflow {workflow_id}")
        return definition.service_url

    async def execute_workflow(
        self,
        request: ExecuteWorkflowRequest,
        workflow_id: str,
        business_key: Optional[str] = None,
        backstage_token: Optional[str] = None,
    ) -> ExecuteWorkflowResponse:
        service_url = await self._require_service_url(workflow_id)
        execution = await self._orchestrator.execute_workflow(
            definition_id=workflow_id,
            service_url=service_url,
            input_data=request.input_data,
            auth_tokens=request.auth_tokens,
            backstage_token=backstage_token,
            business_key=business_key,
            cache_handler="throw",
        )
        if execution is None:
            raise WorkflowApiError(f"Couldn't execute workflow {workflow_id}")

        # The data index indexes new instances asynchronously.
        await retry_async_function(
            lambda: self._orchestrator.fetch_instance(execution.id),
            max_attempts=self._fetch_instance_max_attempts,
            delay_ms=self._fetch_instance_retry_delay_ms,
        )
        self._logger.info("workflow_executed", extra={"workflow_id": workflow_id, "instance_id": execution.id})
        return ExecuteWorkflowResponse(id=execution.id, workflow_id=workflow_id)

    async def retrigger_instance(
        self,
        workflow_id: str,
        instance_id: str,
        backstage_token: Optional[str] = None,
    ) -> None:
        service_url = await self._require_service_url(workflow_id)
        retriggered = await self._orchestrator.retrigger_workflow(
            definition_id=workflow_id,
            instance_id=instance_id,
            service_url=service_url,
            backstage_token=backstage_token,
            cache_handler="throw",
        )
        if not retriggered:
            raise WorkflowApiError(f"Couldn't retrigger instance {instance_id} of workflow {workflow_id}")

    async def abort_workflow(self, instance_id: str) -> str:
        instance = await self._orchestrator.fetch_instance(instance_id)
        if instance is None:
            raise WorkflowNotFoundError(f"Couldn't fetch process instance {instance_id}")

        service_url = instance.service_url or await self._require_service_url(instance.process_id)
        await self._orchestrator.abort_workflow_instance(
            definition_id=instance.process_id,
            instance_id=instance_id,
            service_url=service_url,
            cache_handler="throw",
        )
        return f"Workflow instance {instance_id} successfully aborted"

    def get_workflow_statuses(self) -> List[WorkflowRunStatus]:
        return [WorkflowRunStatus(key=status.value.capitalize(), value=status.value) for status in WORKFLOW_STATUSES]

    async def get_workflow_input_schema_by_id(self, workflow_id: str) -> Optional[WorkflowInfo]:
        service_url = await self._require_service_url(workflow_id)
        return await self._orchestrator.fetch_workflow_info_on_service(
            workflow_id,
            service_url,
            cache_handler="throw",
        )
