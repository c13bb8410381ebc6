"""Workflow API request and response payloads."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from workflow_orchestrator.schemas.filter import Filter
from workflow_orchestrator.schemas.pagination import Pagination, SortOrder
from workflow_orchestrator.schemas.workflow import AuthToken, CamelModel, ProcessInstance, WorkflowOverview


class PaginationInfo(CamelModel):
    page_size: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    total_count: Optional[int] = None
    order_by: Optional[str] = None
    order_direction: Optional[SortOrder] = None

    def to_pagination(self) -> Pagination:
        return Pagination(
            offset=self.offset,
            limit=self.page_size,
            order=self.order_direction,
            sort_field=self.order_by,
        )


class SearchRequest(CamelModel):
    pagination_info: Optional[PaginationInfo] = None
    filters: Optional[Filter] = None


class InstancesSearchRequest(SearchRequest):
    workflow_ids: Optional[List[str]] = None


class WorkflowOverviewListResult(CamelModel):
    overviews: List[WorkflowOverview] = Field(default_factory=list)
    pagination_info: PaginationInfo


class ExecuteWorkflowRequest(CamelModel):
    input_data: Dict[str, Any] = Field(default_factory=dict)
    auth_tokens: Optional[List[AuthToken]] = None


class ExecuteWorkflowResponse(CamelModel):
    id: str
    workflow_id: str


class ProcessInstanceListResult(CamelModel):
    items: List[ProcessInstance] = Field(default_factory=list)
    pagination_info: PaginationInfo


class AssessedProcessInstance(CamelModel):
    instance: ProcessInstance
    assessed_by: Optional[ProcessInstance] = None


class WorkflowRunStatus(CamelModel):
    key: str
    value: str


class WorkflowSource(CamelModel):
    workflow_id: str
    source: str


class MessageResponse(CamelModel):
    message: str
