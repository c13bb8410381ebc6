"""Pydantic schemas for workflow records and API payloads."""

from workflow_orchestrator.schemas.api import (
    ExecuteWorkflowRequest,
    ExecuteWorkflowResponse,
    InstancesSearchRequest,
    PaginationInfo,
    SearchRequest,
)
from workflow_orchestrator.schemas.filter import FieldFilter, Filter, LogicalFilter, NestedFilter, parse_filter
from workflow_orchestrator.schemas.pagination import Pagination, SortOrder
from workflow_orchestrator.schemas.workflow import (
    ProcessInstance,
    ProcessInstanceState,
    WorkflowInfo,
    WorkflowOverview,
)

__all__ = [
    "ExecuteWorkflowRequest",
    "ExecuteWorkflowResponse",
    "FieldFilter",
    "Filter",
    "InstancesSearchRequest",
    "LogicalFilter",
    "NestedFilter",
    "Pagination",
    "PaginationInfo",
    "ProcessInstance",
    "ProcessInstanceState",
    "SearchRequest",
    "SortOrder",
    "WorkflowInfo",
    "WorkflowOverview",
    "parse_filter",
]
