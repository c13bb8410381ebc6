"""Workflow definition and process instance records.

Field names follow Python conventions; the camelCase names used by the data
index and the workflow runtime are accepted and emitted through aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ProcessInstanceState(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"
    ERROR = "ERROR"
    SUSPENDED = "SUSPENDED"
    PENDING = "PENDING"


class WorkflowFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"


class WorkflowInfo(CamelModel):
    """A workflow definition as registered in the data index."""

    id: str
    name: Optional[str] = None
    version: Optional[str] = None
    type: Optional[str] = None
    source: Optional[str] = None
    service_url: Optional[str] = None
    endpoint: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_deleted(self) -> bool:
        # The operator flags definitions whose custom resource was removed.
        return bool(self.metadata) and self.metadata.get("status") == "unavailable"


class WorkflowDefinition(CamelModel):
    """Parsed workflow source document."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    spec_version: Optional[str] = None
    annotations: List[str] = Field(default_factory=list)

    @field_validator("version", "spec_version", mode="before")
    @classmethod
    def stringify_version(cls, value: Any) -> Any:
        # YAML sources often write versions as bare numbers.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class NodeInstance(CamelModel):
    id: str
    node_id: Optional[str] = None
    definition_id: Optional[str] = None
    type: Optional[str] = None
    name: Optional[str] = None
    enter: Optional[str] = None
    exit: Optional[str] = None
    error_message: Optional[str] = None


class ProcessInstanceError(CamelModel):
    node_definition_id: Optional[str] = None
    node_instance_id: Optional[str] = None
    message: Optional[str] = None


class ParentProcessInstance(CamelModel):
    id: str
    process_name: Optional[str] = None
    business_key: Optional[str] = None


class ProcessInstance(CamelModel):
    id: str
    process_id: str
    process_name: Optional[str] = None
    state: Optional[ProcessInstanceState] = None
    start: Optional[str] = None
    end: Optional[str] = None
    business_key: Optional[str] = None
    service_url: Optional[str] = None
    nodes: List[NodeInstance] = Field(default_factory=list)
    variables: Optional[Any] = None
    execution_summary: Optional[List[str]] = None
    parent_process_instance: Optional[ParentProcessInstance] = None
    error: Optional[ProcessInstanceError] = None
    description: Optional[str] = None


class WorkflowOverview(CamelModel):
    workflow_id: str
    name: Optional[str] = None
    format: WorkflowFormat = WorkflowFormat.YAML
    last_run_id: Optional[str] = None
    last_triggered_ms: int = 0
    last_run_status: Optional[ProcessInstanceState] = None
    description: Optional[str] = None
    is_available: Optional[bool] = None


class WorkflowExecutionResponse(CamelModel):
    id: str


class AuthToken(CamelModel):
    provider: str
    token: str
