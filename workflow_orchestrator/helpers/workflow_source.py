"""Parsing helpers for workflow sources and instance variables."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import yaml

from workflow_orchestrator.schemas.workflow import WorkflowDefinition, WorkflowFormat


class WorkflowSourceError(ValueError):
    """Raised when a workflow source cannot be parsed into a definition."""


def extract_workflow_format(source: str) -> WorkflowFormat:
    return WorkflowFormat.JSON if source.strip().startswith("{") else WorkflowFormat.YAML


def from_workflow_source(source: str) -> WorkflowDefinition:
    """Parse a JSON or YAML workflow document."""

    try:
        if extract_workflow_format(source) == WorkflowFormat.JSON:
            document = json.loads(source)
        else:
            document = yaml.safe_load(source)
    except (ValueError, yaml.YAMLError) as exc:
        raise WorkflowSourceError(f"Unable to parse workflow source: {exc}") from exc

    if not isinstance(document, dict) or not document.get("id"):
        raise WorkflowSourceError("Workflow source does not declare an id")
    return WorkflowDefinition.model_validate(document)


def parse_workflow_variables(variables: Any) -> Optional[Dict[str, Any]]:
    # The data index returns variables either as a JSON object or as its string form.
    if variables is None:
        return None
    if isinstance(variables, str):
        parsed = json.loads(variables)
        return parsed if isinstance(parsed, dict) else {"value": parsed}
    if isinstance(variables, dict):
        return variables
    return {"value": variables}
