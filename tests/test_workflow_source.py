from __future__ import annotations

import pytest

from workflow_orchestrator.helpers.workflow_source import (
    WorkflowSourceError,
    extract_workflow_format,
    from_workflow_source,
    parse_workflow_variables,
)
from workflow_orchestrator.schemas.workflow import WorkflowFormat

YAML_SOURCE = """
id: greeting
name: Greeting
version: 1.0
specVersion: "0.8"
description: Says hello
annotations:
  - workflow-type/infrastructure
start: greet
"""


def test_json_source() -> None:
    source = '{"id": "wf1", "name": "One", "description": "First"}'

    definition = from_workflow_source(source)

    assert extract_workflow_format(source) is WorkflowFormat.JSON
    assert definition.id == "wf1"
    assert definition.description == "First"


def test_yaml_source_keeps_extra_fields() -> None:
    definition = from_workflow_source(YAML_SOURCE)

    assert extract_workflow_format(YAML_SOURCE) is WorkflowFormat.YAML
    assert definition.id == "greeting"
    assert definition.version == "1.0"
    assert definition.spec_version == "0.8"
    assert definition.annotations == ["workflow-type/infrastructure"]
    assert definition.model_extra["start"] == "greet"


@pytest.mark.parametrize("source", ["{not json", "name: no id", "- a\n- b"])
def test_invalid_sources_are_rejected(source: str) -> None:
    with pytest.raises(WorkflowSourceError):
        from_workflow_source(source)


def test_variables_accept_json_strings_and_objects() -> None:
    assert parse_workflow_variables('{"a": 1}') == {"a": 1}
    assert parse_workflow_variables({"b": 2}) == {"b": 2}
    assert parse_workflow_variables(None) is None
