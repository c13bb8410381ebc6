from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from workflow_orchestrator.api.dependencies import get_workflow_api_service, get_workflow_cache
from workflow_orchestrator.events_engine.publisher import CloudEventPublishError
from workflow_orchestrator.helpers.filter_builder import FilterValidationError
from workflow_orchestrator.helpers.retry import RetryExhaustedError
from workflow_orchestrator.helpers.workflow_source import WorkflowSourceError
from workflow_orchestrator.main import create_app
from workflow_orchestrator.schemas.api import (
    AssessedProcessInstance,
    ExecuteWorkflowResponse,
    PaginationInfo,
    ProcessInstanceListResult,
    WorkflowOverviewListResult,
)
from workflow_orchestrator.schemas.workflow import ProcessInstance, WorkflowOverview
from workflow_orchestrator.services.runtime_client import WorkflowServiceError
from workflow_orchestrator.services.workflow_api import WorkflowApiService, WorkflowNotFoundError
from workflow_orchestrator.services.workflow_cache import WorkflowUnavailableError


class StubWorkflowApi:
    def __init__(self) -> None:
        self.calls = []
        self.error = None

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error

    async def get_workflows_overview(self, pagination, filter=None):
        self._record("overview", pagination, filter)
        return WorkflowOverviewListResult(
            overviews=[WorkflowOverview(workflow_id="wf1", is_available=True)],
            pagination_info=PaginationInfo(page_size=pagination.limit, offset=pagination.offset, total_count=1),
        )

    def get_workflow_ids(self):
        return ["wf1"]

    def get_workflow_statuses(self):
        return WorkflowApiService(None).get_workflow_statuses()

    async def get_instances(self, pagination=None, filter=None, workflow_ids=None):
        self._record("instances", pagination, filter, workflow_ids)
        return ProcessInstanceListResult(
            items=[ProcessInstance(id="i1", process_id="wf1")],
            pagination_info=PaginationInfo(total_count=1),
        )

    async def get_instance_by_id(self, instance_id, include_assessment=False):
        self._record("instance", instance_id, include_assessment)
        return AssessedProcessInstance(instance=ProcessInstance(id=instance_id, process_id="wf1"))

    async def get_workflow_overview_by_id(self, workflow_id):
        self._record("workflow_overview", workflow_id)
        return WorkflowOverview(workflow_id=workflow_id)

    async def get_workflow_source_by_id(self, workflow_id):
        self._record("source", workflow_id)
        return "id: wf1"

    async def get_workflow_input_schema_by_id(self, workflow_id):
        self._record("input_schema", workflow_id)
        return None

    async def execute_workflow(self, request, workflow_id, business_key=None, backstage_token=None):
        self._record("execute", request, workflow_id, business_key=business_key, backstage_token=backstage_token)
        return ExecuteWorkflowResponse(id="new", workflow_id=workflow_id)

    async def retrigger_instance(self, workflow_id, instance_id, backstage_token=None):
        self._record("retrigger", workflow_id, instance_id, backstage_token=backstage_token)

    async def abort_workflow(self, instance_id):
        self._record("abort", instance_id)
        return f"Workflow instance {instance_id} successfully aborted"


class StubCache:
    definition_ids = ["wf1"]
    unavailable_definition_ids = ["wf2"]


@pytest.fixture()
def workflow_api() -> StubWorkflowApi:
    return StubWorkflowApi()


@pytest.fixture()
def client(workflow_api: StubWorkflowApi) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_workflow_api_service] = lambda: workflow_api
    app.dependency_overrides[get_workflow_cache] = lambda: StubCache()
    return TestClient(app)


def test_package_exposes_app_factory() -> None:
    import workflow_orchestrator

    assert workflow_orchestrator.create_app is create_app


def test_health_endpoints(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/readyz").json() == {"available": ["wf1"], "unavailable": ["wf2"]}


def test_overview_search_maps_pagination_info(client: TestClient, workflow_api: StubWorkflowApi) -> None:
    response = client.post(
        "/api/v2/workflows/overview",
        json={
            "paginationInfo": {"offset": 1, "pageSize": 50, "orderBy": "lastUpdated", "orderDirection": "DESC"},
            "filters": {"field": "name", "operator": "LIKE", "value": "deploy"},
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["paginationInfo"]["pageSize"] == 50
    assert body["paginationInfo"]["offset"] == 1
    assert body["overviews"][0]["workflowId"] == "wf1"
    assert body["overviews"][0]["isAvailable"] is True
    _, (pagination, filter), _ = workflow_api.calls[0]
    assert pagination.sort_field == "lastUpdated"
    assert pagination.order.value == "DESC"
    assert filter.field == "name"


def test_workflow_ids_and_statuses(client: TestClient) -> None:
    assert client.get("/api/v2/workflows/ids").json() == ["wf1"]
    statuses = client.get("/api/v2/workflows/instances/statuses").json()
    assert statuses[0] == {"key": "Active", "value": "ACTIVE"}
    assert len(statuses) == 6


def test_instances_search_passes_workflow_ids(client: TestClient, workflow_api: StubWorkflowApi) -> None:
    response = client.post("/api/v2/workflows/instances", json={"workflowIds": ["wf1", "wf2"]})

    assert response.status_code == 200
    assert response.json()["items"][0]["processId"] == "wf1"
    _, (pagination, filter, workflow_ids), _ = workflow_api.calls[0]
    assert pagination is None
    assert filter is None
    assert workflow_ids == ["wf1", "wf2"]


def test_instance_lookup_reads_assessment_flag(client: TestClient, workflow_api: StubWorkflowApi) -> None:
    response = client.get("/api/v2/workflows/instances/i1", params={"includeAssessment": "true"})

    assert response.status_code == 200
    assert response.json()["instance"]["id"] == "i1"
    assert workflow_api.calls[0] == ("instance", ("i1", True), {})


def test_execute_forwards_business_key_and_bearer_token(client: TestClient, workflow_api: StubWorkflowApi) -> None:
    response = client.post(
        "/api/v2/workflows/wf1/execute",
        params={"businessKey": "bk-1"},
        headers={"Authorization": "Bearer backstage-token"},
        json={"inputData": {"name": "demo"}},
    )

    assert response.status_code == 200
    assert response.json() == {"id": "new", "workflowId": "wf1"}
    _, (request, workflow_id), kwargs = workflow_api.calls[0]
    assert request.input_data == {"name": "demo"}
    assert kwargs == {"business_key": "bk-1", "backstage_token": "backstage-token"}


def test_source_retrigger_and_abort(client: TestClient) -> None:
    assert client.get("/api/v2/workflows/wf1/source").json() == {"workflowId": "wf1", "source": "id: wf1"}
    assert client.post("/api/v2/workflows/wf1/i1/retrigger").json() == {
        "message": "Workflow instance i1 retriggered"
    }
    assert client.delete("/api/v2/workflows/instances/i1/abort").json() == {
        "message": "Workflow instance i1 successfully aborted"
    }


def test_missing_input_schema_is_not_found(client: TestClient) -> None:
    response = client.get("/api/v2/workflows/wf1/inputSchema")

    assert response.status_code == 404
    assert response.json()["detail"] == "Couldn't fetch workflow input schema for wf1"


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (FilterValidationError("Invalid field: color"), 400),
        (WorkflowNotFoundError("Couldn't fetch workflow overview for wf9"), 404),
        (WorkflowUnavailableError("wf1"), 503),
        (WorkflowServiceError("HTTP GET request failed."), 502),
        (WorkflowSourceError("Unable to parse workflow source: not a workflow"), 502),
        (CloudEventPublishError("No Kafka brokers configured"), 502),
        (RetryExhaustedError("Exceeded maximum number of retries for async function"), 504),
    ],
)
def test_errors_map_to_status_codes(
    client: TestClient, workflow_api: StubWorkflowApi, error: Exception, status: int
) -> None:
    workflow_api.error = error

    response = client.get("/api/v2/workflows/wf1/overview")

    assert response.status_code == status
    assert response.json() == {"detail": str(error)}
