"""Data index client: workflow definitions, process instances and variables over GraphQL."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx

from workflow_orchestrator.helpers.filter_builder import AnyFilter, build_filter_condition
from workflow_orchestrator.helpers.query_builder import build_graphql_query
from workflow_orchestrator.helpers.workflow_source import from_workflow_source, parse_workflow_variables
from workflow_orchestrator.schemas.filter import FieldDescriptor, FieldFilter, FieldFilterOperator, NestedFilter, ProcessType
from workflow_orchestrator.schemas.pagination import Pagination, SortOrder
from workflow_orchestrator.schemas.workflow import ProcessInstance, WorkflowInfo
from workflow_orchestrator.services.graphql_client import GraphQLClient, GraphQLResult

FETCH_PROCESS_INSTANCES_SORT_FIELD = "start"
DEFINITION_IDS_FROM_INSTANCES_LIMIT = 1000

_PROCESS_ID_NOT_NULL = "processId: {isNull: false}"

_WORKFLOW_INFO_FIELDS = "id, name, version, type, endpoint, serviceUrl, source"
_INSTANCE_LIST_FIELDS = (
    "id, processName, processId, state, start, end, nodes { id }, variables, "
    "executionSummary, parentProcessInstance {id, processName, businessKey}"
)

FIND_PROCESS_INSTANCE_QUERY = """
query FindProcessInstanceQuery($instanceId: String!) {
  ProcessInstances(where: { id: { equal: $instanceId } }) {
    id
    processName
    processId
    businessKey
    serviceUrl
    executionSummary
    state
    start
    end
    nodes {
      id
      nodeId
      definitionId
      type
      name
      enter
      exit
      errorMessage
    }
    variables
    parentProcessInstance {
      id
      processName
      businessKey
    }
    error {
      nodeDefinitionId
      nodeInstanceId
      message
    }
  }
}
"""


class DataIndexError(RuntimeError):
    """Base class for data index failures."""


class DataIndexNetworkError(DataIndexError):
    """The data index could not be reached or did not answer with GraphQL."""


class DataIndexQueryError(DataIndexError):
    """The data index answered with GraphQL errors that cannot be tolerated."""

    def __init__(self, message: str, errors: Sequence[Dict[str, Any]]) -> None:
        super().__init__(message)
        self.errors = list(errors)


def _quote(value: str) -> str:
    return json.dumps(value)


def _id_list(values: Iterable[str]) -> str:
    return json.dumps(list(values), separators=(",", ":"))


class DataIndexService:
    """Builds and runs data index queries and classifies their failures."""

    def __init__(
        self,
        data_index_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        if not data_index_url:
            raise ValueError("No data index URL specified or found")
        self._data_index_url = data_index_url.rstrip("/")
        self._client = GraphQLClient(
            f"{self._data_index_url}/graphql",
            http_client=http_client,
            timeout=timeout,
        )
        self._introspection: Dict[str, List[FieldDescriptor]] = {}
        self._introspection_lock = asyncio.Lock()
        self._logger = logging.getLogger("workflow_orchestrator.services.data_index")

    async def aclose(self) -> None:
        await self._client.aclose()

    # Introspection

    @staticmethod
    def graphql_argument_query(type: str) -> str:
        return f"""query {type}Argument {{
          __type(name: "{type}Argument") {{
            kind
            name
            inputFields {{
              name
              type {{
                kind
                name
                ofType {{
                  kind
                  name
                  ofType {{
                    kind
                    name
                    ofType {{
                      kind
                      name
                    }}
                  }}
                }}
              }}
            }}
          }}
        }}"""

    async def inspect_input_argument(self, type: str) -> List[FieldDescriptor]:
        result = await self._client.query(self.graphql_argument_query(type))
        self._logger.debug("data_index_introspection_result", extra={"type": type, "data": result.data})
        self._handle_graphql_client_error("Error executing introspection query", result)

        input_fields = ((result.data or {}).get("__type") or {}).get("inputFields") or []
        return [
            FieldDescriptor(
                name=item["name"],
                type_name=(item.get("type") or {}).get("name"),
                kind=(item.get("type") or {}).get("kind"),
                of_type=(item.get("type") or {}).get("ofType"),
            )
            for item in input_fields
            if item.get("name") not in ("and", "or", "not")
        ]

    async def _input_arguments(self, process_type: ProcessType) -> List[FieldDescriptor]:
        async with self._introspection_lock:
            cached = self._introspection.get(process_type)
            if not cached:
                cached = await self.inspect_input_argument(process_type)
                if cached:
                    self._introspection[process_type] = cached
            return cached

    async def init_input_process_definition_args(self) -> List[FieldDescriptor]:
        return await self._input_arguments("ProcessDefinition")

    async def init_input_process_instance_args(self) -> List[FieldDescriptor]:
        return await self._input_arguments("ProcessInstance")

    # Workflow definitions

    async def fetch_workflow_info(self, definition_id: str) -> Optional[WorkflowInfo]:
        query = (
            f"{{ ProcessDefinitions ( where: {{id: {{equal: {_quote(definition_id)} }} }} ) "
            f"{{ {_WORKFLOW_INFO_FIELDS} }} }}"
        )
        result = await self._client.query(query)
        self._handle_graphql_client_error("Error fetching workflow definition", result)

        definitions = (result.data or {}).get("ProcessDefinitions") or []
        if not definitions:
            self._logger.info("workflow_definition_not_found", extra={"definition_id": definition_id})
            return None
        return WorkflowInfo.model_validate(definitions[0])

    async def fetch_workflow_service_urls(self) -> Dict[str, str]:
        result = await self._client.query("{ ProcessDefinitions { id, serviceUrl } }")
        self._handle_graphql_client_error("Error fetching workflow service urls", result)

        service_urls: Dict[str, str] = {}
        for definition in (result.data or {}).get("ProcessDefinitions") or []:
            if definition.get("serviceUrl"):
                service_urls[definition["id"]] = definition["serviceUrl"]
        return service_urls

    async def fetch_workflow_infos(
        self,
        *,
        definition_ids: Optional[Sequence[str]] = None,
        pagination: Optional[Pagination] = None,
        filter: Optional[AnyFilter] = None,
    ) -> List[WorkflowInfo]:
        self._logger.info("fetch_workflow_infos", extra={"data_index_url": self._data_index_url})

        definition_ids_condition = f"id: {{in: {_id_list(definition_ids)}}}" if definition_ids else None
        filter_condition = (
            build_filter_condition(
                await self.init_input_process_definition_args(),
                "ProcessDefinition",
                filter,
            )
            if filter is not None
            else None
        )

        if definition_ids_condition and filter_condition:
            where_clause: Optional[str] = f"and: [{{{definition_ids_condition}}}, {{{filter_condition}}}]"
        else:
            where_clause = definition_ids_condition or filter_condition

        query = build_graphql_query(
            type="ProcessDefinitions",
            query_body=f"{_WORKFLOW_INFO_FIELDS}, metadata",
            where_clause=where_clause,
            pagination=pagination,
        )
        self._logger.debug("data_index_query", extra={"query": query})
        result = await self._client.query(query)
        self._handle_graphql_client_error("Error fetching data index swf results", result)

        infos = [WorkflowInfo.model_validate(item) for item in (result.data or {}).get("ProcessDefinitions") or []]
        return self._filter_deleted_workflows(infos)

    def _filter_deleted_workflows(self, workflows: List[WorkflowInfo]) -> List[WorkflowInfo]:
        kept = [workflow for workflow in workflows if not workflow.is_deleted]
        deleted = [workflow for workflow in workflows if workflow.is_deleted]
        if deleted:
            self._logger.debug(
                "deleted_workflows_filtered",
                extra={"workflows": [{"id": w.id, "name": w.name} for w in deleted]},
            )
        return kept

    async def fetch_workflow_source(self, definition_id: str) -> Optional[str]:
        query = f"{{ ProcessDefinitions ( where: {{id: {{equal: {_quote(definition_id)} }} }} ) {{ id, source }} }}"
        result = await self._client.query(query)
        self._handle_graphql_client_error("Error when fetching workflow source", result)

        definitions = (result.data or {}).get("ProcessDefinitions") or []
        if not definitions:
            self._logger.info("workflow_source_not_found", extra={"definition_id": definition_id})
            return None
        return definitions[0].get("source")

    # Process instances

    async def fetch_instances(
        self,
        *,
        definition_ids: Optional[Sequence[str]] = None,
        pagination: Optional[Pagination] = None,
        filter: Optional[AnyFilter] = None,
    ) -> List[ProcessInstance]:
        if pagination is not None and not pagination.sort_field:
            pagination = pagination.model_copy(update={"sort_field": FETCH_PROCESS_INSTANCES_SORT_FIELD})

        conditions = [f"{{{_PROCESS_ID_NOT_NULL}}}"]
        if definition_ids:
            conditions.append(f"{{processId: {{in: {_id_list(definition_ids)}}}}}")
        if filter is not None:
            filter_condition = build_filter_condition(
                await self.init_input_process_instance_args(),
                "ProcessInstance",
                filter,
            )
            conditions.append(f"{{{filter_condition}}}")

        if len(conditions) == 1:
            where_clause = conditions[0][1:-1]
        else:
            where_clause = f"and: [{', '.join(conditions)}]"

        query = build_graphql_query(
            type="ProcessInstances",
            query_body=_INSTANCE_LIST_FIELDS,
            where_clause=where_clause,
            pagination=pagination,
        )
        self._logger.debug("data_index_query", extra={"query": query})
        result = await self._client.query(query)
        self._handle_graphql_client_error("Error when fetching instances", result)

        instances = [
            ProcessInstance.model_validate(item)
            for item in (result.data or {}).get("ProcessInstances") or []
        ]
        return await self._attach_descriptions(instances)

    async def _attach_descriptions(self, instances: List[ProcessInstance]) -> List[ProcessInstance]:
        process_ids = sorted({instance.process_id for instance in instances})
        infos = await asyncio.gather(*(self.fetch_workflow_info(pid) for pid in process_ids))
        sources = {pid: info.source if info else None for pid, info in zip(process_ids, infos)}

        for instance in instances:
            source = sources.get(instance.process_id)
            if not source:
                raise DataIndexError(f"Workflow definition is required to fetch instance {instance.id}")
            instance.description = from_workflow_source(source).description
        return instances

    async def fetch_instances_by_definition_id(
        self,
        *,
        definition_id: str,
        limit: int,
        offset: int,
        target_entity: Optional[str] = None,
    ) -> List[ProcessInstance]:
        where_clause = f"processId: {{equal: {_quote(definition_id)} }}"
        if target_entity:
            where_clause += f", variables: {{targetEntity: {{equal: {_quote(target_entity)} }} }}"

        query = build_graphql_query(
            type="ProcessInstances",
            query_body="id, processName, processId, state, start, end",
            where_clause=where_clause,
            pagination=Pagination(
                limit=limit,
                offset=offset,
                order=SortOrder.DESC,
                sort_field=FETCH_PROCESS_INSTANCES_SORT_FIELD,
            ),
        )
        result = await self._client.query(query)
        self._handle_graphql_client_error("Error when fetching workflow instances", result)

        return [
            ProcessInstance.model_validate(item)
            for item in (result.data or {}).get("ProcessInstances") or []
        ]

    async def fetch_definition_ids_from_instances(self, *, target_entity: str) -> List[str]:
        target_entity_filter = NestedFilter(
            field="variables",
            nested=FieldFilter(field="targetEntity", operator=FieldFilterOperator.EQ, value=target_entity),
        )
        filter_condition = build_filter_condition(
            await self.init_input_process_instance_args(),
            "ProcessInstance",
            target_entity_filter,
        )
        # Bounded so entities with very long histories cannot exhaust memory.
        query = build_graphql_query(
            type="ProcessInstances",
            query_body="processId",
            where_clause=f"and: [{{{_PROCESS_ID_NOT_NULL}}}, {{{filter_condition}}}]",
            pagination=Pagination(limit=DEFINITION_IDS_FROM_INSTANCES_LIMIT, offset=0),
        )
        result = await self._client.query(query)
        self._handle_graphql_client_error(
            "Error when fetching definition ids from instances history",
            result,
        )

        distinct: Dict[str, None] = {}
        for item in (result.data or {}).get("ProcessInstances") or []:
            if item.get("processId"):
                distinct.setdefault(item["processId"], None)
        return list(distinct)

    async def fetch_instance_variables(self, instance_id: str) -> Optional[Dict[str, Any]]:
        query = f"{{ ProcessInstances (where: {{ id: {{equal: {_quote(instance_id)} }} }} ) {{ variables }} }}"
        result = await self._client.query(query)
        self._handle_graphql_client_error("Error when fetching process instance variables", result)

        instances = (result.data or {}).get("ProcessInstances") or []
        if not instances:
            return None
        return parse_workflow_variables(instances[0].get("variables"))

    async def fetch_definition_id_by_instance_id(self, instance_id: str) -> Optional[str]:
        query = f"{{ ProcessInstances (where: {{ id: {{equal: {_quote(instance_id)} }} }} ) {{ processId }} }}"
        result = await self._client.query(query)
        self._handle_graphql_client_error("Error when fetching process id from instance", result)

        instances = (result.data or {}).get("ProcessInstances") or []
        if not instances:
            return None
        return instances[0].get("processId")

    async def fetch_instance(self, instance_id: str) -> Optional[ProcessInstance]:
        result = await self._client.query(FIND_PROCESS_INSTANCE_QUERY, {"instanceId": instance_id})
        self._handle_graphql_client_error("Error when fetching process instances", result)

        instances = (result.data or {}).get("ProcessInstances") or []
        if not instances:
            return None

        instance = self._remove_nodes(ProcessInstance.model_validate(instances[0]))

        workflow_info = await self.fetch_workflow_info(instance.process_id)
        if workflow_info is None or not workflow_info.source:
            raise DataIndexError(f"Workflow definition is required to fetch instance {instance.id}")
        instance.description = from_workflow_source(workflow_info.source).description
        return instance

    @staticmethod
    def _remove_nodes(instance: ProcessInstance) -> ProcessInstance:
        error_node_id = instance.error.node_instance_id if instance.error else None
        instance.nodes = [
            node for node in instance.nodes if not node.error_message or node.id == error_node_id
        ]
        return instance

    # Error policy

    def _handle_graphql_client_error(self, scenario: str, result: GraphQLResult) -> None:
        """Raise for transport failures and intolerable GraphQL errors.

        A ``DataFetchingException`` that still came with ``data`` is logged and
        ignored so fan-out queries can return what the index could resolve.
        """

        error = result.error
        if error is None:
            return

        self._logger.error(
            "data_index_query_failed",
            extra={"scenario": scenario, "error": error.message, "graphql_errors": error.graphql_errors},
        )

        if error.network_error is not None:
            raise DataIndexNetworkError(f"{error.message}. {error.network_cause}") from error.network_error

        if result.data and error.graphql_errors:
            first = error.graphql_errors[0]
            classification = (first.get("extensions") or {}).get("classification")
            if classification == "DataFetchingException":
                return

        raise DataIndexQueryError(error.message, error.graphql_errors)
