"""REST and CloudEvent client for the workflow runtime that hosts each definition."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx
from cloudevents.http import CloudEvent
from cloudevents.kafka import to_binary

from workflow_orchestrator.events_engine.config import EventEngineConfig, get_event_engine_config
from workflow_orchestrator.events_engine.publisher import CloudEventPublisher, get_cloud_event_publisher
from workflow_orchestrator.helpers.filter_builder import AnyFilter
from workflow_orchestrator.helpers.retry import RetryExhaustedError, execute_with_retry
from workflow_orchestrator.helpers.workflow_source import extract_workflow_format, from_workflow_source
from workflow_orchestrator.schemas.pagination import Pagination
from workflow_orchestrator.schemas.workflow import (
    AuthToken,
    WorkflowDefinition,
    WorkflowExecutionResponse,
    WorkflowInfo,
    WorkflowOverview,
)
from workflow_orchestrator.services.data_index import DataIndexService

EXECUTE_OPERATION = "Execute"


class WorkflowServiceError(RuntimeError):
    """Raised when the workflow runtime cannot be reached or reports a failure."""


def _to_epoch_ms(timestamp: Optional[str]) -> int:
    if not timestamp:
        return 0
    parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


class SonataFlowService:
    """Calls the runtime that serves a workflow definition at its ``serviceUrl``."""

    def __init__(
        self,
        data_index: DataIndexService,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        publisher: Optional[CloudEventPublisher] = None,
        event_config: Optional[EventEngineConfig] = None,
        timeout: float = 30.0,
        health_check_delay_seconds: float = 5.0,
    ) -> None:
        self._data_index = data_index
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None
        self._publisher = publisher or get_cloud_event_publisher()
        self._event_config = event_config or get_event_engine_config()
        self._health_check_delay_seconds = health_check_delay_seconds
        self._logger = logging.getLogger("workflow_orchestrator.services.runtime_client")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # Definitions and overviews

    async def fetch_workflow_info_on_service(self, definition_id: str, service_url: str) -> Optional[WorkflowInfo]:
        url = f"{service_url}/management/processes/{definition_id}"
        response = await self._send("GET", url)
        body = self._handle_workflow_service_response("Get workflow info", definition_id, url, response, "GET")
        self._logger.debug("workflow_info_fetched", extra={"definition_id": definition_id, "response": body})
        if not isinstance(body, dict):
            return None
        return WorkflowInfo.model_validate(body)

    async def fetch_workflow_definition(self, definition_id: str) -> Optional[WorkflowDefinition]:
        source = await self._data_index.fetch_workflow_source(definition_id)
        if not source:
            return None
        return from_workflow_source(source)

    async def fetch_workflow_overviews(
        self,
        *,
        definition_ids: Optional[Sequence[str]] = None,
        pagination: Optional[Pagination] = None,
        filter: Optional[AnyFilter] = None,
        target_entity: Optional[str] = None,
    ) -> List[WorkflowOverview]:
        infos = await self._data_index.fetch_workflow_infos(
            definition_ids=definition_ids,
            pagination=pagination,
            filter=filter,
        )
        if not infos:
            return []

        overviews = await asyncio.gather(
            *(
                self.fetch_workflow_overview_by_source(info.source, target_entity)
                for info in infos
                if info.source
            )
        )
        return [overview for overview in overviews if overview is not None]

    async def fetch_workflow_overview(self, definition_id: str) -> Optional[WorkflowOverview]:
        source = await self._data_index.fetch_workflow_source(definition_id)
        if not source:
            self._logger.debug("workflow_source_not_found", extra={"definition_id": definition_id})
            return None
        return await self.fetch_workflow_overview_by_source(source)

    async def fetch_workflow_overview_by_source(
        self,
        source: str,
        target_entity: Optional[str] = None,
    ) -> Optional[WorkflowOverview]:
        definition = from_workflow_source(source)
        instances = await self._data_index.fetch_instances_by_definition_id(
            definition_id=definition.id,
            limit=1,
            offset=0,
            target_entity=target_entity,
        )

        last_run_id = None
        last_triggered_ms = 0
        last_run_status = None
        latest = instances[0] if instances else None
        if latest is not None and latest.start:
            last_run_id = latest.id
            last_triggered_ms = _to_epoch_ms(latest.start)
            last_run_status = latest.state

        return WorkflowOverview(
            workflow_id=definition.id,
            name=definition.name,
            format=extract_workflow_format(source),
            last_run_id=last_run_id,
            last_triggered_ms=last_triggered_ms,
            last_run_status=last_run_status,
            description=definition.description,
        )

    # Execution

    async def execute_workflow(
        self,
        *,
        definition_id: str,
        service_url: str,
        input_data: Optional[Dict[str, Any]] = None,
        auth_tokens: Optional[Sequence[AuthToken]] = None,
        backstage_token: Optional[str] = None,
        business_key: Optional[str] = None,
    ) -> WorkflowExecutionResponse:
        url = f"{service_url}/{definition_id}"
        params = {"businessKey": business_key} if business_key else None
        headers = {"Content-Type": "application/json"}
        self._add_auth_headers(headers, auth_tokens, backstage_token)
        self._logger.info(
            "workflow_execute_requested",
            extra={"definition_id": definition_id, "headers": list(headers)},
        )

        response = await self._send("POST", url, json=input_data or {}, headers=headers, params=params)
        body = self._handle_workflow_service_response(EXECUTE_OPERATION, definition_id, url, response, "POST")
        if isinstance(body, dict) and body.get("id"):
            self._logger.debug("workflow_execute_succeeded", extra={"definition_id": definition_id, "response": body})
            return WorkflowExecutionResponse.model_validate(body)

        self._logger.error(
            "workflow_execute_missing_instance_id",
            extra={"definition_id": definition_id, "response": body},
        )
        raise WorkflowServiceError("Execute workflow did not return a workflow instance ID")

    async def execute_workflow_by_cloud_event(
        self,
        *,
        definition_id: str,
        event_type: str,
        input_data: Optional[Dict[str, Any]] = None,
    ) -> WorkflowExecutionResponse:
        """Publish a start event and return its correlation id without waiting.

        The instance started by the runtime only becomes visible through the
        data index, so callers poll instances to find it.
        """

        correlation_id = str(uuid.uuid4())
        event = CloudEvent(
            {
                "type": event_type,
                "source": self._event_config.source,
                "datacontenttype": "application/json",
                self._event_config.correlation_attribute: correlation_id,
            },
            input_data or {},
        )
        message = to_binary(event, data_marshaller=lambda data: json.dumps(data).encode("utf-8"))

        self._logger.info(
            "workflow_cloud_event_dispatch",
            extra={
                "definition_id": definition_id,
                "event_type": event_type,
                "correlation_id": correlation_id,
            },
        )
        await self._publisher.publish(event_type, message)
        return WorkflowExecutionResponse(id=correlation_id)

    async def retrigger_instance(
        self,
        *,
        definition_id: str,
        instance_id: str,
        service_url: str,
        auth_tokens: Optional[Sequence[AuthToken]] = None,
        backstage_token: Optional[str] = None,
    ) -> bool:
        headers = {"Content-Type": "application/json"}
        self._add_auth_headers(headers, auth_tokens, backstage_token)
        self._logger.info(
            "workflow_retrigger_requested",
            extra={"definition_id": definition_id, "instance_id": instance_id, "headers": list(headers)},
        )

        url = f"{service_url}/management/processes/{definition_id}/instances/{instance_id}/retrigger"
        response = await self._send("POST", url, headers=headers)
        self._handle_workflow_service_response("Retrigger", definition_id, url, response, "POST")
        return True

    async def abort_instance(self, *, definition_id: str, instance_id: str, service_url: str) -> None:
        url = f"{service_url}/management/processes/{definition_id}/instances/{instance_id}"
        response = await self._send("DELETE", url)
        self._handle_workflow_service_response("Abort", definition_id, url, response, "DELETE")

    # Health

    async def ping_workflow_service(self, definition_id: str, service_url: str) -> bool:
        url = f"{service_url}/management/processes/{definition_id}"
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as exc:
            self._logger.error("workflow_service_ping_failed", extra={"url": url, "error": str(exc)})
            return False
        return response.is_success

    async def is_service_up(self, endpoint: str, with_retry: bool = False) -> bool:
        health_url = f"{endpoint.rstrip('/')}/q/health"
        self._logger.info("workflow_runtime_health_check", extra={"url": health_url})
        try:
            response = await execute_with_retry(
                lambda: self._http.get(health_url),
                max_errors=15 if with_retry else 1,
                delay_seconds=self._health_check_delay_seconds,
            )
        except RetryExhaustedError as exc:
            self._logger.error("workflow_runtime_unhealthy", extra={"url": health_url, "error": str(exc)})
            return False
        return response.is_success

    # Internals

    async def _send(self, method: str, url: str, **kwargs: Any) -> Optional[httpx.Response]:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            self._logger.error("workflow_service_request_failed", extra={"url": url, "method": method, "error": str(exc)})
            return None

    def _add_auth_headers(
        self,
        headers: Dict[str, str],
        auth_tokens: Optional[Sequence[AuthToken]],
        backstage_token: Optional[str],
    ) -> None:
        candidates: List[tuple[str, str]] = []
        if auth_tokens:
            for token in auth_tokens:
                if token.provider and token.token:
                    candidates.append((f"X-Authorization-{token.provider.capitalize()}", str(token.token)))
        else:
            self._logger.debug("auth_tokens_not_provided")

        if backstage_token:
            candidates.append(("X-Authorization-Backstage", backstage_token))

        for key, value in candidates:
            if key in headers:
                self._logger.warning("auth_header_already_set", extra={"header": key})
                continue
            headers[key] = value

    def _handle_workflow_service_response(
        self,
        operation: str,
        workflow_id: str,
        url: str,
        response: Optional[httpx.Response],
        method: str,
    ) -> Any:
        prefix = f"Error during operation '{operation}' on workflow {workflow_id} with service URL {url}"
        if response is None:
            raise WorkflowServiceError(f"{prefix} : fetch failed")

        lines = [f"HTTP {method} request to {url} failed.", f"Status Code: {response.status_code}"]
        if response.reason_phrase:
            lines.append(f"Status Text: {response.reason_phrase}")

        try:
            body = response.json()
        except ValueError:
            if response.is_success:
                return None
            self._logger.error(
                "workflow_service_response_unparsable",
                extra={"operation": operation, "definition_id": workflow_id, "url": url},
            )
            raise WorkflowServiceError("\n".join(lines))

        # An Execute answer carrying an instance id means the instance was started.
        has_id = isinstance(body, dict) and bool(body.get("id"))
        if (has_id and operation == EXECUTE_OPERATION) or response.is_success:
            return body

        if isinstance(body, dict):
            for key, label in (
                ("message", "Message"),
                ("details", "Details"),
                ("stack", "Stack Trace"),
                ("failedNodeId", "Failed Node ID"),
            ):
                if body.get(key):
                    lines.append(f"{label}: {body[key]}")

        self._logger.error(
            "workflow_service_operation_failed",
            extra={"operation": operation, "definition_id": workflow_id, "url": url, "response": body},
        )
        raise WorkflowServiceError("\n".join(lines))
