"""Facade over the data index, the runtime and the availability cache."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from workflow_orchestrator.helpers.filter_builder import AnyFilter
from workflow_orchestrator.schemas.pagination import Pagination
from workflow_orchestrator.schemas.workflow import (
    AuthToken,
    ProcessInstance,
    WorkflowDefinition,
    WorkflowExecutionResponse,
    WorkflowInfo,
    WorkflowOverview,
)
from workflow_orchestrator.services.data_index import DataIndexService
from workflow_orchestrator.services.runtime_client import SonataFlowService
from workflow_orchestrator.services.workflow_cache import CacheHandler, WorkflowCacheService


class OrchestratorService:
    """Entry point for workflow operations.

    Operations that target one definition run only while that definition is
    available; otherwise they return ``None`` (or raise
    ``WorkflowUnavailableError`` with ``cache_handler="throw"``). Instance
    reads are never gated so history stays readable.
    """

    def __init__(
        self,
        data_index: DataIndexService,
        runtime: SonataFlowService,
        workflow_cache: WorkflowCacheService,
    ) -> None:
        self._data_index = data_index
        self._runtime = runtime
        self._cache = workflow_cache
        self._logger = logging.getLogger("workflow_orchestrator.services.orchestrator")

    def _is_available(self, definition_id: str, cache_handler: CacheHandler) -> bool:
        available = self._cache.is_available(definition_id, cache_handler)
        if not available:
            self._logger.info("workflow_operation_skipped_unavailable", extra={"definition_id": definition_id})
        return available

    # Data index

    def get_workflow_ids(self) -> List[str]:
        return self._cache.definition_ids

    async def fetch_workflow_info(
        self,
        definition_id: str,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[WorkflowInfo]:
        if not self._is_available(definition_id, cache_handler):
            return None
        return await self._data_index.fetch_workflow_info(definition_id)

    async def fetch_workflow_source(
        self,
        definition_id: str,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[str]:
        if not self._is_available(definition_id, cache_handler):
            return None
        return await self._data_index.fetch_workflow_source(definition_id)

    async def fetch_instances(
        self,
        *,
        pagination: Optional[Pagination] = None,
        filter: Optional[AnyFilter] = None,
        workflow_ids: Optional[Sequence[str]] = None,
    ) -> List[ProcessInstance]:
        if workflow_ids is None:
            workflow_ids = self._cache.definition_ids + self._cache.unavailable_definition_ids
        return await self._data_index.fetch_instances(
            definition_ids=workflow_ids,
            pagination=pagination,
            filter=filter,
        )

    async def fetch_instance(self, instance_id: str) -> Optional[ProcessInstance]:
        return await self._data_index.fetch_instance(instance_id)

    async def fetch_instance_variables(self, instance_id: str) -> Optional[Dict[str, Any]]:
        definition_id = await self._data_index.fetch_definition_id_by_instance_id(instance_id)
        if not definition_id:
            return None
        return await self._data_index.fetch_instance_variables(instance_id)

    async def fetch_definition_ids_from_instances(self, target_entity: str) -> List[str]:
        return await self._data_index.fetch_definition_ids_from_instances(target_entity=target_entity)

    # Runtime

    async def fetch_workflow_info_on_service(
        self,
        definition_id: str,
        service_url: str,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[WorkflowInfo]:
        if not self._is_available(definition_id, cache_handler):
            return None
        return await self._runtime.fetch_workflow_info_on_service(definition_id, service_url)

    async def fetch_workflow_definition(
        self,
        definition_id: str,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[WorkflowDefinition]:
        if not self._is_available(definition_id, cache_handler):
            return None
        return await self._runtime.fetch_workflow_definition(definition_id)

    async def fetch_workflow_overviews(
        self,
        *,
        pagination: Optional[Pagination] = None,
        filter: Optional[AnyFilter] = None,
        target_entity: Optional[str] = None,
    ) -> List[WorkflowOverview]:
        overviews = await self._runtime.fetch_workflow_overviews(
            definition_ids=self._cache.definition_ids + self._cache.unavailable_definition_ids,
            pagination=pagination,
            filter=filter,
            target_entity=target_entity,
        )
        for overview in overviews:
            overview.is_available = self._cache.is_available(overview.workflow_id)
        return overviews

    async def fetch_workflow_overview(self, definition_id: str) -> Optional[WorkflowOverview]:
        overview = await self._runtime.fetch_workflow_overview(definition_id)
        if overview is not None:
            overview.is_available = self._cache.is_available(definition_id)
        return overview

    async def execute_workflow(
        self,
        *,
        definition_id: str,
        service_url: str,
        input_data: Optional[Dict[str, Any]] = None,
        auth_tokens: Optional[Sequence[AuthToken]] = None,
        backstage_token: Optional[str] = None,
        business_key: Optional[str] = None,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[WorkflowExecutionResponse]:
        if not self._is_available(definition_id, cache_handler):
            return None
        return await self._runtime.execute_workflow(
            definition_id=definition_id,
            service_url=service_url,
            input_data=input_data,
            auth_tokens=auth_tokens,
            backstage_token=backstage_token,
            business_key=business_key,
        )

    async def execute_workflow_by_cloud_event(
        self,
        *,
        definition_id: str,
        event_type: str,
        input_data: Optional[Dict[str, Any]] = None,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[WorkflowExecutionResponse]:
        if not self._is_available(definition_id, cache_handler):
            return None
        return await self._runtime.execute_workflow_by_cloud_event(
            definition_id=definition_id,
            event_type=event_type,
            input_data=input_data,
        )

    async def retrigger_workflow(
        self,
        *,
        definition_id: str,
        instance_id: str,
        service_url: str,
        auth_tokens: Optional[Sequence[AuthToken]] = None,
        backstage_token: Optional[str] = None,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[bool]:
        if not self._is_available(definition_id, cache_handler):
            return None
        return await self._runtime.retrigger_instance(
            definition_id=definition_id,
            instance_id=instance_id,
            service_url=service_url,
            auth_tokens=auth_tokens,
            backstage_token=backstage_token,
        )

    async def abort_workflow_instance(
        self,
        *,
        definition_id: str,
        instance_id: str,
        service_url: str,
        cache_handler: CacheHandler = "skip",
    ) -> Optional[bool]:
        if not self._is_available(definition_id, cache_handler):
            return None
        await self._runtime.abort_instance(
            definition_id=definition_id,
            instance_id=instance_id,
            service_url=service_url,
        )
        return True

    async def ping_workflow_service(self, definition_id: str, service_url: str) -> bool:
        return await self._runtime.ping_workflow_service(definition_id, service_url)
