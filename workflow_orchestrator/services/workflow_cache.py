"""Scheduled cache of which workflow definitions have a reachable runtime."""

from __future__ import annotations

import asyncio
import logging
from threading import RLock
from typing import Dict, List, Literal, Optional, Set

from workflow_orchestrator.services.data_index import DataIndexService
from workflow_orchestrator.services.runtime_client import SonataFlowService
from workflow_orchestrator.services.scheduler import ScheduledTask, SchedulerService

CacheHandler = Literal["skip", "throw"]

TASK_ID = "workflow-availability-cache"


class WorkflowUnavailableError(RuntimeError):
    """Raised when a gated operation targets a definition that is not available."""

    def __init__(self, definition_id: str) -> None:
        super().__init__(f"Workflow service for definition {definition_id} not available at the moment")
        self.definition_id = definition_id


class WorkflowCacheService:
    """Tracks available and unavailable definitions.

    Both sets are written only by :meth:`refresh`, which the scheduler runs on
    a fixed interval, and read concurrently by request handlers. A definition
    is in at most one of the two sets.
    """

    def __init__(self, data_index: DataIndexService, runtime: SonataFlowService) -> None:
        self._data_index = data_index
        self._runtime = runtime
        self._available: Set[str] = set()
        self._unavailable: Set[str] = set()
        self._lock = RLock()
        self._task: Optional[ScheduledTask] = None
        self._logger = logging.getLogger("workflow_orchestrator.services.workflow_cache")

    @property
    def definition_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._available)

    @property
    def unavailable_definition_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._unavailable)

    def is_available(self, definition_id: str, cache_handler: CacheHandler = "skip") -> bool:
        with self._lock:
            available = definition_id in self._available
        if not available and cache_handler == "throw":
            raise WorkflowUnavailableError(definition_id)
        return available

    def schedule(
        self,
        scheduler: SchedulerService,
        frequency_seconds: float = 5,
        timeout_minutes: float = 1,
    ) -> ScheduledTask:
        self._task = scheduler.schedule(TASK_ID, frequency_seconds, timeout_minutes * 60, self.refresh)
        return self._task

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def refresh(self) -> None:
        """Run one availability tick: prune removed definitions, then ping the rest."""

        try:
            service_urls = await self._data_index.fetch_workflow_service_urls()
            self._prune(service_urls)

            definition_ids = list(service_urls)
            results = await asyncio.gather(
                *(self._runtime.ping_workflow_service(did, service_urls[did]) for did in definition_ids),
                return_exceptions=True,
            )
            for definition_id, result in zip(definition_ids, results):
                if isinstance(result, BaseException):
                    self._logger.error(
                        "workflow_availability_ping_failed",
                        extra={"definition_id": definition_id, "error": str(result)},
                    )
                self._mark(definition_id, result is True)

            self._logger.debug(
                "workflow_availability_refreshed",
                extra={"available": self.definition_ids, "unavailable": self.unavailable_definition_ids},
            )
        except Exception:  # noqa: BLE001
            self._logger.exception("workflow_availability_refresh_failed")

    def _prune(self, service_urls: Dict[str, str]) -> None:
        with self._lock:
            stale = (self._available | self._unavailable) - set(service_urls)
            self._available -= stale
            self._unavailable -= stale
        if stale:
            self._logger.info("workflow_definitions_removed", extra={"definition_ids": sorted(stale)})

    def _mark(self, definition_id: str, available: bool) -> None:
        with self._lock:
            if available:
                self._available.add(definition_id)
                self._unavailable.discard(definition_id)
            else:
                self._unavailable.add(definition_id)
                self._available.discard(definition_id)
