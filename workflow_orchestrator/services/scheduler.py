"""Cancellable periodic tasks for background work such as availability polling."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional, Protocol

LOGGER = logging.getLogger("workflow_orchestrator.services.scheduler")

TaskFn = Callable[[], Awaitable[None]]


class ScheduledTask(Protocol):
    """Handle returned by a scheduler for one registered task."""

    task_id: str

    def cancel(self) -> None:
        ...


class SchedulerService(Protocol):
    """Contract for running a coroutine function on a fixed interval."""

    def schedule(
        self,
        task_id: str,
        frequency_seconds: float,
        timeout_seconds: float,
        fn: TaskFn,
    ) -> ScheduledTask:
        ...


@dataclass
class AsyncioScheduledTask:
    task_id: str
    frequency_seconds: float
    timeout_seconds: float
    fn: TaskFn
    runs: int = 0
    handle: Optional["asyncio.Task[None]"] = field(default=None, repr=False)
    _stopped: bool = field(default=False, init=False, repr=False)

    async def run_once(self) -> None:
        """Run ``fn`` once within the timeout; failures are logged, never raised."""

        self.runs += 1
        try:
            await asyncio.wait_for(self.fn(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            LOGGER.error(
                "scheduled_task_timed_out",
                extra={"task_id": self.task_id, "timeout_seconds": self.timeout_seconds},
            )
        except Exception:  # noqa: BLE001
            LOGGER.exception("scheduled_task_failed", extra={"task_id": self.task_id})

    async def _loop(self) -> None:
        # wait_for can absorb a cancel that lands as fn finishes, so the flag decides.
        while not self._stopped:
            await self.run_once()
            if self._stopped:
                break
            await asyncio.sleep(self.frequency_seconds)

    def start(self) -> None:
        self.handle = asyncio.get_running_loop().create_task(self._loop(), name=f"scheduled:{self.task_id}")

    @property
    def running(self) -> bool:
        return self.handle is not None and not self.handle.done()

    def cancel(self) -> None:
        self._stopped = True
        if self.handle is not None and not self.handle.done():
            self.handle.cancel()
            LOGGER.info("scheduled_task_cancelled", extra={"task_id": self.task_id})


class AsyncioScheduler(SchedulerService):
    """Runs each scheduled task as a loop on the current event loop.

    The first run happens immediately; later runs wait ``frequency_seconds``
    after the previous run finished. Registering an existing ``task_id``
    replaces the earlier task.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, AsyncioScheduledTask] = {}

    def schedule(
        self,
        task_id: str,
        frequency_seconds: float,
        timeout_seconds: float,
        fn: TaskFn,
    ) -> AsyncioScheduledTask:
        if frequency_seconds <= 0:
            raise ValueError("frequency_seconds must be positive")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        existing = self._tasks.pop(task_id, None)
        if existing is not None:
            existing.cancel()

        task = AsyncioScheduledTask(
            task_id=task_id,
            frequency_seconds=frequency_seconds,
            timeout_seconds=timeout_seconds,
            fn=fn,
        )
        task.start()
        self._tasks[task_id] = task
        LOGGER.info(
            "scheduled_task_registered",
            extra={"task_id": task_id, "frequency_seconds": frequency_seconds, "timeout_seconds": timeout_seconds},
        )
        return task

    def get(self, task_id: str) -> Optional[AsyncioScheduledTask]:
        return self._tasks.get(task_id)

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        pending = [task.handle for task in tasks if task.handle is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
