import os
import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

os.environ.setdefault("ENV", "test")
os.environ.setdefault("ORCH_DATA_INDEX_URL", "http://data-index.test")
os.environ.setdefault("ORCH_KAFKA_BROKERS", "")
os.environ.setdefault("ORCH_LOG_JSON", "false")
os.environ.setdefault("ORCH_CLOUD_EVENT_SOURCE", "orchestrator-test")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from workflow_orchestrator.core.config import get_settings

get_settings.cache_clear()

from workflow_orchestrator.api.dependencies import reset_dependencies  # noqa: E402
from workflow_orchestrator.events_engine.publisher import (  # noqa: E402
    NullCloudEventPublisher,
    set_cloud_event_publisher,
)

@pytest.fixture(autouse=True)
def reset_singletons():
    set_cloud_event_publisher(NullCloudEventPublisher())
    reset_dependencies()
    yield
    set_cloud_event_publisher(None)
    reset_dependencies()


class StubPublisher:
    def __init__(self) -> None:
        self.messages = []

    async def publish(self, topic, message):
        self.messages.append((topic, message))

    async def close(self):
        return None


@pytest.fixture()
def stub_publisher() -> StubPublisher:
    return StubPublisher()


@pytest.fixture()
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an ``httpx.AsyncClient`` whose requests are answered by ``handler``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
