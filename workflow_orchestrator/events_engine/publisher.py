"""Publishers responsible for delivering binary-mode CloudEvents to Kafka."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
from cloudevents.kafka import KafkaMessage

from workflow_orchestrator.events_engine.config import EventEngineConfig, get_event_engine_config

LOGGER = logging.getLogger("workflow_orchestrator.events_engine.publisher")

_publisher: Optional["CloudEventPublisher"] = None


class CloudEventPublishError(RuntimeError):
    """Raised when a CloudEvent could not be delivered to the broker."""


class CloudEventPublisher(Protocol):
    """Transport abstraction for CloudEvent delivery."""

    async def publish(self, topic: str, message: KafkaMessage) -> None:
        ...

    async def close(self) -> None:
        ...


class NullCloudEventPublisher(CloudEventPublisher):
    """Publisher used when no Kafka brokers are configured; every publish fails."""

    async def publish(self, topic: str, message: KafkaMessage) -> None:  # noqa: D401
        LOGGER.error(
            "cloud_event_publish_unavailable",
            extra={"topic": topic, "ce_id": (message.headers.get("ce_id") or b"").decode("utf-8")},
        )
        raise CloudEventPublishError("No Kafka brokers configured")

    async def close(self) -> None:
        return None


class KafkaCloudEventPublisher(CloudEventPublisher):
    """Publishes binary-encoded CloudEvents with an aiokafka producer.

    The producer is started on first use and reused for later sends.
    """

    def __init__(self, *, brokers: List[str], client_id: str, producer: Optional[AIOKafkaProducer] = None) -> None:
        self._brokers = brokers
        self._client_id = client_id
        self._producer = producer
        self._started = producer is not None
        self._start_lock = asyncio.Lock()

    async def _ensure_started(self) -> AIOKafkaProducer:
        async with self._start_lock:
            if self._producer is None:
                self._producer = AIOKafkaProducer(
                    bootstrap_servers=",".join(self._brokers),
                    client_id=self._client_id,
                )
            if not self._started:
                await self._producer.start()
                self._started = True
                LOGGER.info(
                    "cloud_event_producer_started",
                    extra={"brokers": self._brokers, "client_id": self._client_id},
                )
            return self._producer

    async def publish(self, topic: str, message: KafkaMessage) -> None:
        try:
            producer = await self._ensure_started()
            await producer.send_and_wait(
                topic,
                value=message.value,
                key=message.key,
                headers=list(message.headers.items()),
            )
        except KafkaError as exc:
            LOGGER.exception(
                "cloud_event_publish_failed",
                extra={"topic": topic, "brokers": self._brokers},
            )
            raise CloudEventPublishError(f"Failed to publish CloudEvent to topic {topic}: {exc}") from exc

        LOGGER.info("cloud_event_published", extra={"topic": topic})

    async def close(self) -> None:
        if self._producer is not None and self._started:
            await self._producer.stop()
            self._started = False


def get_cloud_event_publisher(config: Optional[EventEngineConfig] = None) -> CloudEventPublisher:
    """Return the singleton CloudEvent publisher for the application."""

    global _publisher
    if _publisher is not None:
        return _publisher

    config = config or get_event_engine_config()
    if config.enabled:
        _publisher = KafkaCloudEventPublisher(brokers=config.brokers, client_id=config.client_id)
    else:
        _publisher = NullCloudEventPublisher()
    return _publisher


def set_cloud_event_publisher(publisher: Optional[CloudEventPublisher]) -> None:
    """Override the cached publisher (primarily for tests)."""

    global _publisher
    _publisher = publisher
