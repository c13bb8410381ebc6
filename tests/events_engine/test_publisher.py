from __future__ import annotations

import pytest
from aiokafka.errors import KafkaError
from cloudevents.kafka import KafkaMessage

from workflow_orchestrator.events_engine.config import EventEngineConfig, get_event_engine_config
from workflow_orchestrator.events_engine.publisher import (
    CloudEventPublishError,
    KafkaCloudEventPublisher,
    NullCloudEventPublisher,
    get_cloud_event_publisher,
    set_cloud_event_publisher,
)


class StubProducer:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent = []
        self.stopped = False
        self.error = error

    async def start(self) -> None:
        return None

    async def send_and_wait(self, topic, value=None, key=None, headers=None):
        if self.error is not None:
            raise self.error
        self.sent.append({"topic": topic, "value": value, "key": key, "headers": headers})

    async def stop(self) -> None:
        self.stopped = True


def _message() -> KafkaMessage:
    return KafkaMessage(
        headers={"ce_id": b"evt-1", "ce_type": b"wf1.start", "content-type": b"application/json"},
        key=None,
        value=b'{"name": "demo"}',
    )


@pytest.mark.asyncio
async def test_null_publisher_refuses_messages() -> None:
    publisher = NullCloudEventPublisher()

    with pytest.raises(CloudEventPublishError, match="No Kafka brokers configured"):
        await publisher.publish("wf1.start", _message())
    await publisher.close()


@pytest.mark.asyncio
async def test_kafka_publisher_sends_headers_as_pairs() -> None:
    producer = StubProducer()
    publisher = KafkaCloudEventPublisher(brokers=["kafka:9092"], client_id="orchestrator", producer=producer)

    await publisher.publish("wf1.start", _message())
    await publisher.close()

    sent = producer.sent[0]
    assert sent["topic"] == "wf1.start"
    assert sent["value"] == b'{"name": "demo"}'
    assert ("ce_type", b"wf1.start") in sent["headers"]
    assert producer.stopped


@pytest.mark.asyncio
async def test_kafka_errors_become_publish_errors() -> None:
    producer = StubProducer(error=KafkaError("broker down"))
    publisher = KafkaCloudEventPublisher(brokers=["kafka:9092"], client_id="orchestrator", producer=producer)

    with pytest.raises(CloudEventPublishError, match="Failed to publish CloudEvent to topic wf1.start"):
        await publisher.publish("wf1.start", _message())


def test_publisher_selection_follows_broker_configuration() -> None:
    set_cloud_event_publisher(None)
    disabled = EventEngineConfig(source="s", correlation_attribute="c", client_id="id")
    assert isinstance(get_cloud_event_publisher(disabled), NullCloudEventPublisher)

    set_cloud_event_publisher(None)
    enabled = EventEngineConfig(source="s", correlation_attribute="c", client_id="id", brokers=["kafka:9092"])
    publisher = get_cloud_event_publisher(enabled)
    assert isinstance(publisher, KafkaCloudEventPublisher)
    assert get_cloud_event_publisher() is publisher


def test_event_config_reads_settings() -> None:
    config = get_event_engine_config()

    assert config.source == "orchestrator-test"
    assert config.enabled is False
