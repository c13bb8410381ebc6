"""CloudEvent publishing over Kafka."""

from .config import EventEngineConfig, get_event_engine_config  # noqa: F401
from .publisher import (  # noqa: F401
    CloudEventPublishError,
    CloudEventPublisher,
    KafkaCloudEventPublisher,
    NullCloudEventPublisher,
    get_cloud_event_publisher,
    set_cloud_event_publisher,
)
