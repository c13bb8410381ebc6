"""Configuration helpers for CloudEvent dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from workflow_orchestrator.core.config import AppSettings, get_settings


@dataclass(frozen=True)
class EventEngineConfig:
    """Resolved configuration values for CloudEvent publishing."""

    source: str
    correlation_attribute: str
    client_id: str
    brokers: List[str] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return bool(self.brokers)


def get_event_engine_config(settings: Optional[AppSettings] = None) -> EventEngineConfig:
    """Materialize event configuration from application settings."""

    settings = settings or get_settings()
    brokers = settings.kafka_brokers if isinstance(settings.kafka_brokers, list) else [settings.kafka_brokers]
    return EventEngineConfig(
        source=settings.cloud_event_source,
        correlation_attribute=settings.cloud_event_correlation_attribute,
        client_id=settings.kafka_client_id,
        brokers=list(brokers),
    )
