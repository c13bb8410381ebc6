from __future__ import annotations

from workflow_orchestrator.core.config import AppSettings
from workflow_orchestrator.events_engine.config import get_event_engine_config


def test_kafka_brokers_are_split_from_comma_separated_string(monkeypatch) -> None:
    monkeypatch.setenv("ORCH_KAFKA_BROKERS", "kafka-1:9092, kafka-2:9092")

    settings = AppSettings()

    assert settings.kafka_brokers == ["kafka-1:9092", "kafka-2:9092"]
    assert get_event_engine_config(settings).enabled is True


def test_data_index_url_drops_trailing_slash(monkeypatch) -> None:
    monkeypatch.setenv("ORCH_DATA_INDEX_URL", "http://data-index.test/")
    monkeypatch.setenv("ORCH_LOG_LEVEL", "debug")

    settings = AppSettings()

    assert settings.data_index_url == "http://data-index.test"
    assert settings.log_level == "DEBUG"
    assert settings.environment == "test"


def test_empty_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("ORCH_KAFKA_BROKERS", "")
    monkeypatch.setenv("ORCH_WORKFLOW_CACHE_FREQUENCY_SECONDS", "")

    settings = AppSettings()

    assert settings.kafka_brokers == []
    assert settings.workflow_cache_frequency_seconds == 5
    assert get_event_engine_config(settings).enabled is False
