"""Application configuration using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ORCH_",
        extra="ignore",
    )

    environment: Literal["local", "test", "staging", "production"] = Field(
        default="local",
        validation_alias="env",
    )
    service_name: str = Field(default="workflow-orchestrator")
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)
    http_host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=8000)
    data_index_url: str = Field(default="http://localhost:8080")
    kafka_brokers: List[str] | str = Field(default_factory=list)
    kafka_client_id: str = Field(default="workflow-orchestrator")
    cloud_event_source: str = Field(default="workflow-orchestrator")
    cloud_event_correlation_attribute: str = Field(default="workflowcorrelationid")
    workflow_cache_frequency_seconds: int = Field(default=5)
    workflow_cache_timeout_minutes: int = Field(default=1)
    runtime_request_timeout: float = Field(default=30.0)
    fetch_instance_max_attempts: int = Field(default=10)
    fetch_instance_retry_delay_ms: int = Field(default=1000)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("kafka_brokers")
    @classmethod
    def parse_kafka_brokers(cls, value: str | List[str] | None) -> List[str]:
        if value is None or value == "":
            return []
        if isinstance(value, str):
            return [broker.strip() for broker in value.split(",") if broker.strip()]
        return value

    @field_validator("data_index_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("workflow_cache_frequency_seconds", mode="before")
    @classmethod
    def ensure_int_frequency(cls, value: int | str | None) -> int | str:
        if value in (None, ""):
            return 5
        return value


@lru_cache
def get_settings() -> AppSettings:
    """Return cached application settings instance."""

    return AppSettings()
