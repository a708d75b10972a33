"""Configuration and environment for the observer."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Observer settings loaded from environment and .env."""

    model_config = SettingsConfigDict(
        env_prefix="KUBE_OBSERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Kubernetes
    kubeconfig: Path | None = Field(
        default=None,
        description="Path to kubeconfig; uses KUBECONFIG env or default location if unset",
    )
    request_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Per-call deadline for cluster queries and aggregator workers",
    )
    max_parallel_queries: int = Field(
        default=16,
        ge=1,
        description="Upper bound on clusters queried at the same time",
    )

    # Realtime hub
    mailbox_capacity: int = Field(
        default=256,
        ge=1,
        description="Outbound events buffered per connection before it is dropped",
    )
    broadcast_queue_size: int = Field(
        default=256,
        ge=1,
        description="Broadcasts the hub accepts before new ones are dropped",
    )
    keepalive_interval_seconds: float = Field(
        default=50.0,
        gt=0.0,
        description="Idle time after which a ping is sent to a connection",
    )
    liveness_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="A connection without a pong for this long is dropped",
    )
    poll_interval_seconds: float = Field(
        default=15.0,
        ge=0.0,
        description="Seconds between aggregation cycles; 0 disables polling",
    )

    # HTTP server
    host: str = Field(default="127.0.0.1", description="Address the API binds to")
    port: int = Field(default=8080, ge=1, le=65535, description="Port the API binds to")

    @model_validator(mode="after")
    def _keepalive_within_liveness(self) -> "Settings":
        if self.keepalive_interval_seconds >= self.liveness_timeout_seconds:
            raise ValueError("keepalive_interval_seconds must be lower than liveness_timeout_seconds")
        return self


def get_settings() -> Settings:
    """Return validated settings instance."""
    return Settings()
