"""Notification configuration.

First-sight grace window, digest priority, webhook delivery and circuit
breaker settings. All settings can be overridden via ``NOTIFICATIONS_*``
environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationConfig(BaseSettings):
    """Configuration for notification decisions and dispatch."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    first_sight_grace_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="On first sight, only items younger than this are notified",
    )
    high_priority_score: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Relationship score at which digest entries are high priority",
    )

    # Webhook channel (disabled when unset)
    webhook_url: str | None = Field(
        default=None,
        description="POST target for notifications; log-only when unset",
    )
    webhook_timeout_seconds: float = Field(default=10.0, gt=0.0, le=60.0)
    webhook_max_attempts: int = Field(default=3, ge=1, le=10)
    webhook_base_delay: float = Field(default=1.0, ge=0.0)

    circuit_breaker_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures before a channel's circuit opens",
    )
    circuit_breaker_recovery_seconds: float = Field(
        default=60.0,
        ge=1.0,
        description="Seconds before an open circuit allows a probe",
    )

    # Digest queue
    digest_key: str = Field(
        default="digest",
        description="Redis list (under the key prefix) holding digest entries",
    )
    digest_max_entries: int = Field(
        default=500,
        ge=1,
        description="Digest entries kept; older ones are trimmed",
    )
