"""Source aggregate configuration.

Controls the watched-item cap, the approval threshold and retention.
All settings can be overridden via ``SOURCES_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourcesConfig(BaseSettings):
    """Configuration for source aggregates and their lifecycle."""

    model_config = SettingsConfigDict(
        env_prefix="SOURCES_",
        case_sensitive=False,
        extra="ignore",
    )

    max_watched_items: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Watched item ids kept per source (oldest evicted first)",
    )
    ready_threshold: int = Field(
        default=10,
        ge=1,
        description="Confirmed watches before a tracking source becomes ready for approval",
    )
    retention_days: int = Field(
        default=90,
        ge=1,
        le=3650,
        description="Unapproved sources idle longer than this are deleted by cleanup",
    )
