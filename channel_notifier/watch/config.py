"""Watch-session configuration.

Thresholds for the genuine-watch decision, skip/rewind classification,
sampling cadence and presence gating. All settings can be overridden via
``WATCH_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WatchConfig(BaseSettings):
    """Configuration for watch tracking."""

    model_config = SettingsConfigDict(
        env_prefix="WATCH_",
        case_sensitive=False,
        extra="ignore",
    )

    # Genuine-watch decision
    watch_threshold: float = Field(
        default=0.5,
        gt=0.0,
        le=1.0,
        description="Fraction of the duration that must be watched continuously",
    )
    min_watch_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Seconds of actual playback required before confirming",
    )

    # Sampling
    sample_interval_seconds: float = Field(
        default=2.0,
        gt=0.0,
        le=60.0,
        description="Seconds between progress samples",
    )

    # Skip / rewind classification
    skip_slack_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Position may run ahead of wall time by this much before it counts as a skip",
    )
    min_skip_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum forward jump classified as a skip",
    )
    rewind_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Backward jump larger than this is a rewind",
    )

    # Presence
    idle_timeout_seconds: float = Field(
        default=300.0,
        gt=0.0,
        description="Seconds without input after which a non-playing viewer is absent",
    )
    pause_when_hidden: bool = Field(
        default=False,
        description="Treat a hidden tab as absent even while playing",
    )
