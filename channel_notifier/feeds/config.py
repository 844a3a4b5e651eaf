"""Feed polling configuration.

URL templates, request timeouts, response validation and retry limits
for the public channel feed. All settings can be overridden via
``FEEDS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeedConfig(BaseSettings):
    """Configuration for feed polling and handle resolution."""

    model_config = SettingsConfigDict(
        env_prefix="FEEDS_",
        case_sensitive=False,
        extra="ignore",
    )

    feed_url_template: str = Field(
        default="https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}",
        description="Feed URL with a {channel_id} placeholder",
    )
    handle_url_template: str = Field(
        default="https://www.youtube.com/@{handle}",
        description="Public channel page URL with a {handle} placeholder",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=120.0,
        description="Per-request timeout; a timed-out poll is abandoned",
    )
    min_body_length: int = Field(
        default=100,
        ge=0,
        description="Feed bodies shorter than this are treated as invalid",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Concurrent feed fetches per poll cycle",
    )

    # Retries (transport boundary only)
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay: float = Field(default=1.0, ge=0.0)
    retry_max_delay: float = Field(default=8.0, ge=0.0)

    user_agent: str = Field(
        default="channel-notifier/0.1 (+feed poller)",
        description="User-Agent header sent with every request",
    )
