"""Relationship score configuration.

Factor weights, badge thresholds, cache TTL and the cut-offs used by the
similarity and prediction helpers. All settings can be overridden via
``RELATIONSHIP_*`` environment variables.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RelationshipConfig(BaseSettings):
    """Configuration for the relationship score engine."""

    model_config = SettingsConfigDict(
        env_prefix="RELATIONSHIP_",
        case_sensitive=False,
        extra="ignore",
    )

    # Factor weights (must sum to 1.0)
    weight_frequency: float = Field(default=0.30, ge=0.0, le=1.0)
    weight_recency: float = Field(default=0.20, ge=0.0, le=1.0)
    weight_depth: float = Field(default=0.20, ge=0.0, le=1.0)
    weight_loyalty: float = Field(default=0.20, ge=0.0, le=1.0)
    weight_growth: float = Field(default=0.10, ge=0.0, le=1.0)

    # Badge thresholds on the 0-100 score
    badge_favorite: int = Field(default=80, ge=0, le=100)
    badge_regular: int = Field(default=60, ge=0, le=100)
    badge_casual: int = Field(default=40, ge=0, le=100)
    badge_new: int = Field(default=20, ge=0, le=100)

    cache_ttl_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="Seconds a computed score stays valid in the score cache",
    )

    # Similarity / prediction helpers
    similarity_min: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Candidates at or below this similarity are dropped",
    )
    similarity_min_count: int = Field(
        default=3,
        ge=1,
        description="Minimum confirmed watches for a similarity candidate",
    )
    prediction_min_count: int = Field(
        default=5,
        ge=1,
        description="Minimum confirmed watches for a source to be predicted",
    )
    prediction_min_probability: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Predictions at or below this probability are dropped",
    )

    @model_validator(mode="after")
    def _check_weights(self) -> "RelationshipConfig":
        total = sum(self.weights.values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Relationship weights must sum to 1.0, got {total:.4f}")
        if not (
            self.badge_favorite >= self.badge_regular
            >= self.badge_casual >= self.badge_new
        ):
            raise ValueError("Badge thresholds must be non-increasing")
        return self

    @property
    def weights(self) -> dict[str, float]:
        return {
            "frequency": self.weight_frequency,
            "recency": self.weight_recency,
            "depth": self.weight_depth,
            "loyalty": self.weight_loyalty,
            "growth": self.weight_growth,
        }
