"""Centralized settings management for the event catalogue."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Tunable sections
# ---------------------------------------------------------------------------


class NormaliserSettings(BaseModel):
    """Text normalisation tuning."""

    cache_max_entries: int = Field(
        default=10_000,
        ge=0,
        description="Cache is cleared once it grows beyond this many entries.",
    )
    min_venue_length: int = Field(
        default=2,
        ge=1,
        description="Suffix-stripped venue keys shorter than this fall back to the plain form.",
    )


class DedupSettings(BaseModel):
    """Duplicate detection and merge tuning."""

    overall_threshold: float = Field(default=0.78, ge=0.0, le=1.0)
    quick_reject_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    date_window_days: float = Field(default=14.0, gt=0.0)

    title_weight: float = Field(default=0.50, ge=0.0)
    date_weight: float = Field(default=0.30, ge=0.0)
    venue_weight: float = Field(default=0.20, ge=0.0)

    substring_score: float = Field(default=0.95, ge=0.0, le=1.0)
    near_date_score: float = Field(default=0.85, ge=0.0, le=1.0)
    extended_date_score: float = Field(default=0.5, ge=0.0, le=1.0)

    min_description_length: int = Field(
        default=100,
        ge=0,
        description="Descriptions longer than this count towards completeness.",
    )
    placeholder_description_marker: str = "No description"
    placeholder_address_marker: str = "TBA"
    default_locality: str = "Melbourne"
    price_details_separator: str = " | "

    @model_validator(mode="after")
    def validate_weights(self) -> "DedupSettings":
        if self.title_weight + self.date_weight + self.venue_weight <= 0:
            raise ValueError("At least one dedup component weight must be positive")
        return self


class FeatureSettings(BaseModel):
    """Event vectorisation weights and scales."""

    category_weight: float = Field(default=10.0, gt=0.0)
    subcategory_weight: float = Field(default=5.0, gt=0.0)
    popularity_weight: float = Field(default=3.0, ge=0.0)
    price_weight: float = Field(default=1.0, ge=0.0)
    venue_weight: float = Field(default=1.0, ge=0.0)
    free_weight: float = Field(default=0.5, ge=0.0)

    price_ceiling: float = Field(
        default=500.0,
        gt=0.0,
        description="Prices at or above this value normalise to 1.0 on the log scale.",
    )
    neutral_venue_tier: float = Field(default=0.5, ge=0.0, le=1.0)


class ProfileSettings(BaseModel):
    """User profile construction tuning."""

    interaction_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "favourite": 5.0,
            "clickthrough": 3.0,
            "view": 1.0,
            "unfavourite": -3.0,
        }
    )
    decay_half_life_days: float = Field(default=30.0, gt=0.0)
    lookback_days: int = Field(default=183, gt=0)
    max_interactions: int = Field(default=200, gt=0)

    explicit_weight: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Share of the explicit preference vector in the blended profile.",
    )
    confidence_saturation: int = Field(default=20, gt=0)
    cold_start_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    neutral_venue_preference: float = Field(default=0.5, ge=0.0, le=1.0)

    max_dominant_categories: int = Field(default=3, ge=0)
    max_dominant_subcategories: int = Field(default=5, ge=0)


class RankingSettings(BaseModel):
    """Scoring weights, candidate pool caps and ranking thresholds."""

    # Personalised feed
    content_weight: float = 0.6
    popularity_weight: float = 0.2
    novelty_weight: float = 0.1
    temporal_weight: float = 0.1
    diversity_preference: float = 0.3
    mainstream_threshold: float = 0.7
    niche_threshold: float = 0.3
    urgency_horizon_days: float = Field(default=30.0, gt=0.0)
    recent_favourites_limit: int = Field(default=10, ge=0)
    personalised_pool_size: int = Field(default=1000, gt=0)

    # Explanation thresholds
    strong_match_threshold: float = 0.8
    good_match_threshold: float = 0.6
    novelty_reason_threshold: float = 0.2

    # Trending
    trending_engagement_weight: float = 0.4
    trending_velocity_weight: float = 0.4
    trending_recency_weight: float = 0.2
    trending_window_days: float = Field(default=7.0, gt=0.0)
    trending_pool_size: int = Field(default=200, gt=0)
    engagement_view_weight: float = 0.1
    engagement_favourite_weight: float = 5.0
    engagement_clickthrough_weight: float = 3.0
    engagement_saturation: float = Field(default=50.0, gt=0.0)
    velocity_scale: float = Field(default=0.1, gt=0.0)
    velocity_boost: float = Field(default=1.5, ge=1.0)

    # Similar-to
    similar_pool_size: int = Field(default=50, gt=0)
    similar_limit: int = Field(default=6, gt=0)

    # Hidden gems
    hidden_gem_max_favourites: int = Field(default=10, ge=0)
    hidden_gem_max_views: int = Field(default=200, ge=0)
    hidden_gem_min_raw_score: float = 5.0
    hidden_gem_pool_size: int = Field(default=500, gt=0)

    # Rising stars
    rising_star_max_percentile: float = Field(default=0.7, ge=0.0, le=1.0)
    rising_star_min_favourites: int = Field(default=10, ge=0)

    # Popular in category
    popular_min_percentile: float = Field(default=0.7, ge=0.0, le=1.0)

    default_limit: int = Field(default=20, gt=0)


class PopularitySettings(BaseModel):
    """Raw popularity scoring weights."""

    favourite_weight: float = 5.0
    clickthrough_weight: float = 3.0
    view_weight: float = 0.5
    venue_capacity_weight: float = 2.0
    price_signal_weight: float = 1.0
    multi_source_weight: float = 1.5
    price_signal_floor: float = 100.0
    recency_horizon_days: float = Field(default=30.0, gt=0.0)
    default_venue_capacity: int = Field(default=800, gt=0)
    comparison_band: float = Field(default=0.1, ge=0.0)

    # Cold start scoring (no engagement yet)
    cold_start_capacity_weight: float = 3.0
    cold_start_price_weight: float = 2.0
    cold_start_source_weight: float = 2.0


# ---------------------------------------------------------------------------
# Application settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """
    Application settings powered by pydantic-settings.

    Loads configuration from environment variables (prefix ``CATALOGUE_``,
    nested sections separated by ``__``) and an optional .env file, e.g.
    ``CATALOGUE_DEDUP__OVERALL_THRESHOLD=0.8``.
    """

    # -------------------------------------------------------------------------
    # ENVIRONMENT
    # -------------------------------------------------------------------------
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False

    # -------------------------------------------------------------------------
    # PATHS
    # -------------------------------------------------------------------------
    BASE_DIR: Path = Path(__file__).resolve().parents[1]
    REFERENCE_DATA_PATH: Path = BASE_DIR / "configs" / "reference_data.yaml"

    # -------------------------------------------------------------------------
    # ENGINE TUNING
    # -------------------------------------------------------------------------
    NORMALISER: NormaliserSettings = Field(default_factory=NormaliserSettings)
    DEDUP: DedupSettings = Field(default_factory=DedupSettings)
    FEATURES: FeatureSettings = Field(default_factory=FeatureSettings)
    PROFILE: ProfileSettings = Field(default_factory=ProfileSettings)
    RANKING: RankingSettings = Field(default_factory=RankingSettings)
    POPULARITY: PopularitySettings = Field(default_factory=PopularitySettings)

    # -------------------------------------------------------------------------
    # CONFIGURATION
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_prefix="CATALOGUE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns
    -------
    Settings
        The singleton settings instance.
    """
    return Settings()
