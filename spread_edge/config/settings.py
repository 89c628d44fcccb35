"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env file.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_HOME_FIELD,
    DEFAULT_LEAGUE_TOTAL,
    ELO_TO_POINTS_DIVISOR,
    ENSEMBLE_WEIGHTS,
    PPA_TO_POINTS_MULTIPLIER,
    STANDARD_ODDS,
    LineLabel,
)


class ProjectionSettings(BaseSettings):
    """Settings for the model projector."""

    model_config = SettingsConfigDict(env_prefix="PROJECTION_")

    home_field_points: float = Field(
        default=DEFAULT_HOME_FIELD,
        description="Points credited to the home team on a non-neutral field",
    )
    elo_divisor: float = Field(
        default=ELO_TO_POINTS_DIVISOR,
        description="Elo rating points per point of spread",
    )
    ppa_multiplier: float = Field(
        default=PPA_TO_POINTS_MULTIPLIER,
        description="Plays per game used to scale PPA differential to points",
    )
    elo_weight: float = Field(default=ENSEMBLE_WEIGHTS["elo"])
    sp_weight: float = Field(default=ENSEMBLE_WEIGHTS["sp"])
    ppa_weight: float = Field(default=ENSEMBLE_WEIGHTS["ppa"])

    rest_points_per_day: float = Field(
        default=0.5,
        description="Points per day of rest advantage",
    )
    travel_points_per_1000_miles: float = Field(
        default=0.3,
        description="Points credited to home per 1000 miles the away team travels",
    )
    league_average_total: float = Field(
        default=DEFAULT_LEAGUE_TOTAL,
        description="Naive baseline total when scoring data is missing",
    )

    # Individual caps on each additive term
    max_rating_points: float = Field(default=35.0)
    max_home_field_points: float = Field(default=4.0)
    max_rest_points: float = Field(default=3.0)
    max_travel_points: float = Field(default=2.0)
    max_total_deviation: float = Field(
        default=20.0,
        description="Cap on each team's expected-score deviation from baseline",
    )

    @field_validator("elo_divisor", "ppa_multiplier", "league_average_total")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @model_validator(mode="after")
    def validate_weights(self) -> "ProjectionSettings":
        if min(self.elo_weight, self.sp_weight, self.ppa_weight) < 0:
            raise ValueError("ensemble weights must be non-negative")
        if self.elo_weight + self.sp_weight + self.ppa_weight <= 0:
            raise ValueError("ensemble weights must not all be zero")
        return self


class EdgeSettings(BaseSettings):
    """Settings for edge calculation."""

    model_config = SettingsConfigDict(env_prefix="EDGE_")

    max_edge_cap: float = Field(
        default=7.0,
        description="Capped edge is clamped to +/- this many points",
    )

    @field_validator("max_edge_cap")
    @classmethod
    def validate_cap(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_edge_cap must be positive")
        return v


class QualificationSettings(BaseSettings):
    """Settings for the qualification rule table."""

    model_config = SettingsConfigDict(env_prefix="QUALIFY_")

    min_edge_threshold: float = Field(
        default=1.0,
        description="Minimum absolute spread edge in points",
    )
    min_total_edge_threshold: Optional[float] = Field(
        default=None,
        description="Minimum absolute total edge; falls back to min_edge_threshold",
    )
    min_spread: float = Field(
        default=0.0,
        description="Lower bound (inclusive) of the admissible spread band",
    )
    max_spread: float = Field(
        default=21.0,
        description="Blowout cutoff: spreads at or above this are rejected",
    )

    @field_validator("min_edge_threshold", "min_total_edge_threshold", "min_spread")
    @classmethod
    def validate_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("must be non-negative")
        return v

    @model_validator(mode="after")
    def validate_band(self) -> "QualificationSettings":
        if self.max_spread <= self.min_spread:
            raise ValueError("max_spread must exceed min_spread")
        return self

    def threshold_for(self, market: str) -> float:
        """Edge floor for a market type."""
        if market == "total" and self.min_total_edge_threshold is not None:
            return self.min_total_edge_threshold
        return self.min_edge_threshold


class BacktestSettings(BaseSettings):
    """Defaults for backtest runs."""

    model_config = SettingsConfigDict(env_prefix="BACKTEST_")

    decision_label: LineLabel = Field(
        default=LineLabel.T60,
        description="Snapshot label used as the simulated bet-placement moment",
    )
    american_odds: int = Field(
        default=STANDARD_ODDS,
        description="Implied-odds convention for profit and ROI",
    )
    bucket_width: float = Field(default=2.0)
    max_concurrency: int = Field(
        default=8,
        description="Maximum games evaluated concurrently",
    )

    @field_validator("decision_label")
    @classmethod
    def validate_label(cls, v: LineLabel) -> LineLabel:
        if v == LineLabel.CLOSE:
            raise ValueError("decision_label cannot be the closing snapshot")
        return v

    @field_validator("american_odds")
    @classmethod
    def validate_odds(cls, v: int) -> int:
        if -100 < v < 100:
            raise ValueError("american_odds must be <= -100 or >= 100")
        return v

    @field_validator("bucket_width", "max_concurrency")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("must be positive")
        return v


class Settings(BaseSettings):
    """Main engine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    # Sub-settings
    projection: ProjectionSettings = Field(default_factory=ProjectionSettings)
    edge: EdgeSettings = Field(default_factory=EdgeSettings)
    qualification: QualificationSettings = Field(
        default_factory=QualificationSettings
    )
    backtest: BacktestSettings = Field(default_factory=BacktestSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
