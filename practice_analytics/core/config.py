"""
Settings and environment management module for the practice analytics engine.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults matching the published reporting conventions
- Singleton pattern via @lru_cache for efficient access
- Per-metric-family consistency rules (scale constant + minimum history)

Environment Variables (all optional, prefix PRACTICE_ANALYTICS_):
- LOG_LEVEL: Root log level applied by configure_logging (default: INFO)
- OUTLIER_Z_THRESHOLD: |z| above which a practice mean is an outlier (default: 1.5)
- TREND_RELATIVE_THRESHOLD: Relative slope below which a trend is 'stable' (default: 0.01)
- FORECAST_MIN_POINTS: Minimum observed periods for a forecast (default: 3)
- CONSISTENCY_RULES: JSON mapping of metric family to {"scale", "min_periods"}
- CONSISTENCY_RULES__TELEPHONY__SCALE: Nested override for one family

Usage:
    from practice_analytics.core.config import get_settings

    settings = get_settings()
    threshold = settings.outlier_z_threshold
    rule = settings.consistency_rules["telephony"]
"""

from functools import lru_cache
from typing import Dict, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConsistencyRuleConfig(BaseModel):
    """
    Scale constant and minimum history for one metric family.

    consistency_score = max(0, 100 - scale * std_dev). The scale is chosen so
    the typical period-to-period variance of the family lands inside a
    meaningful 0-100 band; families with different natural variance must
    not share a scale.
    """
    scale: float = Field(..., gt=0.0, description="Multiplier applied to std_dev")
    min_periods: int = Field(..., ge=2, description="Minimum observed periods")


def _default_consistency_rules() -> Dict[str, ConsistencyRuleConfig]:
    # Online consultations publish a per-1000 submission rate whose monthly
    # swing is a few points, so a scale of 2 keeps most practices in band.
    # Telephony is a newer monthly collection: missed-call percentages move
    # by fractions of a point, so the scale is 10 and two months suffice.
    return {
        "online_consultations": ConsistencyRuleConfig(scale=2.0, min_periods=3),
        "telephony": ConsistencyRuleConfig(scale=10.0, min_periods=2),
        "appointments": ConsistencyRuleConfig(scale=10.0, min_periods=3),
    }


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every threshold used by the analysis services is read from here rather
    than hard-coded, so the metric owners can recalibrate bands without a
    code change.

    Attributes:
        log_level: Level passed to logging.basicConfig by configure_logging.
        log_format: Format string for log records.
        outlier_z_threshold: Default |z| cut-off for network outlier flags.
        trend_relative_threshold: |slope| / |mean| at or below which a
            forecast trend is labelled 'stable'.
        forecast_min_points: Observed periods required before forecasting.
        forecast_default_horizon: Periods projected when no horizon is given.
        percentile_decimals: Rounding applied to rank-based percentiles.
        leaderboard_size: Default top-N for consistency leaderboards.
        similar_practice_band: Relative list-size band for peer selection.
        similar_practice_count: Number of similar practices returned.
        similar_practice_seed: Seed making peer sampling reproducible.
        consistency_rules: Scale/minimum-history rule per metric family.
    """

    model_config = SettingsConfigDict(
        env_prefix='PRACTICE_ANALYTICS_',
        env_file='.env',
        env_file_encoding='utf-8',
        env_nested_delimiter='__',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Logging
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # =========================================================================
    # Network comparison
    # =========================================================================

    outlier_z_threshold: float = Field(default=1.5, gt=0.0)
    similar_practice_band: float = Field(default=0.30, gt=0.0, lt=1.0)
    similar_practice_count: int = Field(default=5, ge=1)
    similar_practice_seed: int = 42

    # =========================================================================
    # Forecasting
    # =========================================================================

    # 1% of the series mean per period; slopes inside this band are noise
    trend_relative_threshold: float = Field(default=0.01, ge=0.0)
    forecast_min_points: int = Field(default=3, ge=3)
    forecast_default_horizon: int = Field(default=3, ge=1)

    # =========================================================================
    # Ranking and leaderboards
    # =========================================================================

    percentile_decimals: int = Field(default=1, ge=0)
    leaderboard_size: int = Field(default=10, ge=1)

    # =========================================================================
    # Consistency analysis
    # =========================================================================

    consistency_rules: Dict[str, ConsistencyRuleConfig] = Field(
        default_factory=_default_consistency_rules
    )

    @field_validator('consistency_rules', mode='before')
    @classmethod
    def _merge_default_rules(cls, value):
        # Overrides may name one family or one field; the rest keep their defaults
        merged = {family: rule.model_dump() for family, rule in _default_consistency_rules().items()}
        for family, override in (value or {}).items():
            if isinstance(override, ConsistencyRuleConfig):
                override = override.model_dump()
            merged[family] = {**merged.get(family, {}), **override}
        return merged


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Environment variables are only read once per process. Tests that patch
    the environment must call ``get_settings.cache_clear()`` first.

    Returns:
        Settings: The application settings instance.

    Raises:
        pydantic.ValidationError: If an environment override is invalid
            (e.g. a negative outlier threshold).
    """
    return Settings()
