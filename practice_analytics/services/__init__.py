"""
Analysis Services Module

Each service is a stateless module of pure functions over an in-memory,
caller-owned set of PracticeMetricRecord objects. Services never mutate
their inputs and never depend on each other's results, so a host can fan
calls out across threads or processes without coordination.

Services:
- statistics: mean / population std / range / z-score helpers
- periods: reporting-month parsing, labels and comparison windows
- metric_catalog: metric labels, units, families and directions
- normalizer: raw counts -> PracticeMetricRecord
- ranking: national / regional / network rank and percentile
- consistency: dispersion profiles and leaderboards
- impact: volume-weighted rate difference ("calls saved")
- forecasting: least squares trend and projection
- network_comparison: practice-mean statistics, outliers, peer selection
"""

# =============================================================================
# Statistics and Periods
# =============================================================================

from practice_analytics.services.statistics import (
    mean,
    population_std_dev,
    value_range,
    z_score,
)

from practice_analytics.services.periods import (
    parse_period,
    period_label,
    next_periods,
    sort_periods,
    filter_periods,
    data_coverage,
)

# =============================================================================
# Metric Catalogue
# =============================================================================

from practice_analytics.services.metric_catalog import (
    METRIC_DEFINITIONS,
    get_metric_definition,
    get_metric_value,
    require_metric_value,
    resolve_direction,
)

# =============================================================================
# Record Normalizer
# =============================================================================

from practice_analytics.services.normalizer import (
    is_gp_provider,
    staff_group,
    count_working_days,
    split_staff_counts,
    dominant_wait_bin,
    normalize_record,
    normalize_records,
    appointment_days_from_frame,
    split_days_by_period,
)

# =============================================================================
# Cross-Sectional Ranker
# =============================================================================

from practice_analytics.services.ranking import (
    scope_population,
    rank_practice,
    rank_population,
    rank_all_scopes,
    interpret_percentile,
    gp_access_band,
)

# =============================================================================
# Consistency Analyzer
# =============================================================================

from practice_analytics.services.consistency import (
    ConsistencyRule,
    rule_for_metric,
    build_series,
    build_all_series,
    analyze_series,
    consistency_profiles,
    most_consistent,
    most_volatile,
)

# =============================================================================
# Impact Scorer
# =============================================================================

from practice_analytics.services.impact import (
    ImpactSpec,
    MISSED_CALL_IMPACT,
    practice_rate,
    pooled_rate,
    calls_saved,
    rank_by_impact,
    group_impacts,
)

# =============================================================================
# Forecaster
# =============================================================================

from practice_analytics.services.forecasting import (
    fit_linear_trend,
    classify_trend,
    forecast,
    forecast_values,
)

# =============================================================================
# Network Comparator
# =============================================================================

from practice_analytics.services.network_comparison import (
    practice_means,
    network_averages,
    network_summary,
    is_outlier,
    find_similar_practices,
    combined_demand_index,
)


__all__ = [
    # Statistics
    "mean",
    "population_std_dev",
    "value_range",
    "z_score",
    # Periods
    "parse_period",
    "period_label",
    "next_periods",
    "sort_periods",
    "filter_periods",
    "data_coverage",
    # Metric catalogue
    "METRIC_DEFINITIONS",
    "get_metric_definition",
    "get_metric_value",
    "require_metric_value",
    "resolve_direction",
    # Normalizer
    "is_gp_provider",
    "staff_group",
    "count_working_days",
    "split_staff_counts",
    "dominant_wait_bin",
    "normalize_record",
    "normalize_records",
    "appointment_days_from_frame",
    "split_days_by_period",
    # Ranking
    "scope_population",
    "rank_practice",
    "rank_population",
    "rank_all_scopes",
    "interpret_percentile",
    "gp_access_band",
    # Consistency
    "ConsistencyRule",
    "rule_for_metric",
    "build_series",
    "build_all_series",
    "analyze_series",
    "consistency_profiles",
    "most_consistent",
    "most_volatile",
    # Impact
    "ImpactSpec",
    "MISSED_CALL_IMPACT",
    "practice_rate",
    "pooled_rate",
    "calls_saved",
    "rank_by_impact",
    "group_impacts",
    # Forecasting
    "fit_linear_trend",
    "classify_trend",
    "forecast",
    "forecast_values",
    # Network comparison
    "practice_means",
    "network_averages",
    "network_summary",
    "is_outlier",
    "find_similar_practices",
    "combined_demand_index",
]
