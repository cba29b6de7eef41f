"""
Consistency Analysis Service.

Measures how steady a practice's own metric is across reporting periods and
builds cohort leaderboards of the most consistent and most volatile
practices.

Algorithm:
    For each practice's MetricSeries (undefined periods dropped):
        mean = average of the values
        std_dev = population standard deviation (divide by N)
        range = max - min
        consistency_score = max(0, 100 - scale * std_dev)

    The scale and the minimum history come from the metric family's
    ConsistencyRule (see Settings.consistency_rules). Families have
    different natural variance and different publication histories, so
    they never share one scale.

Eligibility:
    - Series shorter than min_periods: InsufficientDataResult, excluded
      from profiles and leaderboards.
    - Inactive series (every value zero): excluded from "most consistent"
      (a practice that never used the channel is only trivially stable),
      still eligible for "most volatile" if it has any spread.

Ordering:
    Leaderboards sort by std_dev with a stable sort, so ties keep the order
    in which practices first appear in the input records.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

from practice_analytics.core.config import get_settings
from practice_analytics.core.exceptions import InsufficientDataError
from practice_analytics.models.schemas import (
    ConsistencyProfile,
    InsufficientDataResult,
    MetricSeries,
    PracticeMetricRecord,
    SeriesPoint,
)
from practice_analytics.services.metric_catalog import get_metric_definition, get_metric_value
from practice_analytics.services.statistics import mean, population_std_dev, value_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsistencyRule:
    """Scale constant and minimum series length for one metric family."""
    scale: float
    min_periods: int


def rule_for_metric(metric: str) -> ConsistencyRule:
    """
    Consistency rule for a metric, resolved through its family.

    Raises:
        KeyError: If the metric or its family has no configured rule.
    """
    family = get_metric_definition(metric).family
    configured = get_settings().consistency_rules[family.value]
    return ConsistencyRule(scale=configured.scale, min_periods=configured.min_periods)


# =============================================================================
# Series construction
# =============================================================================


def build_series(
    records: Sequence[PracticeMetricRecord],
    practice_id: str,
    metric: str,
) -> MetricSeries:
    """
    Period-ordered series of one metric for one practice.

    Periods where the metric is undefined are left out, never zero-filled.
    When a period appears more than once, the later record supersedes the
    earlier one (a re-extracted month).
    """
    practice_name = ""
    by_period: Dict[date, Optional[float]] = {}
    for record in records:
        if record.practice_id != practice_id:
            continue
        practice_name = practice_name or record.practice_name
        if record.period in by_period:
            logger.debug(f"{practice_id} {record.period}: superseded by a later record")
        by_period[record.period] = get_metric_value(record, metric)

    points = []
    for period, value in by_period.items():
        if value is None:
            logger.debug(f"{practice_id} {period}: '{metric}' undefined, dropped from series")
            continue
        points.append(SeriesPoint(period=period, value=value))

    return MetricSeries(
        practice_id=practice_id,
        practice_name=practice_name,
        metric=metric,
        points=points,
    )


def build_all_series(records: Sequence[PracticeMetricRecord], metric: str) -> List[MetricSeries]:
    """One series per practice, in order of first appearance."""
    practice_ids = list(dict.fromkeys(record.practice_id for record in records))
    return [build_series(records, practice_id, metric) for practice_id in practice_ids]


# =============================================================================
# Analysis
# =============================================================================


def _require_length(series: MetricSeries, required: int) -> List[float]:
    values = series.values
    if len(values) < required:
        raise InsufficientDataError(required, len(values), series.metric)
    return values


def analyze_series(
    series: MetricSeries,
    rule: Optional[ConsistencyRule] = None,
) -> Union[ConsistencyProfile, InsufficientDataResult]:
    """
    Dispersion statistics and consistency score for one series.

    Args:
        series: The practice's metric series.
        rule: Overrides the family rule from settings.

    Returns:
        ConsistencyProfile, or InsufficientDataResult when the series is
        shorter than the rule's min_periods.

    Example:
        >>> profile = analyze_series(series, ConsistencyRule(scale=2.0, min_periods=3))
        >>> profile.mean, round(profile.std_dev, 1), profile.consistency_score
        (153.75, 84.5, 0.0)
    """
    rule = rule or rule_for_metric(series.metric)
    try:
        values = _require_length(series, rule.min_periods)
    except InsufficientDataError as exc:
        logger.debug(f"{series.practice_id}: {exc}")
        return InsufficientDataResult(
            practice_id=series.practice_id,
            metric=series.metric,
            required=exc.required,
            available=exc.available,
            reason=str(exc),
        )

    spread = value_range(values)
    # Identical values can leave float residue in np.std
    std_dev = population_std_dev(values) if spread > 0 else 0.0

    return ConsistencyProfile(
        practice_id=series.practice_id,
        practice_name=series.practice_name,
        metric=series.metric,
        mean=mean(values),
        std_dev=std_dev,
        range=spread,
        consistency_score=max(0.0, 100.0 - rule.scale * std_dev),
        period_count=len(values),
        is_active=any(value != 0 for value in values),
    )


def consistency_profiles(
    records: Sequence[PracticeMetricRecord],
    metric: str,
    rule: Optional[ConsistencyRule] = None,
) -> List[ConsistencyProfile]:
    """
    Profiles for every practice with enough history, in first-seen order.

    Practices below the minimum history are excluded and counted in one
    INFO message.
    """
    rule = rule or rule_for_metric(metric)
    profiles = []
    insufficient = 0
    for series in build_all_series(records, metric):
        result = analyze_series(series, rule)
        if isinstance(result, InsufficientDataResult):
            insufficient += 1
            continue
        profiles.append(result)

    if insufficient:
        logger.info(
            f"Consistency '{metric}': {insufficient} practice(s) below "
            f"{rule.min_periods} period(s) excluded"
        )
    return profiles


def most_consistent(
    records: Sequence[PracticeMetricRecord],
    metric: str,
    top_n: Optional[int] = None,
    rule: Optional[ConsistencyRule] = None,
) -> List[ConsistencyProfile]:
    """Lowest std_dev first; inactive (all-zero) series are excluded."""
    top_n = top_n if top_n is not None else get_settings().leaderboard_size
    eligible = [profile for profile in consistency_profiles(records, metric, rule) if profile.is_active]
    return sorted(eligible, key=lambda profile: profile.std_dev)[:top_n]


def most_volatile(
    records: Sequence[PracticeMetricRecord],
    metric: str,
    top_n: Optional[int] = None,
    rule: Optional[ConsistencyRule] = None,
) -> List[ConsistencyProfile]:
    """Highest std_dev first; only series with some spread are eligible."""
    top_n = top_n if top_n is not None else get_settings().leaderboard_size
    eligible = [profile for profile in consistency_profiles(records, metric, rule) if profile.std_dev > 0]
    return sorted(eligible, key=lambda profile: profile.std_dev, reverse=True)[:top_n]
