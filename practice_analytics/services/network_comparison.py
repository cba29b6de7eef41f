"""
Network Comparison Service.

Compares a set of practices (typically a network group, or a user-built
comparison set) across a window of reporting periods.

Aggregation:
    Each practice first gets its own mean over the in-window periods where
    the metric is defined (missing periods are excluded, never zero). The
    network statistic is then mean / std_dev / min / max across those
    practice means: an average of practice averages, so every practice
    counts once regardless of list size. This answers "how does this
    practice compare with its peers", where a volume-weighted pooled rate
    (used by impact scoring) would let the largest practice dominate.

Outliers:
    z = (value - mean) / std_dev, flagged when |z| > outlier_z_threshold
    (default 1.5). With std_dev = 0 nothing is ever flagged.

Also provides similar-practice selection by list size and a weighted
combined demand index (100 = national average).
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from practice_analytics.core.config import get_settings
from practice_analytics.models.enums import OutlierDirection
from practice_analytics.models.schemas import (
    NetworkStatistic,
    OutlierResult,
    PracticeMean,
    PracticeMetricRecord,
)
from practice_analytics.services.metric_catalog import get_metric_value
from practice_analytics.services.periods import PeriodLike, parse_period
from practice_analytics.services.statistics import mean, min_max, population_std_dev, z_score

logger = logging.getLogger(__name__)


# Weight of each demand component; renormalised over the sources a record has
DEMAND_INDEX_WEIGHTS: Dict[str, float] = {
    "gp_appts_per_1000": 0.40,
    "other_appts_per_1000": 0.15,
    "calls_per_1000": 0.25,
    "oc_per_1000": 0.20,
}

_DEMAND_INDEX_SOURCES = {
    "gp_appts_per_1000": "has_appointment_data",
    "other_appts_per_1000": "has_appointment_data",
    "calls_per_1000": "has_telephony_data",
    "oc_per_1000": "has_online_consultation_data",
}


# =============================================================================
# Network statistics
# =============================================================================


def _window(periods: Optional[Iterable[PeriodLike]]) -> Optional[set]:
    if periods is None:
        return None
    return {parse_period(period) for period in periods}


def practice_means(
    records: Sequence[PracticeMetricRecord],
    metric: str,
    periods: Optional[Iterable[PeriodLike]] = None,
) -> List[PracticeMean]:
    """
    Each practice's own mean of a metric over the window.

    Practices with no defined value in the window are left out. A later
    record for the same practice and period supersedes an earlier one.
    Order is first appearance in `records`.
    """
    window = _window(periods)
    latest: Dict[str, Dict[date, Optional[float]]] = {}
    names: Dict[str, str] = {}
    for record in records:
        if window is not None and record.period not in window:
            continue
        names.setdefault(record.practice_id, record.practice_name)
        latest.setdefault(record.practice_id, {})[record.period] = get_metric_value(record, metric)

    values: Dict[str, List[float]] = {}
    for practice_id, by_period in latest.items():
        defined = [value for value in by_period.values() if value is not None]
        if defined:
            values[practice_id] = defined

    return [
        PracticeMean(
            practice_id=practice_id,
            practice_name=names[practice_id],
            value=mean(practice_values),
            period_count=len(practice_values),
        )
        for practice_id, practice_values in values.items()
    ]


def network_averages(
    records: Sequence[PracticeMetricRecord],
    metric: str,
    periods: Optional[Iterable[PeriodLike]] = None,
) -> Optional[NetworkStatistic]:
    """
    Distribution of practice means for one metric.

    Args:
        records: Records of the practices being compared.
        metric: Metric key.
        periods: Period window; None means every period in `records`.

    Returns:
        NetworkStatistic, or None when no practice has a defined value.

    Example:
        >>> stat = network_averages(records, "missed_call_pct", ["Sep-25", "Oct-25"])
        >>> stat.sample_size, round(stat.mean, 2)
        (6, 11.42)
    """
    means = practice_means(records, metric, periods)
    if not means:
        logger.debug(f"No practice has a defined '{metric}' in the window")
        return None

    values = [item.value for item in means]
    low, high = min_max(values)
    return NetworkStatistic(
        metric=metric,
        mean=mean(values),
        std_dev=population_std_dev(values) if high > low else 0.0,
        min=low,
        max=high,
        sample_size=len(values),
        practice_means=means,
    )


def network_summary(
    records: Sequence[PracticeMetricRecord],
    metrics: Iterable[str],
    periods: Optional[Iterable[PeriodLike]] = None,
) -> Dict[str, NetworkStatistic]:
    """NetworkStatistic per metric; metrics with no data are omitted."""
    window: Optional[List[date]] = None
    if periods is not None:
        window = [parse_period(period) for period in periods]

    summary = {}
    for metric in metrics:
        stat = network_averages(records, metric, window)
        if stat is not None:
            summary[metric] = stat
    logger.info(f"Network summary: {len(summary)} metric(s) with data")
    return summary


def is_outlier(
    value: Optional[float],
    stat: Optional[NetworkStatistic],
    threshold: Optional[float] = None,
) -> OutlierResult:
    """
    Z-score outlier flag for a value against a network statistic.

    An undefined value, a missing statistic or zero spread is never
    flagged and reports z = 0.
    """
    threshold = get_settings().outlier_z_threshold if threshold is None else threshold
    if threshold <= 0:
        raise ValueError(f"threshold must be positive, got {threshold}")

    if value is None or stat is None or stat.std_dev == 0:
        return OutlierResult(is_outlier=False, direction=None, z_score=0.0)

    z = z_score(value, stat.mean, stat.std_dev)
    if abs(z) > threshold:
        direction = OutlierDirection.ABOVE if z > 0 else OutlierDirection.BELOW
        return OutlierResult(is_outlier=True, direction=direction, z_score=z)
    return OutlierResult(is_outlier=False, direction=None, z_score=z)


# =============================================================================
# Similar practices
# =============================================================================


def find_similar_practices(
    target: PracticeMetricRecord,
    candidates: Sequence[PracticeMetricRecord],
    band: Optional[float] = None,
    count: Optional[int] = None,
    seed: Optional[int] = None,
) -> List[PracticeMetricRecord]:
    """
    Practices with a list size within +/- band of the target's.

    When more than `count` qualify, a sample is drawn with
    numpy.random.default_rng(seed) so the same inputs always give the
    same peers. Returned records keep candidate order.
    """
    settings = get_settings()
    band = settings.similar_practice_band if band is None else band
    count = settings.similar_practice_count if count is None else count
    seed = settings.similar_practice_seed if seed is None else seed

    if not target.population:
        logger.debug(f"{target.practice_id}: no list size, no similar practices")
        return []

    low = target.population * (1 - band)
    high = target.population * (1 + band)

    pool: Dict[str, PracticeMetricRecord] = {}
    for candidate in candidates:
        if candidate.practice_id == target.practice_id or candidate.practice_id in pool:
            continue
        if candidate.population and low <= candidate.population <= high:
            pool[candidate.practice_id] = candidate

    matches = list(pool.values())
    if len(matches) <= count:
        return matches

    rng = np.random.default_rng(seed)
    chosen = sorted(rng.choice(len(matches), size=count, replace=False))
    return [matches[index] for index in chosen]


# =============================================================================
# Combined demand index
# =============================================================================


def combined_demand_index(
    record: PracticeMetricRecord,
    national: Dict[str, NetworkStatistic],
    weights: Optional[Dict[str, float]] = None,
) -> float:
    """
    Weighted demand index relative to national means (100 = average).

    Each component is value / national mean * 100; a missing or zero
    national mean scores 100. Components whose source the record lacks,
    or whose value is undefined, are dropped and the remaining weights
    renormalised.
    """
    weights = weights or DEMAND_INDEX_WEIGHTS
    weighted = 0.0
    total_weight = 0.0
    for metric, weight in weights.items():
        flag = _DEMAND_INDEX_SOURCES.get(metric)
        if flag is not None and not getattr(record, flag):
            continue
        value = get_metric_value(record, metric)
        if value is None:
            continue
        stat = national.get(metric)
        component = 100.0 if stat is None or stat.mean == 0 else value / stat.mean * 100
        weighted += component * weight
        total_weight += weight

    if total_weight == 0:
        return 100.0
    return weighted / total_weight
