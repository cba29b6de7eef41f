"""
Cross-Sectional Ranking Service.

Ranks one practice's metric value against a scoped peer population for a
single reporting period.

Algorithm:
    1. Scope the population (national = everyone, regional = same regional
       group, network = same network group).
    2. Drop records whose metric is undefined. Exclusion happens before
       sorting, so the result does not depend on where undefined records
       sat in the input.
    3. Sort by value: ascending when lower is better, descending when
       higher is better. Python's sort is stable, so tied values keep
       their input order and every practice gets a distinct rank.
    4. rank = 1-based position of the target;
       percentile = rank / population size * 100, rounded half up.

Ties are deliberately not averaged or shared: ranks are always exactly
1..N.

Percentile here is rank-based position (lower = better), not a statistical
quantile.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from practice_analytics.core.config import get_settings
from practice_analytics.core.exceptions import UndefinedMetricError
from practice_analytics.models.enums import (
    AccessBand,
    MetricDirection,
    PerformanceBand,
    RankingScope,
)
from practice_analytics.models.schemas import (
    PracticeMetricRecord,
    RankedPractice,
    RankingResult,
)
from practice_analytics.services.metric_catalog import require_metric_value, resolve_direction

logger = logging.getLogger(__name__)


# =============================================================================
# Interpretation bands
# =============================================================================

# Upper bound (inclusive) of each percentile band; above the last is AMONGST_WORST
PERCENTILE_BANDS: Tuple[Tuple[float, PerformanceBand], ...] = (
    (5.0, PerformanceBand.EXCELLENT),
    (10.0, PerformanceBand.GREAT),
    (25.0, PerformanceBand.GOOD),
    (50.0, PerformanceBand.ABOVE_AVERAGE),
    (75.0, PerformanceBand.BELOW_AVERAGE),
    (90.0, PerformanceBand.POOR),
    (95.0, PerformanceBand.VERY_POOR),
)

# Patients seen by a GP per working day (% of list)
GP_ACCESS_EXCELLENT = 1.30
GP_ACCESS_GOOD = 1.10
GP_ACCESS_ACCEPTABLE = 0.85


# =============================================================================
# Population helpers
# =============================================================================


def scope_population(
    record: PracticeMetricRecord,
    population: Sequence[PracticeMetricRecord],
    scope: RankingScope = RankingScope.NATIONAL,
) -> List[PracticeMetricRecord]:
    """
    Peers of `record` within a scope, in input order.

    A record with no group id for the requested scope has no regional or
    network peers, so an empty list is returned.
    """
    if scope == RankingScope.NATIONAL:
        return list(population)

    if scope == RankingScope.REGIONAL:
        group_id = record.regional_group_id
        if group_id is None:
            return []
        return [peer for peer in population if peer.regional_group_id == group_id]

    group_id = record.network_group_id
    if group_id is None:
        return []
    return [peer for peer in population if peer.network_group_id == group_id]


def _defined_values(
    population: Sequence[PracticeMetricRecord],
    metric: str,
) -> List[Tuple[PracticeMetricRecord, float]]:
    defined = []
    excluded = 0
    for record in population:
        try:
            defined.append((record, require_metric_value(record, metric)))
        except UndefinedMetricError as exc:
            excluded += 1
            logger.debug(f"Excluded from ranking: {exc}")
    if excluded:
        logger.info(f"Ranking '{metric}': {excluded} of {len(population)} record(s) undefined")
    return defined


def _sorted_values(
    population: Sequence[PracticeMetricRecord],
    metric: str,
    direction: MetricDirection,
) -> List[Tuple[PracticeMetricRecord, float]]:
    defined = _defined_values(population, metric)
    # reverse=True keeps equal items in input order
    return sorted(
        defined,
        key=lambda item: item[1],
        reverse=direction == MetricDirection.HIGHER_IS_BETTER,
    )


def _percentile(rank: int, size: int) -> float:
    # Half-up on the exact quotient; round() would send 12.25 to 12.2
    exact = Decimal(rank * 100) / Decimal(size)
    step = Decimal(1).scaleb(-get_settings().percentile_decimals)
    return float(exact.quantize(step, rounding=ROUND_HALF_UP))


# =============================================================================
# Ranking
# =============================================================================


def rank_practice(
    record: PracticeMetricRecord,
    population: Sequence[PracticeMetricRecord],
    metric: str,
    direction: Optional[MetricDirection] = None,
    scope: RankingScope = RankingScope.NATIONAL,
) -> Optional[RankingResult]:
    """
    Rank one practice within a scoped population.

    Args:
        record: The practice being ranked (matched by practice_id).
        population: All records for the period.
        metric: Metric key.
        direction: Overrides the catalogue direction.
        scope: national / regional / network.

    Returns:
        RankingResult, or None when the practice's own value is undefined
        or it is not part of the scoped population.

    Raises:
        ValueError: If the metric is NEUTRAL and no direction is given.

    Example:
        >>> result = rank_practice(record, records, "missed_call_pct",
        ...                        scope=RankingScope.NETWORK)
        >>> result.rank, result.population_size, result.percentile
        (2, 6, 33.3)
    """
    direction = resolve_direction(metric, direction)
    peers = scope_population(record, population, scope)
    ranked = _sorted_values(peers, metric, direction)

    for position, (peer, value) in enumerate(ranked, start=1):
        if peer.practice_id == record.practice_id:
            return RankingResult(
                practice_id=record.practice_id,
                metric=metric,
                scope=scope,
                direction=direction,
                value=value,
                rank=position,
                population_size=len(ranked),
                percentile=_percentile(position, len(ranked)),
            )

    logger.debug(
        f"{record.practice_id} not ranked for '{metric}' ({scope.value}): "
        f"value undefined or outside scope"
    )
    return None


def rank_population(
    population: Sequence[PracticeMetricRecord],
    metric: str,
    direction: Optional[MetricDirection] = None,
) -> List[RankedPractice]:
    """Full leaderboard for a metric, best first, undefined values excluded."""
    direction = resolve_direction(metric, direction)
    ranked = _sorted_values(population, metric, direction)
    size = len(ranked)
    return [
        RankedPractice(
            practice_id=record.practice_id,
            practice_name=record.practice_name,
            value=value,
            rank=position,
            percentile=_percentile(position, size),
        )
        for position, (record, value) in enumerate(ranked, start=1)
    ]


def rank_all_scopes(
    record: PracticeMetricRecord,
    population: Sequence[PracticeMetricRecord],
    metric: str,
    direction: Optional[MetricDirection] = None,
) -> Dict[RankingScope, Optional[RankingResult]]:
    """National, regional and network ranking of one practice."""
    return {
        scope: rank_practice(record, population, metric, direction, scope)
        for scope in RankingScope
    }


# =============================================================================
# Interpretation
# =============================================================================


def interpret_percentile(percentile: float) -> PerformanceBand:
    """
    Band for a rank-based percentile (1 = best).

    Example:
        >>> interpret_percentile(4.2)
        <PerformanceBand.EXCELLENT: 'excellent'>
    """
    for upper, band in PERCENTILE_BANDS:
        if percentile <= upper:
            return band
    return PerformanceBand.AMONGST_WORST


def gp_access_band(gp_appts_per_day_pct: float) -> AccessBand:
    """Access band from the percentage of patients seen by a GP per day."""
    if gp_appts_per_day_pct > GP_ACCESS_EXCELLENT:
        return AccessBand.EXCELLENT
    if gp_appts_per_day_pct >= GP_ACCESS_GOOD:
        return AccessBand.GOOD
    if gp_appts_per_day_pct >= GP_ACCESS_ACCEPTABLE:
        return AccessBand.ACCEPTABLE
    return AccessBand.NEEDS_IMPROVEMENT
