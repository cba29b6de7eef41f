"""
Impact Scoring Service.

Volume-weighted rate difference between a practice and a reference rate:

    impact = (national_rate - practice_rate) * practice_volume

For missed calls this is "calls saved": a practice missing 5% of 1,000
calls against a 10% national rate saved 50 calls. Scaling by the practice's
own volume weights large practices more than small ones at an equal
percentage-point gap. For a higher-is-better rate the sign is flipped so
that a positive impact always means the practice outperforms.

Aggregation choices:
    - National reference rate: pooled, sum(events) / sum(volume) across all
      practices, i.e. the rate a patient actually experiences nationally.
    - Group (network / regional) impact: raw counts summed across member
      practices to give one pooled group rate and one group impact. Averaging
      per-practice ratios would let small practices distort the group
      figure (a Simpson's-paradox effect), so ratios are never averaged here.

Usage:
    from practice_analytics.services.impact import pooled_rate, rank_by_impact

    national = pooled_rate(records)
    leaderboard = rank_by_impact(records, national)
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from practice_analytics.models.enums import GroupLevel, MetricDirection
from practice_analytics.models.schemas import GroupImpact, ImpactScore, PracticeMetricRecord
from practice_analytics.services.metric_catalog import get_metric_value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImpactSpec:
    """
    Event and volume metrics an impact score is built from.

    The rate is events / volume as a fraction (not a percentage).
    """
    events_metric: str
    volume_metric: str
    direction: MetricDirection = MetricDirection.LOWER_IS_BETTER


MISSED_CALL_IMPACT = ImpactSpec(events_metric="missed_calls", volume_metric="inbound_calls")


# =============================================================================
# Rates
# =============================================================================


def _events_and_volume(record: PracticeMetricRecord, spec: ImpactSpec) -> Optional[Tuple[float, float]]:
    events = get_metric_value(record, spec.events_metric)
    volume = get_metric_value(record, spec.volume_metric)
    if events is None or volume is None:
        return None
    return events, volume


def practice_rate(record: PracticeMetricRecord, spec: ImpactSpec = MISSED_CALL_IMPACT) -> Optional[float]:
    """events / volume for one record; None when undefined or volume is 0."""
    counts = _events_and_volume(record, spec)
    if counts is None or counts[1] == 0:
        return None
    events, volume = counts
    return events / volume


def pooled_rate(
    records: Sequence[PracticeMetricRecord],
    spec: ImpactSpec = MISSED_CALL_IMPACT,
) -> Optional[float]:
    """
    sum(events) / sum(volume) over records where both are defined.

    Returns None when the total volume is zero.
    """
    total_events = 0.0
    total_volume = 0.0
    for record in records:
        counts = _events_and_volume(record, spec)
        if counts is None:
            continue
        total_events += counts[0]
        total_volume += counts[1]
    if total_volume == 0:
        return None
    return total_events / total_volume


def _signed_gap(rate: float, national_rate: float, direction: MetricDirection) -> float:
    if direction == MetricDirection.HIGHER_IS_BETTER:
        return rate - national_rate
    return national_rate - rate


# =============================================================================
# Practice impact
# =============================================================================


def calls_saved(
    record: PracticeMetricRecord,
    national_rate: float,
    spec: ImpactSpec = MISSED_CALL_IMPACT,
) -> Optional[float]:
    """
    Volume-weighted impact for one practice.

    Returns None when the source is absent or the practice's volume is
    zero. A practice whose rate equals national_rate scores exactly 0.

    Example:
        >>> calls_saved(record_with_5_of_100_missed, 0.10)
        5.0
    """
    counts = _events_and_volume(record, spec)
    if counts is None or counts[1] == 0:
        logger.debug(f"{record.practice_id}: no '{spec.volume_metric}' volume, impact undefined")
        return None
    events, volume = counts
    return _signed_gap(events / volume, national_rate, spec.direction) * volume


def rank_by_impact(
    population: Sequence[PracticeMetricRecord],
    national_rate: float,
    spec: ImpactSpec = MISSED_CALL_IMPACT,
) -> List[ImpactScore]:
    """
    Impact leaderboard, highest impact first.

    Always descending: the sign already encodes whether the underlying
    rate is better high or low. Ties keep input order; practices with an
    undefined impact are excluded.
    """
    scores = []
    for record in population:
        impact = calls_saved(record, national_rate, spec)
        if impact is None:
            continue
        events, volume = _events_and_volume(record, spec)
        scores.append(ImpactScore(
            practice_id=record.practice_id,
            practice_name=record.practice_name,
            volume=volume,
            rate=events / volume,
            national_rate=national_rate,
            impact=impact,
        ))

    excluded = len(population) - len(scores)
    if excluded:
        logger.info(f"Impact ranking: {excluded} of {len(population)} record(s) without volume excluded")

    ordered = sorted(scores, key=lambda score: score.impact, reverse=True)
    return [
        score.model_copy(update={"rank": position})
        for position, score in enumerate(ordered, start=1)
    ]


# =============================================================================
# Group impact
# =============================================================================


def _group_key(record: PracticeMetricRecord, group_by: GroupLevel) -> Tuple[Optional[str], Optional[str]]:
    if group_by == GroupLevel.REGIONAL:
        return record.regional_group_id, record.regional_group_name
    return record.network_group_id, record.network_group_name


def group_impacts(
    records: Sequence[PracticeMetricRecord],
    national_rate: float,
    group_by: GroupLevel = GroupLevel.NETWORK,
    spec: ImpactSpec = MISSED_CALL_IMPACT,
) -> List[GroupImpact]:
    """
    Pooled rate and impact per network or regional group.

    Records without a group id are skipped, as are groups with no volume.
    Groups are ordered best pooled rate first (ascending for a
    lower-is-better rate) and ranked 1..N.
    """
    totals: Dict[str, Dict] = {}
    skipped = 0
    for record in records:
        group_id, group_name = _group_key(record, group_by)
        if not group_id:
            skipped += 1
            continue
        counts = _events_and_volume(record, spec)
        entry = totals.setdefault(group_id, {
            "name": group_name or "",
            "practices": set(),
            "events": 0.0,
            "volume": 0.0,
        })
        entry["practices"].add(record.practice_id)
        if counts is not None:
            entry["events"] += counts[0]
            entry["volume"] += counts[1]

    if skipped:
        logger.debug(f"Group impact: {skipped} record(s) without a {group_by.value} id skipped")

    groups = []
    for group_id, entry in totals.items():
        if entry["volume"] == 0:
            logger.debug(f"Group {group_id}: no volume, excluded")
            continue
        rate = entry["events"] / entry["volume"]
        groups.append(GroupImpact(
            group_id=group_id,
            group_name=entry["name"],
            level=group_by,
            practice_count=len(entry["practices"]),
            total_events=entry["events"],
            total_volume=entry["volume"],
            pooled_rate=rate,
            impact=_signed_gap(rate, national_rate, spec.direction) * entry["volume"],
        ))

    ordered = sorted(
        groups,
        key=lambda group: group.pooled_rate,
        reverse=spec.direction == MetricDirection.HIGHER_IS_BETTER,
    )
    return [
        group.model_copy(update={"rank": position})
        for position, group in enumerate(ordered, start=1)
    ]
