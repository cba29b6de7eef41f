"""
Metric Catalogue.

Single source of truth for every metric the normalizer emits: display label,
unit, source family and performance direction. Ranking and impact scoring
read the direction from here so that "lower is better" for missed calls is
declared once instead of at every call site.

Direction conventions:
    - HIGHER_IS_BETTER: capacity and access measures (appointments per day,
      answered calls, callbacks made, slot utilisation)
    - LOWER_IS_BETTER: failure measures (missed calls, DNAs, unused slots)
    - NEUTRAL: volumes and mix shares that reflect practice strategy rather
      than performance (face-to-face share, submissions per 1000). These
      can only be ranked when the caller supplies a direction.

Value access:
    get_metric_value() is the only way services read a metric from a record.
    It collapses every flavour of "undefined" (missing key, None, NaN,
    infinity) into None so no service ever ranks or averages a NaN.
"""

import math
from typing import Dict, Optional

from practice_analytics.core.exceptions import UndefinedMetricError
from practice_analytics.models.enums import MetricDirection, MetricFamily, MetricUnit
from practice_analytics.models.schemas import MetricDefinition, PracticeMetricRecord


_HIGHER = MetricDirection.HIGHER_IS_BETTER
_LOWER = MetricDirection.LOWER_IS_BETTER
_NEUTRAL = MetricDirection.NEUTRAL

_APPTS = MetricFamily.APPOINTMENTS
_PHONE = MetricFamily.TELEPHONY
_OC = MetricFamily.ONLINE_CONSULTATIONS


def _catalogue(*definitions: MetricDefinition) -> Dict[str, MetricDefinition]:
    return {definition.key: definition for definition in definitions}


def _metric(key: str, label: str, direction: MetricDirection, unit: MetricUnit,
            family: MetricFamily) -> MetricDefinition:
    return MetricDefinition(key=key, label=label, direction=direction, unit=unit, family=family)


METRIC_DEFINITIONS: Dict[str, MetricDefinition] = _catalogue(
    # =========================================================================
    # Counts
    # =========================================================================
    _metric("total_appointments", "Total appointments", _NEUTRAL, MetricUnit.COUNT, _APPTS),
    _metric("gp_appointments", "GP appointments", _NEUTRAL, MetricUnit.COUNT, _APPTS),
    _metric("other_appointments", "Other staff appointments", _NEUTRAL, MetricUnit.COUNT, _APPTS),
    _metric("attended", "Attended appointments", _NEUTRAL, MetricUnit.COUNT, _APPTS),
    _metric("dna", "Did not attend", _LOWER, MetricUnit.COUNT, _APPTS),
    _metric("inbound_calls", "Inbound calls", _NEUTRAL, MetricUnit.COUNT, _PHONE),
    _metric("answered_calls", "Answered calls", _HIGHER, MetricUnit.COUNT, _PHONE),
    _metric("missed_calls", "Missed calls", _LOWER, MetricUnit.COUNT, _PHONE),
    _metric("callback_requested", "Callbacks requested", _NEUTRAL, MetricUnit.COUNT, _PHONE),
    _metric("callback_made", "Callbacks made", _HIGHER, MetricUnit.COUNT, _PHONE),
    _metric("oc_submissions", "Online consultation submissions", _NEUTRAL, MetricUnit.COUNT, _OC),
    _metric("oc_clinical_submissions", "Clinical submissions", _NEUTRAL, MetricUnit.COUNT, _OC),
    _metric("oc_admin_submissions", "Admin submissions", _NEUTRAL, MetricUnit.COUNT, _OC),
    _metric("oc_other_submissions", "Other submissions", _NEUTRAL, MetricUnit.COUNT, _OC),

    # =========================================================================
    # Per working day, as % of registered population
    # =========================================================================
    _metric("gp_appts_per_day_pct", "Patients seen by a GP per day (%)",
            _HIGHER, MetricUnit.PERCENT, _APPTS),
    _metric("other_appts_per_day_pct", "Patients seen by other staff per day (%)",
            _HIGHER, MetricUnit.PERCENT, _APPTS),
    _metric("total_appts_per_day_pct", "Patients seen per day (%)",
            _HIGHER, MetricUnit.PERCENT, _APPTS),
    _metric("gp_appts_or_oc_per_day_pct", "GP appointments or clinical OC per day (%)",
            _HIGHER, MetricUnit.PERCENT, _APPTS),
    _metric("gp_triage_capacity_per_day_pct", "GP triage capacity per day (%)",
            _HIGHER, MetricUnit.PERCENT, _APPTS),

    # =========================================================================
    # Per 1000 registered patients
    # =========================================================================
    _metric("gp_appts_per_1000", "GP appointments per 1000", _HIGHER, MetricUnit.PER_1000, _APPTS),
    _metric("other_appts_per_1000", "Other staff appointments per 1000",
            _HIGHER, MetricUnit.PER_1000, _APPTS),
    _metric("total_appts_per_1000", "Appointments per 1000", _HIGHER, MetricUnit.PER_1000, _APPTS),
    _metric("gp_appts_or_oc_per_1000", "GP appointments or clinical OC per 1000",
            _HIGHER, MetricUnit.PER_1000, _APPTS),
    _metric("calls_per_1000", "Inbound calls per 1000", _NEUTRAL, MetricUnit.PER_1000, _PHONE),
    _metric("missed_calls_per_1000", "Missed calls per 1000", _LOWER, MetricUnit.PER_1000, _PHONE),
    _metric("oc_per_1000", "Submissions per 1000", _NEUTRAL, MetricUnit.PER_1000, _OC),
    _metric("oc_clinical_per_1000", "Clinical submissions per 1000",
            _NEUTRAL, MetricUnit.PER_1000, _OC),

    # =========================================================================
    # Percentages
    # =========================================================================
    _metric("gp_share_pct", "GP share of appointments (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("dna_pct", "DNA rate (%)", _LOWER, MetricUnit.PERCENT, _APPTS),
    _metric("gp_dna_pct", "GP DNA rate (%)", _LOWER, MetricUnit.PERCENT, _APPTS),
    _metric("utilisation_pct", "Slot utilisation (%)", _HIGHER, MetricUnit.PERCENT, _APPTS),
    _metric("gp_utilisation_pct", "GP slot utilisation (%)", _HIGHER, MetricUnit.PERCENT, _APPTS),
    _metric("unused_pct", "Unused slots (%)", _LOWER, MetricUnit.PERCENT, _APPTS),
    _metric("gp_unused_pct", "Unused GP slots (%)", _LOWER, MetricUnit.PERCENT, _APPTS),
    _metric("face_to_face_pct", "Face-to-face (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("telephone_pct", "Telephone appointments (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("video_pct", "Video appointments (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("home_visit_pct", "Home visits (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("same_day_pct", "Booked same day (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("within_week_pct", "Booked within a week (%)", _HIGHER, MetricUnit.PERCENT, _APPTS),
    _metric("booked_1_to_7_days_pct", "Booked 1-7 days ahead (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("booked_8_to_14_days_pct", "Booked 8-14 days ahead (%)", _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("booked_15_to_21_days_pct", "Booked 15-21 days ahead (%)",
            _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("booked_22_to_28_days_pct", "Booked 22-28 days ahead (%)",
            _NEUTRAL, MetricUnit.PERCENT, _APPTS),
    _metric("booked_over_28_days_pct", "Booked over 28 days ahead (%)",
            _LOWER, MetricUnit.PERCENT, _APPTS),
    _metric("booked_15_plus_days_pct", "Booked 15+ days ahead (%)", _LOWER, MetricUnit.PERCENT, _APPTS),
    _metric("missed_call_pct", "Missed calls (%)", _LOWER, MetricUnit.PERCENT, _PHONE),
    _metric("answered_call_pct", "Answered calls (%)", _HIGHER, MetricUnit.PERCENT, _PHONE),
    _metric("ivr_ended_pct", "Calls ended during IVR (%)", _LOWER, MetricUnit.PERCENT, _PHONE),
    _metric("callback_requested_pct", "Callbacks requested (%)",
            _NEUTRAL, MetricUnit.PERCENT, _PHONE),
    _metric("callback_made_pct", "Requested callbacks made (%)",
            _HIGHER, MetricUnit.PERCENT, _PHONE),
    _metric("answered_within_1_min_pct", "Answered within 1 minute (%)",
            _HIGHER, MetricUnit.PERCENT, _PHONE),
    _metric("answered_wait_over_3_min_pct", "Answered after over 3 minutes (%)",
            _LOWER, MetricUnit.PERCENT, _PHONE),
    _metric("missed_wait_under_1_min_pct", "Missed calls ended within 1 minute (%)",
            _NEUTRAL, MetricUnit.PERCENT, _PHONE),
    _metric("missed_wait_1_to_2_min_pct", "Missed calls ended after 1-2 minutes (%)",
            _NEUTRAL, MetricUnit.PERCENT, _PHONE),
    _metric("missed_wait_2_to_3_min_pct", "Missed calls ended after 2-3 minutes (%)",
            _NEUTRAL, MetricUnit.PERCENT, _PHONE),
    _metric("missed_wait_over_3_min_pct", "Missed calls ended after over 3 minutes (%)",
            _LOWER, MetricUnit.PERCENT, _PHONE),
    _metric("oc_clinical_pct", "Clinical share of submissions (%)",
            _NEUTRAL, MetricUnit.PERCENT, _OC),

    # =========================================================================
    # Ratios
    # =========================================================================
    _metric("gp_appts_per_demand", "GP appointments per unit of demand",
            _HIGHER, MetricUnit.RATIO, _APPTS),
    _metric("total_appts_per_demand", "Appointments per unit of demand",
            _HIGHER, MetricUnit.RATIO, _APPTS),
    _metric("gp_appts_per_answered_call", "GP appointments per answered call",
            _HIGHER, MetricUnit.RATIO, _APPTS),
)


def get_metric_definition(key: str) -> MetricDefinition:
    """
    Look up a metric definition.

    Raises:
        KeyError: If the metric is not in the catalogue.
    """
    try:
        return METRIC_DEFINITIONS[key]
    except KeyError:
        raise KeyError(f"Unknown metric: {key}") from None


def resolve_direction(metric: str, direction: Optional[MetricDirection] = None) -> MetricDirection:
    """
    Direction to rank `metric` by.

    An explicit direction wins. Otherwise the catalogue direction is used;
    a NEUTRAL catalogue direction cannot be ranked.

    Raises:
        KeyError: Unknown metric and no explicit direction.
        ValueError: NEUTRAL direction (explicit or from the catalogue).
    """
    if direction is None:
        direction = get_metric_definition(metric).direction
    if direction == MetricDirection.NEUTRAL:
        raise ValueError(
            f"Metric '{metric}' has no performance direction; pass one explicitly"
        )
    return direction


def get_metric_value(record: PracticeMetricRecord, key: str) -> Optional[float]:
    """
    Defined value of a metric, or None.

    Missing keys, None, NaN and infinite values are all undefined.
    """
    value = record.metrics.get(key)
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value


def require_metric_value(record: PracticeMetricRecord, key: str) -> float:
    """
    Defined value of a metric.

    Raises:
        UndefinedMetricError: If the value is undefined.
    """
    value = get_metric_value(record, key)
    if value is None:
        raise UndefinedMetricError(record.practice_id, key)
    return value
