"""
Record Normalizer Service.

Turns the raw per-source counts for one practice and one reporting period
into a canonical PracticeMetricRecord. Every other analysis service reads
only these records.

Normalisation families:
    - Counts: raw totals carried through (GP / other staff / total
      appointments, calls, submissions)
    - Per working day (% of population): value / (population x working
      days) x 100, the "patients seen per day" access measure
    - Per 1000: value / population x 1000
    - Percentages of a source's own denominator (DNA rate, missed calls,
      queue wait-time and booking-wait bucket shares)
    - Demand ratios: GP appointments / (inbound calls + clinical online
      consultations)

Edge-case policy:
    - A provider label is GP iff it contains "Dr" or "locum"
      (case-insensitive); everything else is other practice staff.
    - A working day is a weekday date, each date counted once.
    - An absent source sets its has_* flag False and leaves its metrics
      undefined (None). It is never filled with zeros.
    - Per-1000 and per-day metrics are undefined when the population is
      absent or zero; count metrics stay defined.
    - Any metric whose denominator is zero is undefined.

Usage:
    from practice_analytics.services.normalizer import normalize_records

    records = normalize_records(inputs)
"""

import logging
import math
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from practice_analytics.core.exceptions import MissingInputError
from practice_analytics.models.enums import DataSource, StaffGroup, WaitBin
from practice_analytics.models.schemas import (
    AppointmentDay,
    AppointmentSource,
    BookingWaitCounts,
    OnlineConsultationSource,
    PracticeMetricRecord,
    PracticePeriodInput,
    TelephonySource,
    WaitTimeBuckets,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Substrings identifying a GP provider label, matched case-insensitively
GP_LABEL_MARKERS: Tuple[str, ...] = ("dr", "locum")

# date.weekday() values for Saturday and Sunday
WEEKEND_DAYS = frozenset({5, 6})

# Columns of a day-keyed appointment extract that are not provider labels
NON_PROVIDER_COLUMNS = frozenset({"date", "day", "total", "slot type"})

# Metric keys owned by each source, None when the source is absent
_BOOKING_WAIT_KEYS = (
    "within_week_pct", "booked_1_to_7_days_pct", "booked_8_to_14_days_pct",
    "booked_15_to_21_days_pct", "booked_22_to_28_days_pct", "booked_over_28_days_pct",
    "booked_15_plus_days_pct",
)

_APPOINTMENT_KEYS = (
    "total_appointments", "gp_appointments", "other_appointments", "gp_share_pct",
    "attended", "dna", "dna_pct", "gp_dna_pct",
    "unused_pct", "gp_unused_pct", "utilisation_pct", "gp_utilisation_pct",
    "face_to_face_pct", "telephone_pct", "video_pct", "home_visit_pct", "same_day_pct",
) + _BOOKING_WAIT_KEYS

_TELEPHONY_KEYS = (
    "inbound_calls", "answered_calls", "missed_calls", "callback_requested", "callback_made",
    "missed_call_pct", "answered_call_pct", "ivr_ended_pct", "callback_requested_pct",
    "callback_made_pct", "answered_within_1_min_pct", "answered_wait_over_3_min_pct",
    "missed_wait_under_1_min_pct", "missed_wait_1_to_2_min_pct", "missed_wait_2_to_3_min_pct",
    "missed_wait_over_3_min_pct",
)

_ONLINE_CONSULTATION_KEYS = (
    "oc_submissions", "oc_clinical_submissions", "oc_admin_submissions",
    "oc_other_submissions", "oc_clinical_pct",
)


# =============================================================================
# Staff classification and working days
# =============================================================================


def is_gp_provider(label: Optional[str]) -> bool:
    """
    Classify a provider label as GP.

    Example:
        >>> is_gp_provider("Dr A Patel")
        True
        >>> is_gp_provider("Practice Nurse")
        False
    """
    if not label:
        return False
    text = label.strip().lower()
    return any(marker in text for marker in GP_LABEL_MARKERS)


def staff_group(label: Optional[str]) -> StaffGroup:
    """GP or other practice staff for a provider label."""
    return StaffGroup.GP if is_gp_provider(label) else StaffGroup.OTHER


def count_working_days(days: Iterable[date]) -> int:
    """Number of distinct weekday dates."""
    return len({day for day in days if day.weekday() not in WEEKEND_DAYS})


def split_staff_counts(days: Sequence[AppointmentDay]) -> Tuple[int, int]:
    """
    Total appointments split by staff group.

    Returns:
        (gp_appointments, other_appointments)
    """
    gp = 0
    other = 0
    for day in days:
        for label, count in day.counts_by_provider.items():
            if staff_group(label) == StaffGroup.GP:
                gp += count
            else:
                other += count
    return gp, other


# =============================================================================
# Arithmetic helpers
# =============================================================================


def _ratio(numerator: Optional[float], denominator: Optional[float],
           scale: float = 1.0) -> Optional[float]:
    if numerator is None or denominator is None or denominator == 0:
        return None
    return numerator / denominator * scale


def _pct(numerator: Optional[float], denominator: Optional[float]) -> Optional[float]:
    return _ratio(numerator, denominator, 100.0)


def _per_1000(value: Optional[float], population: Optional[int]) -> Optional[float]:
    return _ratio(value, population, 1000.0)


def _per_day_pct(value: Optional[float], population: Optional[int],
                 working_days: int) -> Optional[float]:
    if value is None or not population or not working_days:
        return None
    return value / (population * working_days) * 100


def require_source(raw: PracticePeriodInput, source: DataSource):
    """
    Fetch a raw source from an input.

    Raises:
        MissingInputError: If the source is absent.
    """
    value = getattr(raw, source.value)
    if value is None:
        raise MissingInputError(raw.practice_id, source.value, raw.period.isoformat())
    return value


def _optional_source(raw: PracticePeriodInput, source: DataSource):
    try:
        return require_source(raw, source)
    except MissingInputError as exc:
        logger.debug(str(exc))
        return None


# =============================================================================
# Per-source metric blocks
# =============================================================================


def _appointment_metrics(appts: AppointmentSource) -> Dict[str, Optional[float]]:
    gp, other = split_staff_counts(appts.days)
    total = gp + other
    metrics: Dict[str, Optional[float]] = {
        "total_appointments": float(total),
        "gp_appointments": float(gp),
        "other_appointments": float(other),
        "gp_share_pct": _pct(gp, total),
    }

    if appts.attendance:
        attended = sum(row.attended for row in appts.attendance)
        dna = sum(row.dna for row in appts.attendance)
        gp_dna = sum(row.dna for row in appts.attendance if is_gp_provider(row.provider_label))
        metrics.update({
            "attended": float(attended),
            "dna": float(dna),
            "dna_pct": _pct(dna, total),
            "gp_dna_pct": _pct(gp_dna, gp),
        })
    else:
        metrics.update({"attended": None, "dna": None, "dna_pct": None, "gp_dna_pct": None})

    if appts.slot_usage:
        unused = sum(row.unused_slots for row in appts.slot_usage)
        slots = sum(row.total_slots for row in appts.slot_usage)
        gp_rows = [row for row in appts.slot_usage if is_gp_provider(row.provider_label)]
        gp_unused = sum(row.unused_slots for row in gp_rows)
        gp_slots = sum(row.total_slots for row in gp_rows)
        metrics.update({
            "unused_pct": _pct(unused, slots),
            "gp_unused_pct": _pct(gp_unused, gp_slots),
            "utilisation_pct": _pct(slots - unused, slots),
            "gp_utilisation_pct": _pct(gp_slots - gp_unused, gp_slots),
        })
    else:
        metrics.update({
            "unused_pct": None,
            "gp_unused_pct": None,
            "utilisation_pct": None,
            "gp_utilisation_pct": None,
        })

    modes = appts.modes
    metrics.update({
        "face_to_face_pct": _pct(modes.face_to_face, total) if modes else None,
        "telephone_pct": _pct(modes.telephone, total) if modes else None,
        "video_pct": _pct(modes.video, total) if modes else None,
        "home_visit_pct": _pct(modes.home_visit, total) if modes else None,
        "same_day_pct": _pct(appts.same_day, total),
    })
    metrics.update(_booking_wait_metrics(appts.booking_wait))
    return metrics


def _booking_wait_metrics(wait: Optional[BookingWaitCounts]) -> Dict[str, Optional[float]]:
    if wait is None:
        return dict.fromkeys(_BOOKING_WAIT_KEYS)

    total = wait.total
    fifteen_plus = wait.fifteen_to_21_days + wait.twenty_two_to_28_days + wait.over_28_days
    return {
        # Replaces the same_day count share when the booking-wait table is supplied
        "same_day_pct": _pct(wait.same_day, total),
        "within_week_pct": _pct(wait.same_day + wait.one_day + wait.two_to_7_days, total),
        "booked_1_to_7_days_pct": _pct(wait.one_day + wait.two_to_7_days, total),
        "booked_8_to_14_days_pct": _pct(wait.eight_to_14_days, total),
        "booked_15_to_21_days_pct": _pct(wait.fifteen_to_21_days, total),
        "booked_22_to_28_days_pct": _pct(wait.twenty_two_to_28_days, total),
        "booked_over_28_days_pct": _pct(wait.over_28_days, total),
        "booked_15_plus_days_pct": _pct(fifteen_plus, total),
    }


def _wait_share(buckets: Optional[WaitTimeBuckets], bin_: WaitBin) -> Optional[float]:
    if buckets is None:
        return None
    return _pct(getattr(buckets, bin_.value), buckets.total)


def dominant_wait_bin(buckets: Optional[WaitTimeBuckets]) -> Optional[WaitBin]:
    """
    Wait-time bucket holding the most calls.

    Ties go to the shorter wait. None when the table is absent or empty.

    Example:
        >>> dominant_wait_bin(WaitTimeBuckets(under_1_min=40, one_to_2_min=90))
        <WaitBin.ONE_TO_2_MIN: 'one_to_2_min'>
    """
    if buckets is None or buckets.total == 0:
        return None
    return max(WaitBin, key=lambda bin_: getattr(buckets, bin_.value))


def _telephony_metrics(phone: TelephonySource) -> Dict[str, Optional[float]]:
    answered_wait = phone.answered_wait
    missed_wait = phone.missed_wait
    return {
        "inbound_calls": float(phone.inbound),
        "answered_calls": float(phone.answered),
        "missed_calls": float(phone.missed),
        "callback_requested": float(phone.callback_requested),
        "callback_made": float(phone.callback_made),
        "missed_call_pct": _pct(phone.missed, phone.inbound),
        "answered_call_pct": _pct(phone.answered, phone.inbound),
        "ivr_ended_pct": _pct(phone.ended_during_ivr, phone.inbound),
        "callback_requested_pct": _pct(phone.callback_requested, phone.inbound),
        "callback_made_pct": _pct(phone.callback_made, phone.callback_requested),
        "answered_within_1_min_pct": _wait_share(answered_wait, WaitBin.UNDER_1_MIN),
        "answered_wait_over_3_min_pct": _wait_share(answered_wait, WaitBin.OVER_3_MIN),
        "missed_wait_under_1_min_pct": _wait_share(missed_wait, WaitBin.UNDER_1_MIN),
        "missed_wait_1_to_2_min_pct": _wait_share(missed_wait, WaitBin.ONE_TO_2_MIN),
        "missed_wait_2_to_3_min_pct": _wait_share(missed_wait, WaitBin.TWO_TO_3_MIN),
        "missed_wait_over_3_min_pct": _wait_share(missed_wait, WaitBin.OVER_3_MIN),
    }


def _online_consultation_metrics(oc: OnlineConsultationSource) -> Dict[str, Optional[float]]:
    return {
        "oc_submissions": float(oc.total),
        "oc_clinical_submissions": float(oc.clinical),
        "oc_admin_submissions": float(oc.admin),
        "oc_other_submissions": float(oc.other),
        "oc_clinical_pct": _pct(oc.clinical, oc.total),
    }


# =============================================================================
# Record normalisation
# =============================================================================


def normalize_record(raw: PracticePeriodInput) -> PracticeMetricRecord:
    """
    Build the canonical metric record for one practice and period.

    Absent sources never raise: the record is produced with the matching
    has_* flag False and that source's metrics set to None.

    Args:
        raw: Raw counts for one (practice, period).

    Returns:
        PracticeMetricRecord with every catalogue metric key present.
    """
    appts = _optional_source(raw, DataSource.APPOINTMENTS)
    phone = _optional_source(raw, DataSource.TELEPHONY)
    oc = _optional_source(raw, DataSource.ONLINE_CONSULTATIONS)
    population = raw.population

    metrics: Dict[str, Optional[float]] = {}
    working_days = 0

    # Each block seeds its keys as None when absent so records share one key set
    if appts is not None:
        working_days = count_working_days(day.day for day in appts.days)
        metrics.update(_appointment_metrics(appts))
    else:
        metrics.update(dict.fromkeys(_APPOINTMENT_KEYS))

    if phone is not None:
        metrics.update(_telephony_metrics(phone))
    else:
        metrics.update(dict.fromkeys(_TELEPHONY_KEYS))

    if oc is not None:
        metrics.update(_online_consultation_metrics(oc))
    else:
        metrics.update(dict.fromkeys(_ONLINE_CONSULTATION_KEYS))

    gp = metrics["gp_appointments"]
    other = metrics["other_appointments"]
    total = metrics["total_appointments"]
    inbound = metrics["inbound_calls"]
    missed = metrics["missed_calls"]
    oc_total = metrics["oc_submissions"]
    oc_clinical = metrics["oc_clinical_submissions"]

    # Clinical submissions add to GP contact when online data exists
    clinical_contact = oc_clinical or 0.0
    resolved_online = 0.0
    if oc is not None and oc.clinical_without_appointment is not None:
        resolved_online = float(oc.clinical_without_appointment)

    gp_or_oc = gp + clinical_contact if gp is not None else None
    triage_capacity = gp + resolved_online if gp is not None else None
    demand = (inbound or 0.0) + clinical_contact

    metrics.update({
        # Per working day, % of population
        "gp_appts_per_day_pct": _per_day_pct(gp, population, working_days),
        "other_appts_per_day_pct": _per_day_pct(other, population, working_days),
        "total_appts_per_day_pct": _per_day_pct(total, population, working_days),
        "gp_appts_or_oc_per_day_pct": _per_day_pct(gp_or_oc, population, working_days),
        "gp_triage_capacity_per_day_pct": _per_day_pct(triage_capacity, population, working_days),

        # Per 1000
        "gp_appts_per_1000": _per_1000(gp, population),
        "other_appts_per_1000": _per_1000(other, population),
        "total_appts_per_1000": _per_1000(total, population),
        "gp_appts_or_oc_per_1000": _per_1000(gp_or_oc, population),
        "calls_per_1000": _per_1000(inbound, population),
        "missed_calls_per_1000": _per_1000(missed, population),
        "oc_per_1000": _per_1000(oc_total, population),
        "oc_clinical_per_1000": _per_1000(oc_clinical, population),

        # Demand ratios
        "gp_appts_per_demand": _ratio(gp, demand),
        "total_appts_per_demand": _ratio(total, demand),
        "gp_appts_per_answered_call": _ratio(gp, metrics["answered_calls"]),
    })

    return PracticeMetricRecord(
        practice_id=raw.practice_id,
        practice_name=raw.practice_name,
        network_group_id=raw.network_group_id,
        network_group_name=raw.network_group_name,
        regional_group_id=raw.regional_group_id,
        regional_group_name=raw.regional_group_name,
        period=raw.period,
        population=population,
        working_days=working_days,
        metrics=metrics,
        answered_wait_bin=dominant_wait_bin(phone.answered_wait) if phone is not None else None,
        missed_wait_bin=dominant_wait_bin(phone.missed_wait) if phone is not None else None,
        has_appointment_data=appts is not None,
        has_telephony_data=phone is not None,
        has_online_consultation_data=oc is not None,
    )


def normalize_records(inputs: Iterable[PracticePeriodInput]) -> List[PracticeMetricRecord]:
    """
    Normalise a batch of raw inputs, preserving input order.

    Logs one INFO summary of how many records carry each source.
    """
    records = [normalize_record(raw) for raw in inputs]

    with_appts = sum(1 for record in records if record.has_appointment_data)
    with_phone = sum(1 for record in records if record.has_telephony_data)
    with_oc = sum(1 for record in records if record.has_online_consultation_data)
    no_population = sum(1 for record in records if not record.population)
    logger.info(
        f"Normalised {len(records)} records: appointments={with_appts}, "
        f"telephony={with_phone}, online_consultations={with_oc}, "
        f"without population={no_population}"
    )
    return records


# =============================================================================
# Day-keyed extract conversion
# =============================================================================


def appointment_days_from_frame(df: pd.DataFrame) -> List[AppointmentDay]:
    """
    Convert a day-keyed appointment extract into AppointmentDay rows.

    The frame has a `Date` column, an optional `Day` column and one column
    per provider label. Non-numeric cells count as zero; rows whose date
    cannot be parsed, negative cells and infinite cells are skipped with a
    warning.

    Args:
        df: Extract as parsed by the upstream CSV/spreadsheet reader.

    Returns:
        One AppointmentDay per valid row, in frame order.

    Raises:
        KeyError: If the frame has no `Date` column.
    """
    if "Date" not in df.columns:
        raise KeyError("Appointment extract is missing the 'Date' column")

    provider_columns = [
        column for column in df.columns
        if str(column).strip().lower() not in NON_PROVIDER_COLUMNS
    ]
    dates = pd.to_datetime(df["Date"], errors="coerce", dayfirst=True)
    counts = (
        df[provider_columns]
        .apply(pd.to_numeric, errors="coerce")
        .fillna(0)
    )

    days: List[AppointmentDay] = []
    skipped = 0
    for position, parsed in enumerate(dates):
        if pd.isna(parsed):
            skipped += 1
            logger.warning(f"Skipping appointment row {position}: unparseable date {df['Date'].iloc[position]!r}")
            continue

        row_counts: Dict[str, int] = {}
        for column in provider_columns:
            raw = float(counts[column].iloc[position])
            if math.isinf(raw):
                logger.warning(f"Skipping non-finite count for '{column}' on {parsed.date()}")
                continue
            value = int(raw)
            if value < 0:
                logger.warning(f"Skipping negative count {value} for '{column}' on {parsed.date()}")
                continue
            if value:
                row_counts[str(column).strip()] = value

        days.append(AppointmentDay(day=parsed.date(), counts_by_provider=row_counts))

    if skipped:
        logger.info(f"Converted {len(days)} appointment days, skipped {skipped} row(s)")
    return days


def split_days_by_period(days: Iterable[AppointmentDay]) -> Dict[date, List[AppointmentDay]]:
    """Group appointment days by reporting month, in chronological order."""
    grouped: Dict[date, List[AppointmentDay]] = {}
    for day in sorted(days, key=lambda item: item.day):
        grouped.setdefault(day.day.replace(day=1), []).append(day)
    return grouped
