"""
Pydantic models for the practice analytics engine.

Two groups of models live here:

Raw input (from upstream extraction collaborators):
- AppointmentDay, AttendanceCounts, SlotUsage, AppointmentModeCounts,
  BookingWaitCounts, AppointmentSource
- WaitTimeBuckets, TelephonySource
- OnlineConsultationSource
- PracticePeriodInput: one practice, one reporting period, each optional
  source either present or None ("source absent", never all-zero)

Analysis output (to report, chart and prompt-building layers):
- PracticeMetricRecord, MetricSeries, SeriesPoint
- RankingResult, RankedPractice
- ConsistencyProfile, InsufficientDataResult
- ImpactScore, GroupImpact
- LinearFit, ForecastPoint, ForecastResult
- PracticeMean, NetworkStatistic, OutlierResult, DataCoverage
- MetricDefinition

Output models are frozen: they are computed on demand for a single analysis
call and never mutated afterwards. A re-extracted period produces a new
PracticeMetricRecord rather than updating an existing one.

All models use Pydantic v2 syntax.
"""

import math
from datetime import date as DateType
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from practice_analytics.models.enums import (
    GroupLevel,
    MetricDirection,
    MetricFamily,
    MetricUnit,
    OutlierDirection,
    RankingScope,
    TrendLabel,
    WaitBin,
)


def _first_of_month(value: DateType) -> DateType:
    return value.replace(day=1)


# =============================================================================
# Raw Input - Appointments
# =============================================================================


class AppointmentDay(BaseModel):
    """
    Appointment counts for one calendar day, keyed by provider label.

    Provider labels are the staff names or roles exactly as they appear in
    the clinical system export (e.g. "Dr A Smith", "Locum GP", "Nurse B").
    """
    model_config = ConfigDict(frozen=True)

    day: DateType = Field(..., description="Calendar date of the appointments")
    counts_by_provider: Dict[str, int] = Field(
        default_factory=dict,
        description="Appointments booked per provider label"
    )

    @field_validator('counts_by_provider')
    @classmethod
    def _non_negative_counts(cls, value: Dict[str, int]) -> Dict[str, int]:
        negative = [label for label, count in value.items() if count < 0]
        if negative:
            raise ValueError(f"Negative appointment counts for {negative}")
        return value


class AttendanceCounts(BaseModel):
    """Attendance outcome counts for one provider over the period."""
    model_config = ConfigDict(frozen=True)

    provider_label: str
    attended: int = Field(default=0, ge=0)
    dna: int = Field(default=0, ge=0, description="Did not attend")
    unknown: int = Field(default=0, ge=0)


class SlotUsage(BaseModel):
    """Offered versus unused slots for one provider over the period."""
    model_config = ConfigDict(frozen=True)

    provider_label: str
    unused_slots: int = Field(default=0, ge=0)
    total_slots: int = Field(default=0, ge=0)


class AppointmentModeCounts(BaseModel):
    """Appointment counts by delivery mode."""
    model_config = ConfigDict(frozen=True)

    face_to_face: int = Field(default=0, ge=0)
    telephone: int = Field(default=0, ge=0)
    video: int = Field(default=0, ge=0)
    home_visit: int = Field(default=0, ge=0)


class BookingWaitCounts(BaseModel):
    """
    Appointments by days between booking and the appointment date.

    `unknown` counts appointments with no recorded booking date; it stays in
    the denominator of every share.
    """
    model_config = ConfigDict(frozen=True)

    same_day: int = Field(default=0, ge=0)
    one_day: int = Field(default=0, ge=0)
    two_to_7_days: int = Field(default=0, ge=0)
    eight_to_14_days: int = Field(default=0, ge=0)
    fifteen_to_21_days: int = Field(default=0, ge=0)
    twenty_two_to_28_days: int = Field(default=0, ge=0)
    over_28_days: int = Field(default=0, ge=0)
    unknown: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return (
            self.same_day + self.one_day + self.two_to_7_days + self.eight_to_14_days
            + self.fifteen_to_21_days + self.twenty_two_to_28_days + self.over_28_days
            + self.unknown
        )


class AppointmentSource(BaseModel):
    """
    All appointment data for one practice and period.

    Only `days` is required; attendance, slot usage, modes, same-day and
    booking-wait counts are optional supplements and their metrics are
    undefined when they are not supplied.
    """
    model_config = ConfigDict(frozen=True)

    days: List[AppointmentDay] = Field(default_factory=list)
    attendance: List[AttendanceCounts] = Field(default_factory=list)
    slot_usage: List[SlotUsage] = Field(default_factory=list)
    modes: Optional[AppointmentModeCounts] = None
    same_day: Optional[int] = Field(default=None, ge=0)
    booking_wait: Optional[BookingWaitCounts] = None


# =============================================================================
# Raw Input - Telephony
# =============================================================================


class WaitTimeBuckets(BaseModel):
    """Call counts by time spent waiting in the queue."""
    model_config = ConfigDict(frozen=True)

    under_1_min: int = Field(default=0, ge=0)
    one_to_2_min: int = Field(default=0, ge=0)
    two_to_3_min: int = Field(default=0, ge=0)
    over_3_min: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.under_1_min + self.one_to_2_min + self.two_to_3_min + self.over_3_min


class TelephonySource(BaseModel):
    """
    Monthly telephony counts for one practice.

    `missed` counts calls that reached the queue and were not answered;
    `ended_during_ivr` counts calls abandoned before reaching the queue.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "inbound": 4200,
                "answered": 3700,
                "missed": 380,
                "ended_during_ivr": 120,
                "callback_requested": 210,
                "callback_made": 195
            }
        }
    )

    inbound: int = Field(..., ge=0, description="Inbound calls received")
    answered: int = Field(default=0, ge=0)
    missed: int = Field(default=0, ge=0)
    ended_during_ivr: int = Field(default=0, ge=0)
    callback_requested: int = Field(default=0, ge=0)
    callback_made: int = Field(default=0, ge=0)
    answered_wait: Optional[WaitTimeBuckets] = None
    missed_wait: Optional[WaitTimeBuckets] = None


# =============================================================================
# Raw Input - Online Consultations
# =============================================================================


class OnlineConsultationSource(BaseModel):
    """
    Online consultation submissions for one practice, by purpose.

    `clinical_without_appointment` counts clinical submissions resolved
    without booking an appointment; it feeds GP triage capacity.
    """
    model_config = ConfigDict(frozen=True)

    clinical: int = Field(default=0, ge=0, description="Medical submissions")
    admin: int = Field(default=0, ge=0)
    other: int = Field(default=0, ge=0)
    clinical_without_appointment: Optional[int] = Field(default=None, ge=0)

    @property
    def total(self) -> int:
        return self.clinical + self.admin + self.other


# =============================================================================
# Raw Input - Practice Period
# =============================================================================


class PracticePeriodInput(BaseModel):
    """
    Everything known about one practice for one reporting period.

    A source set to None is absent. Upstream collaborators must not
    substitute all-zero counts for a source they could not obtain.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "practice_id": "C82040",
                "practice_name": "Orchard Surgery",
                "network_group_id": "U12345",
                "network_group_name": "Rushcliffe PCN",
                "regional_group_id": "QT1",
                "regional_group_name": "NHS Nottingham and Nottinghamshire ICB",
                "period": "2025-10-01",
                "population": 11250
            }
        }
    )

    practice_id: str = Field(..., min_length=1, description="ODS code")
    practice_name: str = ""
    network_group_id: Optional[str] = Field(default=None, description="PCN code")
    network_group_name: Optional[str] = None
    regional_group_id: Optional[str] = Field(default=None, description="ICB code")
    regional_group_name: Optional[str] = None
    period: DateType = Field(..., description="Reporting month (first day)")
    population: Optional[int] = Field(
        default=None,
        ge=0,
        description="Registered list size; None when unknown"
    )
    appointments: Optional[AppointmentSource] = None
    telephony: Optional[TelephonySource] = None
    online_consultations: Optional[OnlineConsultationSource] = None

    @field_validator('period')
    @classmethod
    def _normalise_period(cls, value: DateType) -> DateType:
        return _first_of_month(value)


# =============================================================================
# Canonical Record
# =============================================================================


class MetricValues(dict):
    """
    Read-only metric mapping held by a PracticeMetricRecord.

    A plain dict for reading, serialisation, copying and pickling; every
    in-place mutation raises TypeError.
    """

    def _read_only(self, *args, **kwargs):
        raise TypeError("PracticeMetricRecord.metrics is read-only")

    __setitem__ = _read_only
    __delitem__ = _read_only
    __ior__ = _read_only
    clear = _read_only
    pop = _read_only
    popitem = _read_only
    setdefault = _read_only
    update = _read_only

    def __reduce__(self):
        return (MetricValues, (dict(self),))

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


class PracticeMetricRecord(BaseModel):
    """
    Canonical metrics for one practice in one reporting period.

    A metric value of None means undefined: the source is absent or the
    denominator is zero. Per-1000 and per-day metrics are None whenever the
    population is absent or zero. Consumers must check the has_* flags
    before trusting a zero count.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "practice_id": "C82040",
                "practice_name": "Orchard Surgery",
                "network_group_id": "U12345",
                "regional_group_id": "QT1",
                "period": "2025-10-01",
                "population": 11250,
                "working_days": 23,
                "metrics": {
                    "gp_appointments": 2890,
                    "gp_appts_per_day_pct": 1.117,
                    "missed_call_pct": 9.05
                },
                "has_appointment_data": True,
                "has_telephony_data": True,
                "has_online_consultation_data": False
            }
        }
    )

    practice_id: str
    practice_name: str = ""
    network_group_id: Optional[str] = None
    network_group_name: Optional[str] = None
    regional_group_id: Optional[str] = None
    regional_group_name: Optional[str] = None
    period: DateType
    population: Optional[int] = None
    working_days: int = Field(default=0, ge=0)
    metrics: Dict[str, Optional[float]] = Field(default_factory=MetricValues)
    answered_wait_bin: Optional[WaitBin] = Field(
        default=None, description="Most common queue wait of answered calls"
    )
    missed_wait_bin: Optional[WaitBin] = Field(
        default=None, description="Most common queue wait before a missed call ended"
    )
    has_appointment_data: bool = False
    has_telephony_data: bool = False
    has_online_consultation_data: bool = False

    @field_validator('metrics')
    @classmethod
    def _read_only_metrics(cls, value: Dict[str, Optional[float]]) -> MetricValues:
        return MetricValues(value)


class MetricDefinition(BaseModel):
    """
    Static description of a metric: label, unit, family and direction.

    Direction is declared once here so ranking and impact scoring never
    infer it at the call site.
    """
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    direction: MetricDirection
    unit: MetricUnit
    family: MetricFamily


# =============================================================================
# Series
# =============================================================================


class SeriesPoint(BaseModel):
    """One observed value of a metric for one period."""
    model_config = ConfigDict(frozen=True)

    period: DateType
    value: float


class MetricSeries(BaseModel):
    """
    Period-ordered values of one metric for one practice.

    Periods without a defined value are absent from `points`; they are
    never represented as zero.
    """
    model_config = ConfigDict(frozen=True)

    practice_id: str
    practice_name: str = ""
    metric: str
    points: List[SeriesPoint] = Field(default_factory=list)

    @field_validator('points')
    @classmethod
    def _sorted_unique_periods(cls, value: List[SeriesPoint]) -> List[SeriesPoint]:
        # NaN / infinite values are undefined periods, dropped like missing ones
        defined = [point for point in value if math.isfinite(point.value)]
        ordered = sorted(defined, key=lambda point: point.period)
        periods = [point.period for point in ordered]
        if len(set(periods)) != len(periods):
            raise ValueError("MetricSeries cannot hold two values for one period")
        return ordered

    @property
    def values(self) -> List[float]:
        return [point.value for point in self.points]


# =============================================================================
# Ranking
# =============================================================================


class RankingResult(BaseModel):
    """
    Position of one practice within a scoped peer population.

    rank is 1-based; percentile = rank / population_size * 100, so a lower
    percentile is always the better position regardless of direction.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "practice_id": "C82040",
                "metric": "missed_call_pct",
                "scope": "regional",
                "direction": "lower_is_better",
                "value": 9.05,
                "rank": 14,
                "population_size": 120,
                "percentile": 11.7
            }
        }
    )

    practice_id: str
    metric: str
    scope: RankingScope
    direction: MetricDirection
    value: float
    rank: int = Field(..., ge=1)
    population_size: int = Field(..., ge=1)
    percentile: float = Field(..., ge=0.0, le=100.0)


class RankedPractice(BaseModel):
    """One row of a full ranking table."""
    model_config = ConfigDict(frozen=True)

    practice_id: str
    practice_name: str = ""
    value: float
    rank: int = Field(..., ge=1)
    percentile: float


# =============================================================================
# Consistency
# =============================================================================


class ConsistencyProfile(BaseModel):
    """
    Dispersion of a practice's own metric series.

    std_dev is the population standard deviation (divide by N).
    consistency_score = max(0, 100 - scale * std_dev) with the scale of the
    metric's family.
    """
    model_config = ConfigDict(frozen=True)

    practice_id: str
    practice_name: str = ""
    metric: str
    mean: float
    std_dev: float = Field(..., ge=0.0)
    range: float = Field(..., ge=0.0)
    consistency_score: float = Field(..., ge=0.0, le=100.0)
    period_count: int = Field(..., ge=1)
    is_active: bool = Field(
        default=True,
        description="False when every value in the series is zero"
    )


class InsufficientDataResult(BaseModel):
    """
    Typed 'not enough history' outcome.

    Returned instead of a low-confidence number whenever a series is below
    the component's minimum length.
    """
    model_config = ConfigDict(frozen=True)

    status: Literal["insufficient_data"] = "insufficient_data"
    practice_id: Optional[str] = None
    metric: str
    required: int
    available: int
    reason: str = ""


# =============================================================================
# Impact
# =============================================================================


class ImpactScore(BaseModel):
    """
    Volume-weighted rate difference for one practice.

    impact = (national_rate - practice_rate) * volume. For missed calls this
    is "calls saved": positive means fewer calls missed than the national
    rate would predict at this practice's volume.
    """
    model_config = ConfigDict(frozen=True)

    practice_id: str
    practice_name: str = ""
    volume: float
    rate: float
    national_rate: float
    impact: float
    rank: Optional[int] = None


class GroupImpact(BaseModel):
    """
    Pooled impact for a network or regional group.

    Raw counts are summed across member practices before one group rate and
    one group impact are computed.
    """
    model_config = ConfigDict(frozen=True)

    group_id: str
    group_name: str = ""
    level: GroupLevel
    practice_count: int
    total_events: float
    total_volume: float
    pooled_rate: float
    impact: float
    rank: Optional[int] = None


# =============================================================================
# Forecast
# =============================================================================


class LinearFit(BaseModel):
    """Ordinary least squares fit of value against period index."""
    model_config = ConfigDict(frozen=True)

    slope: float
    intercept: float
    r_squared: float


class ForecastPoint(BaseModel):
    """One projected value."""
    model_config = ConfigDict(frozen=True)

    period_index: int
    period: Optional[DateType] = None
    value: float


class ForecastResult(BaseModel):
    """
    Linear trend and its N-period projection.

    Projections are slope * index + intercept for indices N..N+horizon-1,
    with no damping or seasonality.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "status": "ok",
                "metric": "oc_per_1000",
                "slope": 10.0,
                "intercept": 10.0,
                "r_squared": 1.0,
                "trend": "increasing",
                "history_length": 4,
                "projections": [{"period_index": 4, "value": 50.0}]
            }
        }
    )

    status: Literal["ok"] = "ok"
    practice_id: Optional[str] = None
    metric: str
    slope: float
    intercept: float
    r_squared: float
    trend: TrendLabel
    history_length: int
    projections: List[ForecastPoint] = Field(default_factory=list)


# =============================================================================
# Network Comparison
# =============================================================================


class PracticeMean(BaseModel):
    """A practice's own mean of a metric over the in-window periods."""
    model_config = ConfigDict(frozen=True)

    practice_id: str
    practice_name: str = ""
    value: float
    period_count: int


class NetworkStatistic(BaseModel):
    """
    Distribution of practice-level means for one metric.

    mean/std_dev/min/max are taken across practice means (an average of
    practice averages), not across pooled raw counts.
    """
    model_config = ConfigDict(frozen=True)

    metric: str
    mean: float
    std_dev: float = Field(..., ge=0.0)
    min: float
    max: float
    sample_size: int = Field(..., ge=1)
    practice_means: List[PracticeMean] = Field(default_factory=list)


class OutlierResult(BaseModel):
    """Z-score outlier flag for one value against a NetworkStatistic."""
    model_config = ConfigDict(frozen=True)

    is_outlier: bool
    direction: Optional[OutlierDirection] = None
    z_score: float = 0.0


class DataCoverage(BaseModel):
    """How many of the requested periods a practice has a record for."""
    model_config = ConfigDict(frozen=True)

    practice_id: str
    covered: int
    total: int
    percentage: float
    periods: List[bool] = Field(default_factory=list)
