"""
Package initialization file for the analysis models.

Re-exports every Pydantic schema and enumeration from schemas.py and
enums.py so services and callers can import them from
practice_analytics.models directly.

Usage:
    from practice_analytics.models import (
        PracticePeriodInput,
        PracticeMetricRecord,
        RankingScope,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from practice_analytics.models.enums import (
    AccessBand,
    DataSource,
    GroupLevel,
    MetricDirection,
    MetricFamily,
    MetricUnit,
    OutlierDirection,
    PerformanceBand,
    PeriodFilterMode,
    RankingScope,
    StaffGroup,
    TrendLabel,
    WaitBin,
)


# =============================================================================
# Schemas
# =============================================================================

from practice_analytics.models.schemas import (
    # -------------------------------------------------------------------------
    # Raw input
    # -------------------------------------------------------------------------
    AppointmentDay,
    AttendanceCounts,
    SlotUsage,
    AppointmentModeCounts,
    BookingWaitCounts,
    AppointmentSource,
    WaitTimeBuckets,
    TelephonySource,
    OnlineConsultationSource,
    PracticePeriodInput,

    # -------------------------------------------------------------------------
    # Canonical record and catalogue
    # -------------------------------------------------------------------------
    MetricValues,
    PracticeMetricRecord,
    MetricDefinition,
    SeriesPoint,
    MetricSeries,

    # -------------------------------------------------------------------------
    # Analysis output
    # -------------------------------------------------------------------------
    RankingResult,
    RankedPractice,
    ConsistencyProfile,
    InsufficientDataResult,
    ImpactScore,
    GroupImpact,
    LinearFit,
    ForecastPoint,
    ForecastResult,
    PracticeMean,
    NetworkStatistic,
    OutlierResult,
    DataCoverage,
)


__all__ = [
    # Enums
    "AccessBand",
    "DataSource",
    "GroupLevel",
    "MetricDirection",
    "MetricFamily",
    "MetricUnit",
    "OutlierDirection",
    "PerformanceBand",
    "PeriodFilterMode",
    "RankingScope",
    "StaffGroup",
    "TrendLabel",
    "WaitBin",
    # Raw input
    "AppointmentDay",
    "AttendanceCounts",
    "SlotUsage",
    "AppointmentModeCounts",
    "BookingWaitCounts",
    "AppointmentSource",
    "WaitTimeBuckets",
    "TelephonySource",
    "OnlineConsultationSource",
    "PracticePeriodInput",
    # Canonical record and catalogue
    "MetricValues",
    "PracticeMetricRecord",
    "MetricDefinition",
    "SeriesPoint",
    "MetricSeries",
    # Analysis output
    "RankingResult",
    "RankedPractice",
    "ConsistencyProfile",
    "InsufficientDataResult",
    "ImpactScore",
    "GroupImpact",
    "LinearFit",
    "ForecastPoint",
    "ForecastResult",
    "PracticeMean",
    "NetworkStatistic",
    "OutlierResult",
    "DataCoverage",
]
