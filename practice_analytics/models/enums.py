"""
Enumeration definitions for the practice analytics engine.

All enums inherit from both `str` and `Enum` so that pydantic models holding
them serialize to plain strings for the report and chart layers.
"""

from enum import Enum


class DataSource(str, Enum):
    """
    Raw data collections that feed a practice metric record.

    - appointments: Day-keyed appointment counts by provider and status
    - telephony: Monthly cloud-telephony call counts
    - online_consultations: Online consultation submissions by purpose
    """
    APPOINTMENTS = "appointments"
    TELEPHONY = "telephony"
    ONLINE_CONSULTATIONS = "online_consultations"


class MetricFamily(str, Enum):
    """
    Grouping of metrics by the source they are derived from.

    The family selects the consistency rule (scale constant and minimum
    history), since each source has its own cadence and natural variance.
    """
    APPOINTMENTS = "appointments"
    TELEPHONY = "telephony"
    ONLINE_CONSULTATIONS = "online_consultations"


class MetricDirection(str, Enum):
    """
    Whether larger values of a metric indicate better performance.

    NEUTRAL metrics (e.g. face-to-face share) depend on practice strategy
    and cannot be ranked without an explicit direction from the caller.
    """
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"
    NEUTRAL = "neutral"


class MetricUnit(str, Enum):
    """Display unit of a metric value."""
    COUNT = "count"
    PERCENT = "percent"
    PER_1000 = "per_1000"
    RATIO = "ratio"


class StaffGroup(str, Enum):
    """
    Provider classification used for every GP-vs-all-staff metric.

    A provider label is GP when it contains "Dr" or "locum" (case-insensitive);
    everything else is other practice staff.
    """
    GP = "gp"
    OTHER = "other"


class RankingScope(str, Enum):
    """
    Peer population a practice is ranked within.

    - national: every practice in the period
    - regional: practices sharing the regional group (ICB)
    - network: practices sharing the network group (PCN)
    """
    NATIONAL = "national"
    REGIONAL = "regional"
    NETWORK = "network"


class GroupLevel(str, Enum):
    """Administrative grouping used for pooled group-level impact."""
    NETWORK = "network"
    REGIONAL = "regional"


class TrendLabel(str, Enum):
    """Direction of a fitted linear trend."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class OutlierDirection(str, Enum):
    """Side of the network mean an outlier sits on."""
    ABOVE = "above"
    BELOW = "below"


class PeriodFilterMode(str, Enum):
    """
    How the comparison period window is chosen across practices.

    - all: every period present for any practice
    - overlapping: only periods present for every practice
    - specific: the caller's explicit selection
    """
    ALL = "all"
    OVERLAPPING = "overlapping"
    SPECIFIC = "specific"


class PerformanceBand(str, Enum):
    """
    Interpretation of a rank-based percentile (1 = best).

    Cut points: 5, 10, 25, 50, 75, 90, 95.
    """
    EXCELLENT = "excellent"
    GREAT = "great"
    GOOD = "good"
    ABOVE_AVERAGE = "above_average"
    BELOW_AVERAGE = "below_average"
    POOR = "poor"
    VERY_POOR = "very_poor"
    AMONGST_WORST = "amongst_worst"


class AccessBand(str, Enum):
    """
    GP access band from patients seen by a GP per working day (%).

    Thresholds follow access improvement guidance: above 1.30% excellent,
    1.10-1.30% good, 0.85-1.10% acceptable, below that needs improvement.
    """
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    NEEDS_IMPROVEMENT = "needs_improvement"


class WaitBin(str, Enum):
    """Queue wait-time bucket of a telephony wait-time table."""
    UNDER_1_MIN = "under_1_min"
    ONE_TO_2_MIN = "one_to_2_min"
    TWO_TO_3_MIN = "two_to_3_min"
    OVER_3_MIN = "over_3_min"
