"""
Exception hierarchy for the analysis services.

These signal data-quality conditions, not programmer errors. They are raised
by low-level helpers and caught by the component that owns the exclusion
policy, which turns them into an excluded record or a typed
InsufficientDataResult. Public analysis functions do not let them escape.
"""

from typing import Optional


class PracticeAnalyticsError(Exception):
    """Base class for all data-quality errors raised by the services."""


class MissingInputError(PracticeAnalyticsError):
    """A required raw source is absent for a (practice, period)."""

    def __init__(self, practice_id: str, source: str, period: Optional[str] = None):
        self.practice_id = practice_id
        self.source = source
        self.period = period
        where = f" for {period}" if period else ""
        super().__init__(f"{practice_id}: source '{source}' absent{where}")


class UndefinedMetricError(PracticeAnalyticsError):
    """A metric has no defined value (zero denominator or absent source)."""

    def __init__(self, practice_id: str, metric: str):
        self.practice_id = practice_id
        self.metric = metric
        super().__init__(f"{practice_id}: metric '{metric}' is undefined")


class InsufficientDataError(PracticeAnalyticsError):
    """A series is shorter than the minimum the calculation requires."""

    def __init__(self, required: int, available: int, metric: Optional[str] = None):
        self.required = required
        self.available = available
        self.metric = metric
        label = f" for '{metric}'" if metric else ""
        super().__init__(
            f"Insufficient data{label}: {available} point(s), {required} required"
        )
