"""
Reporting Period Utilities.

Every published collection (appointments, telephony, online consultations)
is monthly, so a reporting period is represented as the first day of a
calendar month (`datetime.date`). Upstream extracts label months in several
styles ("Oct-25", "October 2025", "2025-10"); parse_period folds them all
into that one representation.

Period windows for multi-practice comparison:
    - all: every period any selected practice has data for
    - overlapping: only periods every selected practice has data for, so
      practices are compared like for like
    - specific: an explicit caller selection

Usage:
    from practice_analytics.services.periods import filter_periods, parse_period

    window = filter_periods(records, PeriodFilterMode.OVERLAPPING)
    october = parse_period("Oct-25")
"""

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Union

from practice_analytics.models.enums import PeriodFilterMode
from practice_analytics.models.schemas import DataCoverage, PracticeMetricRecord

logger = logging.getLogger(__name__)


PeriodLike = Union[str, date, datetime]

# Tried in order; %b / %B match month names case-insensitively
_PERIOD_FORMATS = (
    "%b-%y",
    "%b-%Y",
    "%b %y",
    "%b %Y",
    "%B %Y",
    "%B-%Y",
    "%B-%y",
    "%Y-%m",
    "%Y-%m-%d",
)


def parse_period(value: PeriodLike) -> date:
    """
    Convert a month label or date into a reporting period.

    Args:
        value: "Oct-25", "Oct 2025", "October 2025", "2025-10",
            "2025-10-14", or a date/datetime.

    Returns:
        The first day of the month the value falls in.

    Raises:
        ValueError: If the value is not a recognised month label.

    Example:
        >>> parse_period("Oct-25")
        datetime.date(2025, 10, 1)
    """
    if isinstance(value, datetime):
        return value.date().replace(day=1)
    if isinstance(value, date):
        return value.replace(day=1)
    if not isinstance(value, str):
        raise ValueError(f"Cannot parse period from {type(value).__name__}")

    text = value.strip()
    for fmt in _PERIOD_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().replace(day=1)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised period label: {value!r}")


def period_label(period: date) -> str:
    """Short month label used by the report layer, e.g. "Oct-25"."""
    return period.strftime("%b-%y")


def _add_months(period: date, months: int) -> date:
    index = period.year * 12 + (period.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def next_periods(period: date, count: int) -> List[date]:
    """
    The `count` calendar months following `period`.

    Example:
        >>> next_periods(date(2025, 11, 1), 2)
        [datetime.date(2025, 12, 1), datetime.date(2026, 1, 1)]
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")
    start = period.replace(day=1)
    return [_add_months(start, offset) for offset in range(1, count + 1)]


def sort_periods(periods: Iterable[PeriodLike]) -> List[date]:
    """Parse, dedupe and chronologically sort a collection of periods."""
    return sorted({parse_period(period) for period in periods})


def filter_periods(
    records: Sequence[PracticeMetricRecord],
    mode: PeriodFilterMode = PeriodFilterMode.ALL,
    selected: Optional[Iterable[PeriodLike]] = None,
) -> List[date]:
    """
    Choose the comparison window for a set of practices.

    Args:
        records: Metric records for the practices being compared.
        mode: all / overlapping / specific.
        selected: Periods to use when mode is SPECIFIC.

    Returns:
        Chronologically sorted periods.

    Raises:
        ValueError: If mode is SPECIFIC and no selection is given.
    """
    if mode == PeriodFilterMode.SPECIFIC:
        if selected is None:
            raise ValueError("A period selection is required for the specific filter")
        return sort_periods(selected)

    periods_by_practice = {}
    for record in records:
        periods_by_practice.setdefault(record.practice_id, set()).add(record.period)

    if not periods_by_practice:
        return []

    if mode == PeriodFilterMode.OVERLAPPING:
        window = set.intersection(*periods_by_practice.values())
        logger.debug(
            f"Overlapping window: {len(window)} period(s) shared by "
            f"{len(periods_by_practice)} practice(s)"
        )
    else:
        window = set.union(*periods_by_practice.values())

    return sorted(window)


def data_coverage(
    records: Sequence[PracticeMetricRecord],
    practice_id: str,
    periods: Sequence[PeriodLike],
) -> DataCoverage:
    """
    How many of `periods` a practice has a record for.

    `periods` in the result is a per-requested-period availability flag,
    in the order the periods were given.
    """
    wanted = [parse_period(period) for period in periods]
    available = {record.period for record in records if record.practice_id == practice_id}
    flags = [period in available for period in wanted]
    covered = sum(flags)
    total = len(wanted)
    percentage = (covered / total * 100) if total else 0.0

    return DataCoverage(
        practice_id=practice_id,
        covered=covered,
        total=total,
        percentage=percentage,
        periods=flags,
    )
