"""
Linear Trend Forecasting Service.

Fits an ordinary least squares line to a practice's metric series and
projects it a few periods ahead for demand and capacity planning.

Algorithm:
    - x is the period index 0..N-1, counting only periods that have a
      value. Gaps are skipped, not interpolated.
    - slope, intercept from numpy.polyfit(x, y, 1)
    - R^2 = 1 - SS_res / SS_tot (0 when the series has no variance)
    - projections for indices N..N+horizon-1 are slope * index + intercept,
      with no damping and no seasonality

Trend label:
    |slope| / |mean| <= trend_relative_threshold (default 0.01, i.e. a
    change of at most 1% of the series mean per period) is "stable";
    otherwise the sign of the slope decides "increasing" / "decreasing".
    For a zero-mean series the slope itself is compared with the threshold.
    The same threshold applies to every metric, so a noise-level slope
    does not flip the label between adjacent runs.

Minimum history:
    Fewer than forecast_min_points (default 3) observed periods returns an
    InsufficientDataResult instead of a low-confidence number.
"""

import logging
import math
from typing import List, Optional, Sequence, Union

import numpy as np

from practice_analytics.core.config import get_settings
from practice_analytics.core.exceptions import InsufficientDataError
from practice_analytics.models.enums import TrendLabel
from practice_analytics.models.schemas import (
    ForecastPoint,
    ForecastResult,
    InsufficientDataResult,
    LinearFit,
    MetricSeries,
)
from practice_analytics.services.periods import next_periods
from practice_analytics.services.statistics import mean

logger = logging.getLogger(__name__)


# Points needed to fit a line at all; forecasting itself needs more
MIN_FIT_POINTS = 2


def fit_linear_trend(values: Sequence[float]) -> LinearFit:
    """
    Least squares fit of value against index.

    Args:
        values: Observed values in period order.

    Returns:
        LinearFit with slope, intercept and R^2.

    Raises:
        InsufficientDataError: With fewer than two values.

    Example:
        >>> fit = fit_linear_trend([10, 20, 30, 40])
        >>> round(fit.slope, 6), round(fit.intercept, 6), round(fit.r_squared, 6)
        (10.0, 10.0, 1.0)
    """
    if len(values) < MIN_FIT_POINTS:
        raise InsufficientDataError(MIN_FIT_POINTS, len(values))

    y = np.asarray(values, dtype=np.float64)
    x = np.arange(len(y), dtype=np.float64)
    slope, intercept = np.polyfit(x, y, 1)

    fitted = slope * x + intercept
    ss_res = float(np.sum((y - fitted) ** 2))
    ss_tot = float(np.sum((y - np.mean(y)) ** 2))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 0.0

    return LinearFit(slope=float(slope), intercept=float(intercept), r_squared=r_squared)


def classify_trend(slope: float, values: Sequence[float]) -> TrendLabel:
    """Trend label for a fitted slope relative to the series mean."""
    threshold = get_settings().trend_relative_threshold
    centre = abs(mean(values))
    magnitude = abs(slope) / centre if centre > 0 else abs(slope)

    if magnitude <= threshold:
        return TrendLabel.STABLE
    return TrendLabel.INCREASING if slope > 0 else TrendLabel.DECREASING


def _insufficient(metric: str, practice_id: Optional[str], exc: InsufficientDataError) -> InsufficientDataResult:
    logger.debug(f"Forecast skipped for {practice_id or 'series'}: {exc}")
    return InsufficientDataResult(
        practice_id=practice_id,
        metric=metric,
        required=exc.required,
        available=exc.available,
        reason=str(exc),
    )


def forecast_values(
    values: Sequence[float],
    horizon: Optional[int] = None,
    floor: Optional[float] = None,
    metric: str = "value",
    practice_id: Optional[str] = None,
    periods: Optional[List] = None,
) -> Union[ForecastResult, InsufficientDataResult]:
    """
    Fit and project a plain list of values.

    NaN and infinite values are undefined periods and are dropped before
    fitting, the same as gaps in a MetricSeries.

    Args:
        values: Observed values in period order.
        horizon: Periods to project; defaults to forecast_default_horizon.
        floor: Lower clamp for projected values (e.g. 0 for counts).
        metric: Metric key recorded on the result.
        practice_id: Practice recorded on the result.
        periods: Calendar periods for the projections, if known.

    Raises:
        ValueError: If horizon is negative.
    """
    settings = get_settings()
    horizon = settings.forecast_default_horizon if horizon is None else horizon
    if horizon < 0:
        raise ValueError(f"horizon must be non-negative, got {horizon}")

    values = [float(value) for value in values if math.isfinite(value)]

    try:
        if len(values) < settings.forecast_min_points:
            raise InsufficientDataError(settings.forecast_min_points, len(values), metric)
        fit = fit_linear_trend(values)
    except InsufficientDataError as exc:
        return _insufficient(metric, practice_id, exc)

    n = len(values)
    projections = []
    for offset in range(horizon):
        index = n + offset
        projected = fit.slope * index + fit.intercept
        if floor is not None:
            projected = max(floor, projected)
        projections.append(ForecastPoint(
            period_index=index,
            period=periods[offset] if periods else None,
            value=projected,
        ))

    return ForecastResult(
        practice_id=practice_id,
        metric=metric,
        slope=fit.slope,
        intercept=fit.intercept,
        r_squared=fit.r_squared,
        trend=classify_trend(fit.slope, values),
        history_length=n,
        projections=projections,
    )


def forecast(
    series: MetricSeries,
    horizon: Optional[int] = None,
    floor: Optional[float] = None,
) -> Union[ForecastResult, InsufficientDataResult]:
    """
    Forecast a practice's metric series.

    Projected periods are the calendar months following the last observed
    period.

    Returns:
        ForecastResult, or InsufficientDataResult below the minimum history.

    Example:
        >>> result = forecast(series_of_10_20_30_40, horizon=1)
        >>> result.projections[0].value
        50.0
    """
    horizon = get_settings().forecast_default_horizon if horizon is None else horizon
    periods = None
    if series.points and horizon > 0:
        periods = next_periods(series.points[-1].period, horizon)

    return forecast_values(
        series.values,
        horizon=horizon,
        floor=floor,
        metric=series.metric,
        practice_id=series.practice_id,
        periods=periods,
    )
