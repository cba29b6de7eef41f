"""
Test suite for the Linear Trend Forecaster.

Verifies:
1. Least squares slope / intercept / R^2
2. Projection of a perfectly linear series continues it exactly
3. Fewer than three points returns a typed insufficient-data result
4. Relative trend threshold (1% of the series mean per period)
5. Projected periods follow the last observed month; gaps are skipped
6. NaN and infinite values are treated as missing periods
"""

from datetime import date

import pytest

from practice_analytics.core.exceptions import InsufficientDataError
from practice_analytics.models.enums import TrendLabel
from practice_analytics.models.schemas import (
    ForecastResult,
    InsufficientDataResult,
    MetricSeries,
    SeriesPoint,
)
from practice_analytics.services.forecasting import (
    classify_trend,
    fit_linear_trend,
    forecast,
    forecast_values,
)


def _series(values, months=None):
    months = months or list(range(1, len(values) + 1))
    return MetricSeries(
        practice_id="C1",
        metric="oc_per_1000",
        points=[SeriesPoint(period=date(2025, month, 1), value=value) for month, value in zip(months, values)],
    )


# =============================================================================
# LINEAR FIT
# =============================================================================


class TestFitLinearTrend:

    @pytest.mark.property
    def test_perfect_line(self):
        fit = fit_linear_trend([10, 20, 30, 40])
        assert fit.slope == pytest.approx(10.0)
        assert fit.intercept == pytest.approx(10.0)
        assert fit.r_squared == pytest.approx(1.0)

    def test_noisy_series_r_squared_below_one(self):
        fit = fit_linear_trend([10, 14, 9, 15, 12])
        assert 0.0 <= fit.r_squared < 1.0

    def test_flat_series_has_zero_r_squared(self):
        fit = fit_linear_trend([5, 5, 5])
        assert fit.slope == pytest.approx(0.0)
        assert fit.r_squared == 0.0

    def test_single_point_raises(self):
        with pytest.raises(InsufficientDataError):
            fit_linear_trend([5])


# =============================================================================
# FORECAST
# =============================================================================


class TestForecast:

    @pytest.mark.property
    def test_linear_series_continues_exactly(self):
        result = forecast(_series([10, 20, 30, 40]), horizon=2)

        assert isinstance(result, ForecastResult)
        assert result.status == "ok"
        assert result.trend == TrendLabel.INCREASING
        assert [point.period_index for point in result.projections] == [4, 5]
        assert result.projections[0].value == pytest.approx(50.0)
        assert result.projections[1].value == pytest.approx(60.0)

    @pytest.mark.property
    def test_two_points_insufficient(self):
        result = forecast(_series([10, 20]))

        assert isinstance(result, InsufficientDataResult)
        assert result.status == "insufficient_data"
        assert (result.required, result.available) == (3, 2)

    def test_projected_periods_follow_last_month(self):
        result = forecast(_series([10, 20, 30], months=[10, 11, 12]), horizon=2)
        assert [point.period for point in result.projections] == [date(2026, 1, 1), date(2026, 2, 1)]

    def test_gaps_skipped_not_interpolated(self):
        # Jan, Feb, May: indices 0, 1, 2 regardless of the missing months
        result = forecast(_series([10, 20, 30], months=[1, 2, 5]), horizon=1)
        assert result.slope == pytest.approx(10.0)
        assert result.projections[0].value == pytest.approx(40.0)
        assert result.projections[0].period == date(2025, 6, 1)

    def test_default_horizon_from_settings(self):
        result = forecast(_series([1, 2, 3]))
        assert len(result.projections) == 3

    def test_horizon_override_from_environment(self, monkeypatch):
        monkeypatch.setenv("PRACTICE_ANALYTICS_FORECAST_DEFAULT_HORIZON", "5")
        assert len(forecast(_series([1, 2, 3])).projections) == 5

    def test_no_clamping_by_default(self):
        result = forecast_values([30, 20, 10], horizon=2)
        assert result.projections[1].value == pytest.approx(-10.0)

    def test_floor_clamps(self):
        result = forecast_values([30, 20, 10], horizon=2, floor=0)
        assert [point.value for point in result.projections] == pytest.approx([0.0, 0.0])
        assert all(point.value >= 0 for point in result.projections)

    def test_negative_horizon_rejected(self):
        with pytest.raises(ValueError):
            forecast(_series([1, 2, 3]), horizon=-1)

    @pytest.mark.property
    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_points_dropped(self, bad):
        result = forecast(_series([10, bad, 20, 30]), horizon=1)

        assert isinstance(result, ForecastResult)
        assert result.slope == pytest.approx(10.0)
        assert result.projections[0].value == pytest.approx(40.0)
        assert result.projections[0].period == date(2025, 5, 1)

    def test_non_finite_values_dropped(self):
        result = forecast_values([10, float("nan"), 20, 30], horizon=1)
        assert result.projections[0].value == pytest.approx(40.0)

    def test_non_finite_values_not_counted(self):
        result = forecast_values([10, float("nan"), 20])
        assert isinstance(result, InsufficientDataResult)
        assert result.available == 2


# =============================================================================
# TREND LABEL
# =============================================================================


class TestClassifyTrend:

    def test_noise_level_slope_is_stable(self):
        # 0.5 per period on a mean of 100 is 0.5%
        assert classify_trend(0.5, [99, 100, 101]) == TrendLabel.STABLE

    def test_threshold_is_relative(self):
        # Same slope, mean of 10: 5% per period
        assert classify_trend(0.5, [9, 10, 11]) == TrendLabel.INCREASING
        assert classify_trend(-0.5, [9, 10, 11]) == TrendLabel.DECREASING

    def test_exactly_at_threshold_is_stable(self):
        assert classify_trend(1.0, [100, 100, 100]) == TrendLabel.STABLE

    def test_zero_mean_compares_raw_slope(self):
        assert classify_trend(0.005, [-1, 0, 1]) == TrendLabel.STABLE
        assert classify_trend(0.5, [-1, 0, 1]) == TrendLabel.INCREASING

    def test_forecast_labels_flat_series_stable(self):
        assert forecast(_series([50, 50.2, 49.9, 50.1])).trend == TrendLabel.STABLE
