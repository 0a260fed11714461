import math

import pytest

from models import forecasting_engine as fe


SERIES_SAMPLES = [
    [10, 10, 10, 10, 10],
    [1, 2, 3, 4, 5, 6],
    [9, 1, 7, 3, 5],
    [0, 0, 4],
    [12, 3],
    [42],
]


class TestMovingAverages:

    def test_sma_of_constant_series(self):
        assert fe.simple_moving_average([10, 10, 10, 10, 10], 3) == 10

    def test_sma_uses_only_last_window(self):
        assert fe.simple_moving_average([100, 1, 2, 3], 3) == pytest.approx(2.0)

    def test_sma_short_series_returns_last_value(self):
        assert fe.simple_moving_average([4, 8], 3) == 8
        assert fe.simple_moving_average([], 3) == 0

    @pytest.mark.parametrize("series", SERIES_SAMPLES)
    @pytest.mark.parametrize("window", [1, 2, 3, 5])
    def test_sma_stays_within_window_bounds(self, series, window):
        result = fe.simple_moving_average(series, window)
        tail = series[-window:] if len(series) >= window else series[-1:]
        assert min(tail) <= result <= max(tail)

    def test_wma_weights_newest_most(self):
        # (1*1 + 2*2 + 3*3) / 6
        assert fe.weighted_moving_average([1, 2, 3]) == pytest.approx(14 / 6)
        assert fe.weighted_moving_average([50, 1, 2, 3]) == pytest.approx(14 / 6)

    def test_wma_short_series_fallback(self):
        assert fe.weighted_moving_average([7]) == 7
        assert fe.weighted_moving_average([]) == 0


class TestExponentialSmoothing:

    def test_empty_and_single(self):
        assert fe.exponential_smoothing([]) == 0
        assert fe.exponential_smoothing([4]) == 4

    def test_seeds_with_first_value(self):
        assert fe.exponential_smoothing([10, 20]) == pytest.approx(13.0)
        assert fe.exponential_smoothing([10, 20, 30], alpha=0.5) == pytest.approx(22.5)


class TestLinearRegression:

    def test_perfect_upward_line(self):
        result = fe.linear_regression_forecast([1, 2, 3, 4, 5], periods_ahead=1)
        assert result["slope"] == pytest.approx(1.0)
        assert result["intercept"] == pytest.approx(0.0)
        assert result["forecast"] == pytest.approx(6.0)
        assert result["trend"] == "increasing"
        assert result["confidence"] == pytest.approx(1.0)

    def test_forecast_is_floored_at_zero(self):
        result = fe.linear_regression_forecast([5, 4, 3, 2, 1], periods_ahead=10)
        assert result["trend"] == "decreasing"
        assert result["forecast"] == 0

    def test_flat_series_is_stable_with_zero_confidence(self):
        result = fe.linear_regression_forecast([3, 3, 3, 3])
        assert result["trend"] == "stable"
        assert result["slope"] == 0
        assert result["confidence"] == 0

    def test_small_slope_counts_as_stable(self):
        result = fe.linear_regression_forecast([10, 10.05, 10.1, 10.15])
        assert result["trend"] == "stable"

    def test_two_points_get_default_confidence(self):
        result = fe.linear_regression_forecast([2, 4])
        assert result["confidence"] == 0.5

    def test_insufficient_data(self):
        assert fe.linear_regression_forecast([7]) == {"forecast": 7.0, "trend": "insufficient_data"}
        assert fe.linear_regression_forecast([]) == {"forecast": 0.0, "trend": "insufficient_data"}

    @pytest.mark.parametrize("series", SERIES_SAMPLES + [[30, 20, 10, 5, 1]])
    def test_never_negative(self, series):
        for ahead in (1, 7, 30, 365):
            assert fe.linear_regression_forecast(series, ahead)["forecast"] >= 0


class TestSeasonality:

    def test_short_series_has_no_season(self):
        assert fe.detect_seasonality([5] * 13, period=7) == {"has_season": False, "strength": 0.0}
        assert fe.detect_seasonality([5] * 59, period=30)["has_season"] is False

    def test_weekly_pattern_detected(self):
        week = [10, 10, 10, 10, 10, 30, 30]
        result = fe.detect_seasonality(week * 3, period=7)
        mean = 110 / 7
        variance = (5 * (10 - mean) ** 2 + 2 * (30 - mean) ** 2) / 7
        assert result["has_season"] is True
        assert result["strength"] == pytest.approx(math.sqrt(variance) / mean)
        assert result["pattern"] == pytest.approx(week)
        assert result["period"] == 7

    def test_flat_and_zero_series(self):
        assert fe.detect_seasonality([5] * 14)["strength"] == 0
        zero = fe.detect_seasonality([0] * 21)
        assert zero["has_season"] is False
        assert zero["strength"] == 0


class TestAdaptiveForecast:

    def test_empty_series(self):
        assert fe.adaptive_forecast([]) == {"forecast": 0, "method": "none", "confidence": 0}

    def test_short_series_uses_last_value(self):
        assert fe.adaptive_forecast([4, 6]) == {"forecast": 6, "method": "last_value", "confidence": 0.5}

    def test_picks_regression_for_clean_trend(self):
        result = fe.adaptive_forecast([1, 2, 3, 4, 5])
        assert result["method"] == "linear_regression"
        assert result["forecast"] == pytest.approx(6.0)
        assert result["trend"] == "increasing"

    def test_picks_smoothing_for_noisy_series(self):
        series = [5, 1, 5, 1, 5, 1]
        result = fe.adaptive_forecast(series)
        assert result["method"] == "exponential_smoothing"
        assert result["confidence"] == 0.7
        assert result["trend"] == "unknown"
        assert result["forecast"] == pytest.approx(fe.exponential_smoothing(series))

    def test_flat_series_prefers_smoothing_over_zero_r_squared(self):
        result = fe.adaptive_forecast([10] * 10, periods_ahead=30)
        assert result["method"] == "exponential_smoothing"
        assert result["forecast"] == pytest.approx(10.0)

    @pytest.mark.parametrize("series", SERIES_SAMPLES + [[30, 20, 10, 5, 1]])
    def test_never_negative(self, series):
        assert fe.adaptive_forecast(series, 30)["forecast"] >= 0


class TestConfidenceInterval:

    def test_short_series_uses_fixed_band(self):
        assert fe.confidence_interval([3], 10) == {"lower": 5.0, "upper": 15.0}

    def test_sample_standard_deviation(self):
        series = [2, 4, 4, 4, 5, 5, 7, 9]
        std = math.sqrt(32 / 7)
        result = fe.confidence_interval(series, 10)
        assert result["margin"] == pytest.approx(1.96 * std)
        assert result["lower"] == pytest.approx(10 - 1.96 * std)
        assert result["upper"] == pytest.approx(10 + 1.96 * std)

    def test_lower_level_uses_narrower_z(self):
        series = [2, 4, 4, 4, 5, 5, 7, 9]
        result = fe.confidence_interval(series, 10, confidence_level=0.9)
        assert result["margin"] == pytest.approx(1.645 * math.sqrt(32 / 7))

    def test_lower_bound_clamped_at_zero(self):
        result = fe.confidence_interval([0, 20, 0, 20], 1)
        assert result["lower"] == 0
        assert result["lower"] <= result["upper"]

    @pytest.mark.parametrize("series", SERIES_SAMPLES)
    def test_lower_never_exceeds_upper(self, series):
        for forecast in (0, 1, 10, 250):
            interval = fe.confidence_interval(series, forecast)
            assert interval["lower"] <= interval["upper"]
