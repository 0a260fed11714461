"""
Time-series forecasting primitives for demand prediction.

All functions are pure: they take a chronological sequence of daily usage
values (oldest first) and never touch the database. Degenerate inputs
(empty series, zero variance, zero mean) resolve to fixed fallbacks instead
of raising.
"""
import math

import numpy as np

from utils.ai_config import Z_CI_95, Z_CI_90

TREND_SLOPE_THRESHOLD = 0.1
SEASONALITY_THRESHOLD = 0.2
SMOOTHING_CONFIDENCE = 0.7
WMA_CONFIDENCE = 0.6
SHORT_SERIES_CONFIDENCE = 0.5


def _last_or_zero(series) -> float:
    return float(series[-1]) if len(series) else 0.0


def simple_moving_average(series, window: int = 3) -> float:
    if len(series) < window:
        return _last_or_zero(series)
    recent = np.asarray(series[-window:], dtype=float)
    return float(recent.sum() / window)


def weighted_moving_average(series, window: int = 3) -> float:
    """Newest point weighs `window`, oldest weighs 1."""
    if len(series) < window:
        return _last_or_zero(series)
    recent = np.asarray(series[-window:], dtype=float)
    weights = np.arange(1, window + 1, dtype=float)
    return float((recent * weights).sum() / weights.sum())


def exponential_smoothing(series, alpha: float = 0.3) -> float:
    if len(series) == 0:
        return 0.0
    smoothed = float(series[0])
    for value in series[1:]:
        smoothed = alpha * float(value) + (1 - alpha) * smoothed
    return smoothed


def r_squared(series, slope: float, intercept: float) -> float:
    """
    Goodness of fit of value ~ slope * index + intercept (1-based index),
    clamped to [0, 1]. Fewer than 3 points cannot be judged and score a
    flat 0.5.
    """
    if len(series) < 3:
        return SHORT_SERIES_CONFIDENCE

    y = np.asarray(series, dtype=float)
    x = np.arange(1, len(y) + 1, dtype=float)
    predicted = slope * x + intercept
    ss_res = float(((y - predicted) ** 2).sum())
    ss_tot = float(((y - y.mean()) ** 2).sum())

    r2 = 1 - ss_res / ss_tot if ss_tot != 0 else 0.0
    return max(0.0, min(1.0, r2))


def linear_regression_forecast(series, periods_ahead: int = 1) -> dict:
    if len(series) < 2:
        return {"forecast": _last_or_zero(series[:1]), "trend": "insufficient_data"}

    y = np.asarray(series, dtype=float)
    n = len(y)
    x = np.arange(1, n + 1, dtype=float)

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = float((dx ** 2).sum())
    slope = float((dx * dy).sum()) / denominator if denominator != 0 else 0.0
    intercept = float(y.mean()) - slope * float(x.mean())

    forecast = slope * (n + periods_ahead) + intercept

    trend = "stable"
    if abs(slope) > TREND_SLOPE_THRESHOLD:
        trend = "increasing" if slope > 0 else "decreasing"

    return {
        "forecast": max(0.0, forecast),
        "slope": slope,
        "intercept": intercept,
        "trend": trend,
        "confidence": r_squared(y, slope, intercept),
    }


def detect_seasonality(series, period: int = 7) -> dict:
    if len(series) < period * 2:
        return {"has_season": False, "strength": 0.0}

    y = np.asarray(series, dtype=float)
    phases = np.arange(len(y)) % period
    # every phase has >= 2 points once len >= 2 * period
    pattern = np.array([y[phases == p].mean() for p in range(period)])

    overall_mean = float(y.mean())
    variance = float(((pattern - overall_mean) ** 2).sum()) / period
    strength = math.sqrt(variance) / overall_mean if overall_mean > 0 else 0.0

    return {
        "has_season": strength > SEASONALITY_THRESHOLD,
        "strength": strength,
        "pattern": [float(v) for v in pattern],
        "period": period,
    }


# Candidate strategies for adaptive_forecast, in tie-break order.
def _regression_strategy(series, periods_ahead):
    return linear_regression_forecast(series, periods_ahead)


def _smoothing_strategy(series, periods_ahead):
    return {"forecast": exponential_smoothing(series), "confidence": SMOOTHING_CONFIDENCE}


def _wma_strategy(series, periods_ahead):
    return {"forecast": weighted_moving_average(series), "confidence": WMA_CONFIDENCE}


FORECAST_STRATEGIES = (
    ("linear_regression", _regression_strategy),
    ("exponential_smoothing", _smoothing_strategy),
    ("weighted_moving_average", _wma_strategy),
)


def adaptive_forecast(series, periods_ahead: int = 1) -> dict:
    """
    Runs every strategy and keeps the one reporting the highest confidence.
    The first strategy wins ties.
    """
    if len(series) == 0:
        return {"forecast": 0.0, "method": "none", "confidence": 0.0}

    if len(series) < 3:
        return {
            "forecast": float(series[-1]),
            "method": "last_value",
            "confidence": SHORT_SERIES_CONFIDENCE,
        }

    results = [(name, strategy(series, periods_ahead)) for name, strategy in FORECAST_STRATEGIES]

    best_name, best = results[0]
    for name, result in results[1:]:
        if result["confidence"] > best["confidence"]:
            best_name, best = name, result

    return {
        "forecast": max(0.0, best["forecast"]),
        "method": best_name,
        "confidence": best["confidence"],
        "trend": best.get("trend") or "unknown",
    }


def confidence_interval(series, forecast: float, confidence_level: float = 0.95) -> dict:
    if len(series) < 2:
        return {"lower": forecast * 0.5, "upper": forecast * 1.5}

    std_dev = float(np.std(np.asarray(series, dtype=float), ddof=1))
    z = Z_CI_95 if confidence_level >= 0.95 else Z_CI_90
    margin = z * std_dev

    return {
        "lower": max(0.0, forecast - margin),
        "upper": forecast + margin,
        "margin": margin,
    }
