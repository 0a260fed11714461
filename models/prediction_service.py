import copy
import logging
import math
from datetime import datetime

import numpy as np

from db.usage_provider import UsageProvider
from models import forecasting_engine as fe
from utils.ai_config import (
    DEFAULT_FORECAST_DAYS, DEFAULT_LOOKBACK_DAYS, DEFAULT_CONFIDENCE_LEVEL, LEAD_TIME_DAYS,
    Z95, ORDERING_COST, HOLDING_COST_RATE, NO_STOCKOUT_DAYS,
)
from utils.errors import ProductNotFoundError
from utils.number_utils import round_half_up

logger = logging.getLogger(__name__)

WEEKLY_PERIOD = 7
MONTHLY_PERIOD = 30
MIN_PATTERN_POINTS = 7
SPIKE_WINDOW = 7
SPIKE_FACTOR = 1.5

PATTERN_DESCRIPTIONS = {
    "stable": "Consistent demand with minimal fluctuation",
    "weekly_seasonal": "Regular weekly demand patterns",
    "monthly_seasonal": "Regular monthly demand patterns",
    "erratic": "Unpredictable demand with high variability",
}


def _classify_volatility(cv: float) -> str:
    if cv > 0.5:
        return "high"
    if cv > 0.25:
        return "medium"
    return "low"


class PredictionService:
    """Per-product demand forecasts, reorder points and demand-pattern analysis."""

    def __init__(self, provider: UsageProvider | None = None, cache=None):
        self.provider = provider or UsageProvider()
        self.cache = cache

    # ---------------------------------------------------------
    # Demand forecast
    # ---------------------------------------------------------
    def predict_demand(
            self,
            product_id: int,
            horizon: int = DEFAULT_FORECAST_DAYS,
            lookback: int = DEFAULT_LOOKBACK_DAYS,
            confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    ) -> dict:
        cache_key = version = None
        if self.cache is not None:
            cache_key = self.cache.key(product_id, horizon, lookback, confidence_level)
            version = (self.provider.get_transaction_marker(product_id), datetime.utcnow().date())
            cached = self.cache.get(cache_key, version)
            if cached is not None:
                return copy.deepcopy(cached)

        history = self.provider.get_historical_usage(product_id, lookback)

        if not history:
            result = {
                "product_id": product_id,
                "forecast": 0,
                "method": "no_history",
                "confidence": 0,
                "recommendations": ["Insufficient historical data for prediction"],
            }
        else:
            result = self._build_forecast(product_id, history, horizon, confidence_level)

        if cache_key is not None:
            self.cache.set(cache_key, copy.deepcopy(result), version)
        return result

    def _build_forecast(self, product_id, history, horizon, confidence_level):
        forecast = fe.adaptive_forecast(history, horizon)
        daily_forecast = forecast["forecast"] / horizon if horizon > 0 else 0.0
        interval = fe.confidence_interval(history, forecast["forecast"], confidence_level)
        seasonality = fe.detect_seasonality(history, WEEKLY_PERIOD)

        return {
            "product_id": product_id,
            "forecast": round_half_up(forecast["forecast"]),
            "daily_average": round_half_up(daily_forecast, 1),
            "confidence": round_half_up(forecast["confidence"] * 100),
            "method": forecast["method"],
            "trend": forecast.get("trend"),
            "confidence_interval": {
                "lower": round_half_up(interval["lower"]),
                "upper": round_half_up(interval["upper"]),
            },
            "seasonality": {
                "detected": seasonality["has_season"],
                "strength": round_half_up(seasonality["strength"] * 100),
                "period": WEEKLY_PERIOD,
            },
            "historical_average": round_half_up(float(np.mean(history))),
            "recommendations": self._recommendations(forecast, seasonality, history),
        }

    @staticmethod
    def _recommendations(forecast, seasonality, history) -> list[str]:
        recommendations = []

        if forecast["confidence"] * 100 < 50:
            recommendations.append("Low prediction confidence - consider collecting more data")

        trend = forecast.get("trend")
        if trend == "increasing":
            recommendations.append("Demand is trending upward - consider increasing stock levels")
        elif trend == "decreasing":
            recommendations.append("Demand is trending downward - monitor for overstock")

        if seasonality["has_season"]:
            recommendations.append(
                f"Seasonal pattern detected ({seasonality['period']}-day cycle) - plan accordingly"
            )

        recent_avg = float(np.mean(history[-SPIKE_WINDOW:]))
        overall_avg = float(np.mean(history))
        if recent_avg > overall_avg * SPIKE_FACTOR:
            recommendations.append("Recent demand spike detected - verify stock adequacy")

        return recommendations

    # ---------------------------------------------------------
    # Reorder point / EOQ
    # ---------------------------------------------------------
    def calculate_reorder_point(self, product_id: int) -> dict:
        product = self.provider.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        demand = self.predict_demand(product_id, horizon=DEFAULT_FORECAST_DAYS)

        lead_time = int(product.get("lead_time_days") or LEAD_TIME_DAYS)
        # works off the rounded figures predict_demand reports
        avg_daily_demand = demand.get("daily_average", 0.0)
        lead_time_demand = avg_daily_demand * lead_time

        # z fixed at the 95% service level whatever confidence_level the forecast used
        interval_upper = demand.get("confidence_interval", {}).get("upper", 0)
        demand_variability = interval_upper - demand["forecast"]
        safety_stock = math.ceil(Z95 * (demand_variability / DEFAULT_FORECAST_DAYS) * math.sqrt(lead_time))

        reorder_point = math.ceil(lead_time_demand + safety_stock)

        unit_cost = product.get("cost") or 1
        annual_demand = avg_daily_demand * 365
        eoq = math.ceil(math.sqrt(max(0.0, (2 * annual_demand * ORDERING_COST) / (HOLDING_COST_RATE * unit_cost))))

        current_stock = product.get("stock_quantity") or 0
        if avg_daily_demand > 0:
            days_until_stockout = math.floor(current_stock / avg_daily_demand)
        else:
            days_until_stockout = NO_STOCKOUT_DAYS

        if current_stock <= reorder_point:
            stockout_risk = "high"
        elif current_stock <= reorder_point * 1.5:
            stockout_risk = "medium"
        else:
            stockout_risk = "low"

        return {
            "product_id": product_id,
            "product_name": product.get("name"),
            "current_stock": current_stock,
            "reorder_point": reorder_point,
            "safety_stock": safety_stock,
            "optimal_order_quantity": eoq,
            "lead_time": lead_time,
            "avg_daily_demand": round_half_up(avg_daily_demand, 1),
            "lead_time_demand": math.ceil(lead_time_demand),
            "days_until_stockout": days_until_stockout,
            "stockout_risk": stockout_risk,
            "should_reorder": current_stock <= reorder_point,
            "urgency": "urgent" if days_until_stockout <= lead_time else "normal",
        }

    def get_reorder_recommendations(self) -> list[dict]:
        """
        Reorder points for every active product, keeping only those at or below
        their reorder point. A product that fails is logged and skipped.
        Sorted urgent first, then by fewest days until stockout.
        """
        recommendations = []
        for product_id in self.provider.get_active_product_ids():
            try:
                info = self.calculate_reorder_point(product_id)
            except Exception as e:
                logger.error(f"Error calculating reorder for product {product_id}: {e}")
                continue
            if info["should_reorder"]:
                recommendations.append(info)

        recommendations.sort(key=lambda r: (r["urgency"] != "urgent", r["days_until_stockout"]))
        return recommendations

    # ---------------------------------------------------------
    # Demand patterns
    # ---------------------------------------------------------
    def analyze_demand_patterns(self, product_id: int) -> dict:
        history = self.provider.get_historical_usage(product_id, DEFAULT_LOOKBACK_DAYS)

        if len(history) < MIN_PATTERN_POINTS:
            return {
                "product_id": product_id,
                "pattern": "insufficient_data",
                "description": "Not enough data for pattern analysis",
            }

        weekly = fe.detect_seasonality(history, WEEKLY_PERIOD)
        monthly = fe.detect_seasonality(history, MONTHLY_PERIOD)

        values = np.asarray(history, dtype=float)
        mean = float(values.mean())
        std_dev = float(values.std(ddof=0))
        cv = std_dev / mean if mean > 0 else 0.0
        volatility = _classify_volatility(cv)

        if weekly["has_season"]:
            pattern = "weekly_seasonal"
        elif monthly["has_season"]:
            pattern = "monthly_seasonal"
        elif volatility == "high":
            pattern = "erratic"
        else:
            pattern = "stable"

        return {
            "product_id": product_id,
            "pattern": pattern,
            "volatility": volatility,
            "coefficient_of_variation": round_half_up(cv, 2),
            "weekly_seasonality": weekly["has_season"],
            "monthly_seasonality": monthly["has_season"],
            "average_demand": round_half_up(mean, 1),
            "description": PATTERN_DESCRIPTIONS.get(pattern, "Unknown pattern"),
        }
