import logging
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pandas as pd

from db.usage_provider import UsageProvider
from utils.ai_config import (
    DEFAULT_LOOKBACK_DAYS, CARRYING_COST_RATE, NO_STOCKOUT_DAYS, MAX_LISTED_PRODUCTS,
    ABC_A_THRESHOLD, ABC_B_THRESHOLD, SLOW_MOVING_HIGH_VALUE, EXCESS_MAX_STOCK_FACTOR,
    EXCESS_DAYS_OF_STOCK,
)
from utils.date_utils import days_since
from utils.number_utils import money, round_half_up

logger = logging.getLogger(__name__)

ABC_CLASSES = ("A", "B", "C")
REPORT_WORKERS = 4


def _num(value, default=0.0):
    return default if value is None or pd.isna(value) else float(value)


def _text(value):
    return None if value is None or (not isinstance(value, str) and pd.isna(value)) else value


def _product_fields(r) -> dict:
    return {
        "id": int(r["id"]),
        "name": _text(r["name"]),
        "sku": _text(r["sku"]),
        "stock_quantity": _num(r["stock_quantity"]),
        "cost": _num(r["cost"]),
        "inventory_value": money(r["inventory_value"]),
    }


class InventoryOptimizer:
    """Portfolio-wide stock analytics over all active products."""

    def __init__(self, provider: UsageProvider | None = None, max_workers: int = REPORT_WORKERS):
        self.provider = provider or UsageProvider()
        self.max_workers = max_workers

    # ---------------------------------------------------------
    # ABC classification
    # ---------------------------------------------------------
    def abc_analysis(self) -> dict:
        df = self.provider.get_inventory_values()
        df["inventory_value"] = df["inventory_value"].fillna(0.0)
        df = df.sort_values("inventory_value", ascending=False, kind="mergesort").reset_index(drop=True)

        total_value = float(df["inventory_value"].sum())

        if total_value > 0:
            cumulative_percent = df["inventory_value"].cumsum() / total_value * 100
            df["classification"] = np.select(
                [cumulative_percent <= ABC_A_THRESHOLD, cumulative_percent <= ABC_B_THRESHOLD],
                ["A", "B"],
                default="C",
            )
            df["value_percent"] = df["inventory_value"] / total_value * 100
        else:
            # nothing holds value, so nothing earns a tighter class
            df["classification"] = "C"
            df["value_percent"] = 0.0

        classifications = {}
        for cls in ABC_CLASSES:
            group = df[df["classification"] == cls]
            products = []
            for _, r in group.head(MAX_LISTED_PRODUCTS).iterrows():
                item = _product_fields(r)
                item.update({
                    "transaction_count": int(_num(r["transaction_count"])),
                    "classification": cls,
                    "value_percent": round_half_up(float(r["value_percent"]), 2),
                })
                products.append(item)
            classifications[cls] = {
                "count": int(len(group)),
                "value": money(group["inventory_value"].sum()),
                "products": products,
            }

        return {
            "total_value": money(total_value),
            "total_products": int(len(df)),
            "classifications": classifications,
            "recommendations": [
                f"Focus on {classifications['A']['count']} A-class items (tight control, frequent monitoring)",
                f"Moderate control for {classifications['B']['count']} B-class items",
                f"Simple reorder system for {classifications['C']['count']} C-class items",
            ],
        }

    # ---------------------------------------------------------
    # Slow movers
    # ---------------------------------------------------------
    @staticmethod
    def _slow_moving_recommendation(inventory_value: float, transaction_count: int) -> str:
        if inventory_value > SLOW_MOVING_HIGH_VALUE:
            return "High-value slow mover - consider promotion or discount"
        if transaction_count == 0:
            return "No movement - consider discontinuation"
        return "Monitor and reduce reorder quantity"

    def identify_slow_moving(self, days: int = DEFAULT_LOOKBACK_DAYS) -> list[dict]:
        """Active, in-stock products that depleted fewer than 5 units over `days`."""
        df = self.provider.get_slow_moving_candidates(days)

        results = []
        for _, r in df.iterrows():
            value = _num(r["inventory_value"])
            count = int(_num(r["transaction_count"]))
            last_movement = _text(r["last_movement"])
            item = _product_fields(r)
            item.update({
                "total_movement": _num(r["total_movement"]),
                "transaction_count": count,
                "last_movement": None if last_movement is None else str(last_movement),
                "days_without_movement": days_since(last_movement),
                "recommendation": self._slow_moving_recommendation(value, count),
            })
            results.append(item)
        return results

    # ---------------------------------------------------------
    # Excess stock
    # ---------------------------------------------------------
    def _excess_frame(self) -> pd.DataFrame:
        df = self.provider.get_excess_candidates()
        df["inventory_value"] = df["inventory_value"].fillna(0.0)
        df["stock_quantity"] = df["stock_quantity"].fillna(0.0)
        usage = df["avg_daily_usage"].fillna(0.0)

        # NaN max level (no ceiling configured) compares False
        over_max = df["stock_quantity"] > df["max_stock_level"] * EXCESS_MAX_STOCK_FACTOR
        cover_days = df["stock_quantity"] / usage.where(usage > 0)
        slow_cover = (usage > 0) & (cover_days > EXCESS_DAYS_OF_STOCK)

        excess = df[over_max | slow_cover].copy()
        excess["avg_daily_usage"] = usage[excess.index]
        return excess

    @staticmethod
    def _format_excess(excess: pd.DataFrame) -> list[dict]:
        results = []
        for _, r in excess.iterrows():
            stock = _num(r["stock_quantity"])
            usage = _num(r["avg_daily_usage"])
            max_level = _num(r["max_stock_level"])
            days_of_stock = math.floor(stock / usage) if usage > 0 else NO_STOCKOUT_DAYS
            item = _product_fields(r)
            item.update({
                "min_stock_level": _num(r["min_stock_level"], None),
                "max_stock_level": _num(r["max_stock_level"], None),
                "avg_daily_usage": round_half_up(usage, 2),
                "days_of_stock": days_of_stock,
                "excess_quantity": max(0.0, stock - (max_level or stock)),
                "tied_up_capital": money(r["inventory_value"]),
                "recommendation": "Consider markdown or promotion to reduce excess",
            })
            results.append(item)
        return results

    def identify_excess_inventory(self) -> list[dict]:
        return self._format_excess(self._excess_frame())

    # ---------------------------------------------------------
    # Carrying cost
    # ---------------------------------------------------------
    def calculate_carrying_costs(self) -> dict:
        totals = self.provider.get_inventory_totals()
        total_value = totals["total_inventory_value"]

        annual = total_value * CARRYING_COST_RATE
        return {
            "total_inventory_value": money(total_value),
            "product_count": totals["product_count"],
            "avg_product_value": money(totals["avg_product_value"]),
            "carrying_cost_rate": CARRYING_COST_RATE,
            "annual_carrying_cost": money(annual),
            "monthly_carrying_cost": money(annual / 12),
            "daily_carrying_cost": money(annual / 365),
            "recommendations": [
                "Reduce slow-moving inventory to lower carrying costs",
                "Implement just-in-time ordering for C-class items",
                "Negotiate better payment terms with suppliers",
            ],
        }

    # ---------------------------------------------------------
    # Consolidated report
    # ---------------------------------------------------------
    def generate_optimization_report(self) -> dict:
        """
        Runs the four analyses in parallel and merges them. If any of them
        fails the exception propagates and no report is produced.
        """
        logger.info("Generating inventory optimization report")
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            abc_future = executor.submit(self.abc_analysis)
            slow_future = executor.submit(self.identify_slow_moving)
            excess_future = executor.submit(self._excess_frame)
            carrying_future = executor.submit(self.calculate_carrying_costs)

            abc = abc_future.result()
            slow_moving = slow_future.result()
            excess_frame = excess_future.result()
            carrying_costs = carrying_future.result()

        excess = self._format_excess(excess_frame)
        excess_value = float(excess_frame["inventory_value"].sum())
        potential_savings = excess_value * CARRYING_COST_RATE

        return {
            "summary": {
                "total_inventory_value": carrying_costs["total_inventory_value"],
                "slow_moving_items": len(slow_moving),
                "excess_inventory_value": money(excess_value),
                "potential_annual_savings": money(potential_savings),
            },
            "abc": abc,
            "slow_moving": slow_moving[:MAX_LISTED_PRODUCTS],
            "excess": excess[:MAX_LISTED_PRODUCTS],
            "carrying_costs": carrying_costs,
            "top_recommendations": self._top_recommendations(abc, slow_moving, excess, excess_value),
        }

    @staticmethod
    def _top_recommendations(abc, slow_moving, excess, excess_value) -> list[dict]:
        recommendations = []

        if slow_moving:
            recommendations.append({
                "priority": "high",
                "action": "Address slow-moving inventory",
                "impact": f"{len(slow_moving)} items with minimal movement",
                "savings": "Reduce carrying costs by 15-25%",
            })

        if excess:
            recommendations.append({
                "priority": "high",
                "action": "Reduce excess inventory",
                "impact": f"${round_half_up(excess_value)} in excess stock",
                "savings": f"Free up ${round_half_up(excess_value * 0.75)} in capital",
            })

        a_count = abc["classifications"]["A"]["count"]
        if a_count > 0:
            recommendations.append({
                "priority": "medium",
                "action": "Optimize A-class item management",
                "impact": f"{a_count} high-value items",
                "savings": "Reduce stockouts and improve service level",
            })

        return recommendations
