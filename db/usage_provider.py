import logging
from datetime import datetime, timedelta

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError

from db.queries import (
    build_daily_usage_query, build_product_query, build_active_products_query,
    build_inventory_value_query, build_slow_moving_query, build_excess_usage_query,
    build_inventory_totals_query, build_transaction_marker_query,
)
from utils.ai_config import DEFAULT_LOOKBACK_DAYS, EXCESS_USAGE_WINDOW_DAYS, SLOW_MOVING_THRESHOLD
from utils.errors import DataAccessError

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = (
    "stock_quantity", "cost", "inventory_value", "total_movement", "transaction_count",
    "min_stock_level", "max_stock_level", "avg_daily_usage",
)


class UsageProvider:
    """
    Read-only access to products and inventory transactions.

    Every method returns plain Python values or DataFrames with numeric
    columns cast to float; database errors surface as DataAccessError.
    """

    def __init__(self, engine=None):
        if engine is None:
            from db.connection import engine
        self.engine = engine

    def _read(self, query, params=None) -> pd.DataFrame:
        try:
            return pd.read_sql(query, self.engine, params=params or {})
        except SQLAlchemyError as e:
            logger.error(f"Inventory query failed: {e}")
            raise DataAccessError(str(e)) from e

    @staticmethod
    def _since(days: int) -> datetime:
        return datetime.utcnow() - timedelta(days=int(days))

    @staticmethod
    def _to_float(df: pd.DataFrame) -> pd.DataFrame:
        # NULL aggregates (empty joins) become NaN here; callers decide where 0 is right
        for col in NUMERIC_COLUMNS:
            if col in df.columns:
                df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
        return df

    def get_historical_usage(self, product_id: int, days: int = DEFAULT_LOOKBACK_DAYS) -> list[float]:
        """Daily depletion totals, oldest first. Days without depletion are absent."""
        df = self._read(build_daily_usage_query(), {"product_id": product_id, "since": self._since(days)})
        if df.empty:
            return []
        return [float(v) for v in df["daily_usage"].fillna(0.0)]

    def get_product(self, product_id: int) -> dict | None:
        df = self._read(build_product_query(), {"product_id": product_id})
        if df.empty:
            return None
        row = df.iloc[0]

        def num(col):
            val = row[col]
            return None if pd.isna(val) else float(val)

        return {
            "id": int(row["id"]),
            "name": row["name"],
            "sku": None if pd.isna(row["sku"]) else row["sku"],
            "cost": num("cost"),
            "stock_quantity": num("stock_quantity") or 0.0,
            "min_stock_level": num("min_stock_level"),
            "max_stock_level": num("max_stock_level"),
            "lead_time_days": num("lead_time_days"),
            "active": bool(row["active"]),
        }

    def get_active_product_ids(self) -> list[int]:
        df = self._read(build_active_products_query())
        return [int(pid) for pid in df["id"]]

    def get_inventory_values(self, days: int = DEFAULT_LOOKBACK_DAYS) -> pd.DataFrame:
        df = self._read(build_inventory_value_query(), {"since": self._since(days)})
        return self._to_float(df)

    def get_slow_moving_candidates(self, days: int = DEFAULT_LOOKBACK_DAYS) -> pd.DataFrame:
        df = self._read(
            build_slow_moving_query(),
            {"since": self._since(days), "threshold": SLOW_MOVING_THRESHOLD},
        )
        return self._to_float(df)

    def get_excess_candidates(self) -> pd.DataFrame:
        df = self._read(build_excess_usage_query(), {"since": self._since(EXCESS_USAGE_WINDOW_DAYS)})
        return self._to_float(df)

    def get_inventory_totals(self) -> dict:
        df = self._read(build_inventory_totals_query())
        row = df.iloc[0]
        return {
            "total_inventory_value": float(row["total_inventory_value"] or 0.0),
            "product_count": int(row["product_count"] or 0),
            "avg_product_value": float(row["avg_product_value"] or 0.0),
        }

    def get_transaction_marker(self, product_id: int) -> tuple[int, int]:
        """(latest transaction id, transaction count) for the product; (0, 0) with none."""
        df = self._read(build_transaction_marker_query(), {"product_id": product_id})
        row = df.iloc[0]
        return int(row["latest_id"] or 0), int(row["transaction_count"] or 0)
