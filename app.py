import logging

from flask import Flask, request, jsonify
from flask_cors import CORS
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import config
from db.connection import engine
from db.usage_provider import UsageProvider
from models.forecast_cache import ForecastCache
from models.inventory_optimizer import InventoryOptimizer
from models.prediction_service import PredictionService
from utils.ai_config import (
    DEFAULT_FORECAST_DAYS, DEFAULT_LOOKBACK_DAYS, DEFAULT_CONFIDENCE_LEVEL,
)
from utils.errors import ProductNotFoundError

# ✅ Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger("GroceryForecast")

app = Flask(__name__)
CORS(app)

usage_provider = UsageProvider(engine)
forecast_cache = ForecastCache()
forecast_cache.listen_for_transactions()
prediction_service = PredictionService(usage_provider, cache=forecast_cache)
inventory_optimizer = InventoryOptimizer(usage_provider)

logger.info("🚀 Grocery forecasting service initialized successfully.")


def _int_arg(value, default):
    # non-numeric or zero values fall back to the default
    try:
        return int(value) or default
    except (TypeError, ValueError):
        return default


def _float_arg(value, default):
    try:
        return float(value) or default
    except (TypeError, ValueError):
        return default


def _error(message, status=500):
    return jsonify({"status": "error", "message": message}), status


@app.route("/api/v1/health", methods=["GET"])
def health():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"❌ Database health check failed: {e}")
        return jsonify({"status": "error", "database": "unreachable"}), 503
    return jsonify({"status": "ok"})


@app.route("/api/v1/predictions/demand/<int:product_id>", methods=["POST"])
def predict_demand(product_id):
    """
    Body (all optional):
    {
      "horizon": 30,             # days to forecast
      "lookback": 90,            # days of history
      "confidence_level": 0.95   # 0.95 -> z 1.96, lower -> z 1.645
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        forecast = prediction_service.predict_demand(
            product_id,
            horizon=_int_arg(data.get("horizon"), DEFAULT_FORECAST_DAYS),
            lookback=_int_arg(data.get("lookback"), DEFAULT_LOOKBACK_DAYS),
            confidence_level=_float_arg(data.get("confidence_level"), DEFAULT_CONFIDENCE_LEVEL),
        )
        return jsonify({"status": "success", "data": forecast})
    except Exception as e:
        logger.error(f"Error predicting demand for product {product_id}: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/reorder-points", methods=["GET"])
def reorder_points():
    try:
        recommendations = prediction_service.get_reorder_recommendations()
        return jsonify({"status": "success", "count": len(recommendations), "data": recommendations})
    except Exception as e:
        logger.error(f"Error getting reorder points: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/reorder/<int:product_id>", methods=["GET"])
def reorder_point(product_id):
    try:
        info = prediction_service.calculate_reorder_point(product_id)
        return jsonify({"status": "success", "data": info})
    except ProductNotFoundError as e:
        return _error(str(e), 404)
    except Exception as e:
        logger.error(f"Error calculating reorder point for product {product_id}: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/patterns/<int:product_id>", methods=["GET"])
def demand_patterns(product_id):
    try:
        patterns = prediction_service.analyze_demand_patterns(product_id)
        return jsonify({"status": "success", "data": patterns})
    except Exception as e:
        logger.error(f"Error analyzing patterns for product {product_id}: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/optimization/abc", methods=["GET"])
def abc_analysis():
    try:
        return jsonify({"status": "success", "data": inventory_optimizer.abc_analysis()})
    except Exception as e:
        logger.error(f"Error performing ABC analysis: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/optimization/slow-moving", methods=["GET"])
def slow_moving():
    days = _int_arg(request.args.get("days"), DEFAULT_LOOKBACK_DAYS)
    try:
        items = inventory_optimizer.identify_slow_moving(days)
        return jsonify({"status": "success", "count": len(items), "data": items})
    except Exception as e:
        logger.error(f"Error identifying slow-moving inventory: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/optimization/excess", methods=["GET"])
def excess_inventory():
    try:
        items = inventory_optimizer.identify_excess_inventory()
        return jsonify({"status": "success", "count": len(items), "data": items})
    except Exception as e:
        logger.error(f"Error identifying excess inventory: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/optimization/carrying-costs", methods=["GET"])
def carrying_costs():
    try:
        return jsonify({"status": "success", "data": inventory_optimizer.calculate_carrying_costs()})
    except Exception as e:
        logger.error(f"Error calculating carrying costs: {e}")
        return _error(str(e))


@app.route("/api/v1/predictions/optimization/report", methods=["GET"])
def optimization_report():
    try:
        return jsonify({"status": "success", "data": inventory_optimizer.generate_optimization_report()})
    except Exception as e:
        logger.error(f"Error generating optimization report: {e}")
        return _error(str(e))


if __name__ == "__main__":
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=config.FLASK_ENV == "development")
