from sqlalchemy import text, bindparam, DateTime

# Depletions are stored as negative quantity_change; every usage figure below
# is sign-flipped with ABS() so callers only ever see positive usage.
SQL_INVENTORY_VALUE = "COALESCE(p.stock_quantity * p.cost, 0)"

PRODUCT_COLUMNS = """
    p.id,
    p.name,
    p.sku,
    p.stock_quantity,
    p.cost
"""

PRODUCT_GROUP_BY = "GROUP BY p.id, p.name, p.sku, p.stock_quantity, p.cost"


def _since(query):
    # bound as a DateTime so SQLite compares it in its own storage format
    return query.bindparams(bindparam("since", type_=DateTime))


def build_daily_usage_query():
    return _since(text("""
        SELECT DATE(created_at)         AS usage_date,
               SUM(ABS(quantity_change)) AS daily_usage
        FROM inventory_transactions
        WHERE product_id = :product_id
          AND quantity_change < 0
          AND created_at >= :since
        GROUP BY DATE(created_at)
        ORDER BY usage_date ASC
    """))


def build_product_query():
    return text("""
        SELECT id, name, sku, cost, stock_quantity,
               min_stock_level, max_stock_level, lead_time_days, active
        FROM products
        WHERE id = :product_id
    """)


def build_active_products_query():
    return text("SELECT id FROM products WHERE active = 1 ORDER BY id")


def build_inventory_value_query():
    return _since(text(f"""
        SELECT {PRODUCT_COLUMNS},
               {SQL_INVENTORY_VALUE} AS inventory_value,
               COUNT(it.id) AS transaction_count
        FROM products p
        LEFT JOIN inventory_transactions it ON p.id = it.product_id
            AND it.created_at >= :since
        WHERE p.active = 1
        {PRODUCT_GROUP_BY}
        ORDER BY inventory_value DESC, p.id
    """))


def build_slow_moving_query():
    return _since(text(f"""
        SELECT {PRODUCT_COLUMNS},
               {SQL_INVENTORY_VALUE} AS inventory_value,
               COALESCE(SUM(ABS(it.quantity_change)), 0) AS total_movement,
               COUNT(it.id) AS transaction_count,
               MAX(it.created_at) AS last_movement
        FROM products p
        LEFT JOIN inventory_transactions it ON p.id = it.product_id
            AND it.created_at >= :since
            AND it.quantity_change < 0
        WHERE p.active = 1
          AND p.stock_quantity > 0
        {PRODUCT_GROUP_BY}
        HAVING COALESCE(SUM(ABS(it.quantity_change)), 0) < :threshold
        ORDER BY inventory_value DESC, p.id
    """))


def build_excess_usage_query():
    return _since(text(f"""
        SELECT {PRODUCT_COLUMNS},
               p.min_stock_level,
               p.max_stock_level,
               {SQL_INVENTORY_VALUE} AS inventory_value,
               AVG(ABS(it.quantity_change)) AS avg_daily_usage
        FROM products p
        LEFT JOIN inventory_transactions it ON p.id = it.product_id
            AND it.created_at >= :since
            AND it.quantity_change < 0
        WHERE p.active = 1
        {PRODUCT_GROUP_BY}, p.min_stock_level, p.max_stock_level
        ORDER BY inventory_value DESC, p.id
    """))


def build_inventory_totals_query():
    return text("""
        SELECT COALESCE(SUM(COALESCE(stock_quantity * cost, 0)), 0) AS total_inventory_value,
               COUNT(*) AS product_count,
               COALESCE(AVG(COALESCE(stock_quantity * cost, 0)), 0) AS avg_product_value
        FROM products
        WHERE active = 1
    """)


def build_transaction_marker_query():
    # changes whenever a transaction for the product is written or removed
    return text("""
        SELECT COALESCE(MAX(id), 0) AS latest_id,
               COUNT(id) AS transaction_count
        FROM inventory_transactions
        WHERE product_id = :product_id
    """)
