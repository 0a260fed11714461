DEFAULT_FORECAST_DAYS = 30  # forecast horizon
DEFAULT_LOOKBACK_DAYS = 90  # days of transaction history fed to the forecaster
DEFAULT_CONFIDENCE_LEVEL = 0.95
LEAD_TIME_DAYS = 7  # default supplier lead time when the product has none

Z95 = 1.65  # service level for safety stock, independent of confidence_level
Z_CI_95 = 1.96
Z_CI_90 = 1.645

ORDERING_COST = 25.0  # per purchase order
HOLDING_COST_RATE = 0.25  # annual, fraction of unit cost
CARRYING_COST_RATE = 0.25  # annual, fraction of inventory value

NO_STOCKOUT_DAYS = 999  # sentinel: no measurable depletion
MAX_LISTED_PRODUCTS = 20

ABC_A_THRESHOLD = 80.0  # cumulative value percent
ABC_B_THRESHOLD = 95.0

SLOW_MOVING_THRESHOLD = 5  # units depleted over the window
SLOW_MOVING_HIGH_VALUE = 1000.0
EXCESS_MAX_STOCK_FACTOR = 1.5
EXCESS_DAYS_OF_STOCK = 90
EXCESS_USAGE_WINDOW_DAYS = 30
