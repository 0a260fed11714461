import math
from datetime import datetime

import pandas as pd

from utils.ai_config import NO_STOCKOUT_DAYS


def days_since(timestamp, now: datetime | None = None) -> int:
    """
    Whole days (rounded up) between `timestamp` and now.
    Accepts datetimes or the strings SQLite hands back; None -> sentinel.
    """
    if timestamp is None or (not isinstance(timestamp, str) and pd.isna(timestamp)):
        return NO_STOCKOUT_DAYS
    ts = pd.Timestamp(timestamp)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    now = pd.Timestamp(now or datetime.utcnow())
    diff_days = abs((now - ts).total_seconds()) / 86400
    return int(math.ceil(diff_days))
