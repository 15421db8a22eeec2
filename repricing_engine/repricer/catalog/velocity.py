from datetime import timedelta
from typing import Dict, Mapping, Optional, Protocol

import pandas as pd

from repricer.db import fetch_all
from repricer.utils.logging_utils import get_logger
from repricer.utils.time_utils import utcnow

logger = get_logger(__name__)

class SalesVelocity(Protocol):
    def get(self, sku: str, window_days: int) -> float:
        ...

    def get_all(self, window_days: int) -> Dict[str, float]:
        ...

def compute_velocity(order_lines: pd.DataFrame, window_days: int) -> Dict[str, float]:
    """Average units sold per day per sku over the window.

    Days without sales count as zero, so the divisor is always the full
    window rather than the number of days with orders.
    """
    if order_lines.empty or window_days <= 0:
        return {}
    units = pd.to_numeric(order_lines["units"], errors="coerce").fillna(0.0)
    totals = units.groupby(order_lines["sku"]).sum()
    return {str(sku): float(total) / window_days for sku, total in totals.items()}

class MySQLSalesVelocity:
    def __init__(self):
        self._cache: Dict[int, Dict[str, float]] = {}

    def _load(self, window_days: int) -> pd.DataFrame:
        since = (utcnow() - timedelta(days=window_days)).strftime("%Y-%m-%d")
        sql = """
            SELECT sku, units
            FROM orders
            WHERE order_ts >= %s
        """
        return pd.DataFrame(fetch_all(sql, (since,)), columns=["sku", "units"])

    def get_all(self, window_days: int) -> Dict[str, float]:
        """Recompute from the orders table; every call is a fresh snapshot."""
        self._cache[window_days] = compute_velocity(self._load(window_days), window_days)
        logger.info(f"Computed sales velocity for {len(self._cache[window_days])} skus over {window_days}d")
        return self._cache[window_days]

    def get(self, sku: str, window_days: int) -> float:
        # single lookups reuse the last snapshot for the window
        if window_days not in self._cache:
            self.get_all(window_days)
        return self._cache[window_days].get(sku, 0.0)

class InMemorySalesVelocity:
    def __init__(self, velocity: Optional[Mapping[str, float]] = None):
        self.velocity = dict(velocity or {})

    def get_all(self, window_days: int) -> Dict[str, float]:
        return dict(self.velocity)

    def get(self, sku: str, window_days: int) -> float:
        return self.velocity.get(sku, 0.0)
