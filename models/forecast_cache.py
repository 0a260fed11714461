import logging
import threading

from sqlalchemy import event

from db.models import InventoryTransaction

logger = logging.getLogger(__name__)


class ForecastCache:
    """
    In-memory store of demand forecasts keyed by
    (product_id, horizon, lookback, confidence_level).

    Each entry is stored with a version: the product's transaction marker
    plus the UTC day it was computed on. A lookup with a different version
    misses and drops the entry, so writes made by any process or through
    plain SQL, and the lookback window moving to a new day, all force a
    recompute. ORM inserts made in this process also drop entries right away
    once listen_for_transactions() is on.
    """

    def __init__(self):
        self._entries = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(product_id, horizon, lookback, confidence_level):
        return int(product_id), int(horizon), int(lookback), float(confidence_level)

    def get(self, key, version=None):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_version, value = entry
            if stored_version != version:
                del self._entries[key]
                return None
            return value

    def set(self, key, value, version=None):
        with self._lock:
            self._entries[key] = (version, value)

    def invalidate(self, product_id):
        """Drop every cached forecast for the product. Write paths call this directly."""
        with self._lock:
            stale = [k for k in self._entries if k[0] == int(product_id)]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.info(f"Dropped {len(stale)} cached forecast(s) for product {product_id}")

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def _on_transaction_insert(self, mapper, connection, target):
        self.invalidate(target.product_id)

    def listen_for_transactions(self):
        """Invalidate on every ORM insert into inventory_transactions."""
        if not event.contains(InventoryTransaction, "after_insert", self._on_transaction_insert):
            event.listen(InventoryTransaction, "after_insert", self._on_transaction_insert)

    def stop_listening(self):
        if event.contains(InventoryTransaction, "after_insert", self._on_transaction_insert):
            event.remove(InventoryTransaction, "after_insert", self._on_transaction_insert)
