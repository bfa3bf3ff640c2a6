# Overview: Authoritative on-hand quantity per product; applies and reverses deltas.

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Iterable, Protocol

from ..errors import InsufficientStock
from ..repositories.base import ProductRepository

"""
Stock Ledger Invariants (authoritative)

- Product.quantity is never negative after any ledger operation.
- reserve() checks EVERY line against the latest on-hand quantity before
  deducting ANY of them; on failure nothing has been applied, so there is
  nothing to roll back.
- Lines for the same product are checked as one aggregate quantity.
- release() adds quantities back and never fails on an upper bound.
- reserve/apply/release run under one re-entrant lock: the serialization point
  for hosts that allow concurrent requests. Database-backed repositories add
  row locks on top.
"""

logger = logging.getLogger(__name__)


class StockLine(Protocol):
    product_id: int
    quantity: int


def aggregate_quantities(items: Iterable[StockLine]) -> "OrderedDict[int, int]":
    """Sum quantities per product, keeping first-seen product order."""
    totals: OrderedDict[int, int] = OrderedDict()
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


class StockLedger:
    def __init__(self, products: ProductRepository):
        self._products = products
        self._lock = threading.RLock()

    def on_hand(self, product_id: int) -> int:
        return self._products.get(product_id).quantity

    def apply(self, product_id: int, delta: int) -> int:
        """Add `delta` (positive or negative) to on-hand; returns the new quantity."""
        with self._lock:
            if delta < 0:
                available = self.on_hand(product_id)
                if available + delta < 0:
                    raise InsufficientStock(product_id, available, -delta)
            product = self._products.apply_quantity_delta(product_id, delta)
            logger.debug("Stock %s: %+d -> %d", product_id, delta, product.quantity)
            return product.quantity

    def check(self, items: Iterable[StockLine]) -> None:
        """Raise InsufficientStock if any product cannot cover its aggregate quantity."""
        shortages = []
        for product_id, requested in aggregate_quantities(items).items():
            available = self.on_hand(product_id)
            if available < requested:
                shortages.append({
                    "product_id": product_id,
                    "available": available,
                    "requested": requested,
                })

        if shortages:
            first = shortages[0]
            raise InsufficientStock(
                first["product_id"], first["available"], first["requested"], shortages=shortages
            )

    def reserve(self, items: Iterable[StockLine]) -> None:
        """All-or-nothing deduction of every line."""
        items = list(items)
        with self._lock:
            self.check(items)
            for product_id, quantity in aggregate_quantities(items).items():
                self.apply(product_id, -quantity)

    def release(self, items: Iterable[StockLine]) -> None:
        """Return every line's quantity to stock."""
        with self._lock:
            for product_id, quantity in aggregate_quantities(items).items():
                self.apply(product_id, quantity)
