from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from ..domain import Customer, Material, PriceChange, Product
from ..errors import ValidationError
from ..repositories.base import Repositories
from ..time_utils import Clock
from ..validation import parse_int, parse_money

logger = logging.getLogger(__name__)

CATEGORY_PRICE_REASON = "Category price update"


def products_affected_by_category_price_change(products: Iterable[Product], category: str) -> list[Product]:
    """Products a category-wide price change would reprice (case-insensitive match)."""
    wanted = (category or "").strip().lower()
    if not wanted:
        return []
    return [p for p in products if (p.category or "").strip().lower() == wanted]


def low_stock_products(products: Iterable[Product], threshold: int) -> list[Product]:
    return [p for p in products if p.quantity < threshold]


def low_stock_materials(materials: Iterable[Material]) -> list[Material]:
    return [m for m in materials if m.is_low]


def birthday_month_customers(customers: Iterable[Customer], month: int) -> list[Customer]:
    return sorted(
        (c for c in customers if c.birth_month == month),
        key=lambda c: (c.birth_day or 0, c.name.lower()),
    )


class CatalogService:
    def __init__(self, repos: Repositories, clock: Clock):
        self.repos = repos
        self.clock = clock

    def _history_timestamp(self, product: Product) -> datetime:
        # History must stay ordered even if the clock moves backwards
        now = self.clock.now()
        if product.price_history and product.price_history[-1].changed_at > now:
            return product.price_history[-1].changed_at
        return now

    def update_product_price(self, product_id: int, price, reason: str | None = None) -> Product:
        new_price = parse_money(price, "price")
        product = self.repos.products.get(product_id)
        if new_price == product.price:
            return product

        entry = PriceChange(price=new_price, changed_at=self._history_timestamp(product), reason=reason)
        self.repos.products.set_price(product_id, new_price)
        product = self.repos.products.append_price_history(product_id, entry)
        logger.info("Product %s repriced to %s (%s)", product_id, new_price, reason or "manual")
        return product

    def apply_category_price(self, category: str, price) -> list[Product]:
        new_price = parse_money(price, "price")
        affected = products_affected_by_category_price_change(self.repos.products.get_all(), category)
        return [
            self.update_product_price(p.id, new_price, CATEGORY_PRICE_REASON)
            for p in affected
        ]

    def low_stock_products(self) -> list[Product]:
        threshold = self.repos.settings.get().low_stock_threshold
        return low_stock_products(self.repos.products.get_all(), threshold)

    def low_stock_materials(self) -> list[Material]:
        return low_stock_materials(self.repos.materials.get_all())

    def adjust_jar_credits(self, customer_id: int, delta) -> Customer:
        """Add returned jars (or remove mistaken ones); the balance never goes below zero."""
        change = parse_int(delta, "delta")
        customer = self.repos.customers.get(customer_id)
        balance = customer.jar_credits + change
        if balance < 0:
            raise ValidationError(
                f"Customer {customer_id} has only {customer.jar_credits} jar credits",
                details={"jar_credits": customer.jar_credits, "delta": change},
            )
        customer = self.repos.customers.update_jar_credits(customer_id, balance)
        logger.info("Customer %s jar credits %+d -> %d", customer_id, change, balance)
        return customer

    def birthday_month_customers(self, month: int | None = None) -> list[Customer]:
        month = month or self.clock.now().month
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        return birthday_month_customers(self.repos.customers.get_all(), month)
