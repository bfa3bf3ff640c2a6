"""
Repository contracts the engine depends on.

The engine never reaches for a global store: every read and write goes
through one of these protocols, bundled in `Repositories`. `get` raises the
matching NotFoundError; everything else returns fresh copies so callers can
not mutate stored state behind the repository's back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..domain import (
    Customer,
    InstallmentPlan,
    Material,
    Order,
    PriceChange,
    Product,
    Sale,
    Settings,
)


class ProductRepository(Protocol):
    def get(self, product_id: int) -> Product: ...
    def get_all(self) -> list[Product]: ...
    def add(self, product: Product) -> Product: ...
    def apply_quantity_delta(self, product_id: int, delta: int) -> Product: ...
    def set_price(self, product_id: int, price) -> Product: ...
    def append_price_history(self, product_id: int, entry: PriceChange) -> Product: ...


class MaterialRepository(Protocol):
    def get(self, material_id: int) -> Material: ...
    def get_all(self) -> list[Material]: ...
    def add(self, material: Material) -> Material: ...


class CustomerRepository(Protocol):
    def get(self, customer_id: int) -> Customer: ...
    def get_all(self) -> list[Customer]: ...
    def add(self, customer: Customer) -> Customer: ...
    def update_jar_credits(self, customer_id: int, new_balance: int) -> Customer: ...


class SettingsRepository(Protocol):
    def get(self) -> Settings: ...
    def save(self, settings: Settings) -> Settings: ...


class SaleRepository(Protocol):
    def get(self, sale_id: int) -> Sale: ...
    def get_all(self) -> list[Sale]: ...
    def add(self, sale: Sale) -> Sale: ...
    def update(self, sale: Sale) -> Sale: ...
    def delete(self, sale_id: int) -> None: ...


class OrderRepository(Protocol):
    def get(self, order_id: int) -> Order: ...
    def get_all(self) -> list[Order]: ...
    def add(self, order: Order) -> Order: ...
    def update(self, order: Order) -> Order: ...
    def delete(self, order_id: int) -> None: ...


class InstallmentRepository(Protocol):
    def get(self, plan_id: int) -> InstallmentPlan: ...
    def get_all(self) -> list[InstallmentPlan]: ...
    def add(self, plan: InstallmentPlan) -> InstallmentPlan: ...
    def update(self, plan: InstallmentPlan) -> InstallmentPlan: ...
    def delete(self, plan_id: int) -> None: ...


@dataclass
class Repositories:
    """
    All stores one engine instance works against, plus unit-of-work hooks.

    begin/commit/rollback are no-ops here; backends that stage writes
    (SQL session, in-memory snapshot) override them.
    """
    products: ProductRepository
    materials: MaterialRepository
    customers: CustomerRepository
    settings: SettingsRepository
    sales: SaleRepository
    orders: OrderRepository
    installments: InstallmentRepository

    # Exceptions worth retrying the whole unit of work for
    retryable_errors: tuple[type[BaseException], ...] = ()

    def begin(self) -> None:
        pass

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass
