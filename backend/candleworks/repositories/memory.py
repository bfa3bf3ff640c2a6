"""In-memory repositories for tests and for embedding the engine without a database."""

from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass, field, replace
from decimal import Decimal

from ..domain import PriceChange, Settings
from ..errors import (
    CustomerNotFound,
    InstallmentPlanNotFound,
    MaterialNotFound,
    NotFoundError,
    OrderNotFound,
    ProductNotFound,
    SaleNotFound,
)
from .base import Repositories


@dataclass
class MemoryStore:
    tables: dict[str, dict[int, object]] = field(default_factory=dict)
    settings: Settings = field(default_factory=Settings)
    _ids: dict[str, itertools.count] = field(default_factory=dict)

    def table(self, name: str) -> dict[int, object]:
        return self.tables.setdefault(name, {})

    def next_id(self, name: str) -> int:
        counter = self._ids.setdefault(name, itertools.count(1))
        return next(counter)


class _MemoryTable:
    table_name = ""
    not_found: type[NotFoundError] = NotFoundError

    def __init__(self, store: MemoryStore):
        self._store = store

    @property
    def _rows(self) -> dict[int, object]:
        return self._store.table(self.table_name)

    def _load(self, record_id):
        row = self._rows.get(record_id)
        if row is None:
            raise self.not_found(record_id)
        return row

    def get(self, record_id):
        return copy.deepcopy(self._load(record_id))

    def get_all(self) -> list:
        return [copy.deepcopy(r) for _, r in sorted(self._rows.items())]

    def add(self, record):
        record = replace(record, id=self._store.next_id(self.table_name))
        self._rows[record.id] = copy.deepcopy(record)
        return copy.deepcopy(record)

    def update(self, record):
        self._load(record.id)
        self._rows[record.id] = copy.deepcopy(record)
        return copy.deepcopy(record)

    def delete(self, record_id) -> None:
        self._load(record_id)
        del self._rows[record_id]


class MemoryProductRepository(_MemoryTable):
    table_name = "products"
    not_found = ProductNotFound

    def apply_quantity_delta(self, product_id: int, delta: int):
        product = self._load(product_id)
        product.quantity += delta
        return copy.deepcopy(product)

    def set_price(self, product_id: int, price: Decimal):
        product = self._load(product_id)
        product.price = price
        return copy.deepcopy(product)

    def append_price_history(self, product_id: int, entry: PriceChange):
        product = self._load(product_id)
        product.price_history.append(entry)
        return copy.deepcopy(product)


class MemoryMaterialRepository(_MemoryTable):
    table_name = "materials"
    not_found = MaterialNotFound


class MemoryCustomerRepository(_MemoryTable):
    table_name = "customers"
    not_found = CustomerNotFound

    def update_jar_credits(self, customer_id: int, new_balance: int):
        customer = self._load(customer_id)
        customer.jar_credits = new_balance
        return copy.deepcopy(customer)


class MemorySettingsRepository:
    def __init__(self, store: MemoryStore):
        self._store = store

    def get(self) -> Settings:
        return self._store.settings

    def save(self, settings: Settings) -> Settings:
        self._store.settings = settings
        return settings


class MemorySaleRepository(_MemoryTable):
    table_name = "sales"
    not_found = SaleNotFound


class MemoryOrderRepository(_MemoryTable):
    table_name = "orders"
    not_found = OrderNotFound


class MemoryInstallmentRepository(_MemoryTable):
    table_name = "installments"
    not_found = InstallmentPlanNotFound


class MemoryRepositories(Repositories):
    """
    Repositories over one MemoryStore.

    begin() snapshots every table; rollback() restores the snapshot, so a
    failed unit of work leaves no trace even if it wrote before failing.

    Units of work are assumed to run one at a time. A rollback restores every
    table, so overlapping units of work would undo each other's writes.
    """

    def __init__(self, store: MemoryStore | None = None):
        self.store = store or MemoryStore()
        self._snapshot = None
        super().__init__(
            products=MemoryProductRepository(self.store),
            materials=MemoryMaterialRepository(self.store),
            customers=MemoryCustomerRepository(self.store),
            settings=MemorySettingsRepository(self.store),
            sales=MemorySaleRepository(self.store),
            orders=MemoryOrderRepository(self.store),
            installments=MemoryInstallmentRepository(self.store),
        )

    def begin(self) -> None:
        self._snapshot = (copy.deepcopy(self.store.tables), self.store.settings)

    def commit(self) -> None:
        self._snapshot = None

    def rollback(self) -> None:
        if self._snapshot is None:
            return
        tables, settings = self._snapshot
        self.store.tables = tables
        self.store.settings = settings
        self._snapshot = None
