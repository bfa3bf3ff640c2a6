"""
Engine facade: the operations the host application calls.

Every mutating call runs as one unit of work over the injected repositories
(commit on success, rollback on any error, retry on the backend's transient
conflicts). Queries read straight through.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Mapping, TypeVar

from .domain import (
    Customer,
    InstallmentPlan,
    Material,
    Order,
    OrderStatus,
    PaymentMethod,
    Product,
    Sale,
    SaleStatus,
    Settings,
)
from .errors import ValidationError
from .repositories.base import Repositories
from .services import catalog_service, installment_service, production_service
from .services.catalog_service import CatalogService
from .services.concurrency import run_in_transaction
from .services.discount_service import validate_percentage
from .services.installment_service import InstallmentService, PlanSummary
from .services.order_service import OrderDraft, OrderService
from .services.production_service import ProductionPlan
from .services.sales_service import SaleDraft, SaleQuote, SaleService
from .services.stock_ledger import StockLedger
from .time_utils import Clock, SystemClock

T = TypeVar("T")


class Engine:
    def __init__(self, repos: Repositories, clock: Clock | None = None,
                 make_to_order_pattern: str | None = None):
        self.repos = repos
        self.clock = clock or SystemClock()
        self.ledger = StockLedger(repos.products)
        self.sales = SaleService(repos, self.ledger, self.clock)
        self.orders = OrderService(repos, self.sales, self.clock)
        self.installments = InstallmentService(repos, self.clock)
        self.catalog = CatalogService(repos, self.clock)
        self.is_make_to_order = production_service.make_to_order_predicate(make_to_order_pattern)

    def _tx(self, func: Callable[[], T]) -> T:
        return run_in_transaction(self.repos, func)

    # -- sales ---------------------------------------------------------------

    def preview_sale(self, draft: SaleDraft) -> SaleQuote:
        return self.sales.quote(draft)

    def create_sale(self, draft: SaleDraft) -> Sale:
        return self._tx(lambda: self.sales.create_sale(draft))

    def update_sale_status(self, sale_id: int, new_status: SaleStatus,
                           payment_method: PaymentMethod | None = None) -> Sale:
        return self._tx(lambda: self.sales.update_sale_status(sale_id, new_status, payment_method))

    def delete_sale(self, sale_id: int) -> None:
        self._tx(lambda: self.sales.delete_sale(sale_id))

    def get_sale(self, sale_id: int) -> Sale:
        return self.repos.sales.get(sale_id)

    def list_sales(self, status: SaleStatus | None = None) -> list[Sale]:
        sales = self.repos.sales.get_all()
        if status is not None:
            sales = [s for s in sales if s.status is status]
        return sales

    # -- orders --------------------------------------------------------------

    def create_order(self, draft: OrderDraft) -> Order:
        return self._tx(lambda: self.orders.create_order(draft))

    def update_order_status(self, order_id: int, new_status: OrderStatus,
                            payment_method: PaymentMethod | None = None) -> Order:
        return self._tx(lambda: self.orders.update_order_status(order_id, new_status, payment_method))

    def convert_order_to_sale(self, order_id: int, payment_method: PaymentMethod | None = None) -> Sale:
        def _convert():
            order = self.repos.orders.get(order_id)
            return self.orders.convert_order_to_sale(order, payment_method)
        return self._tx(_convert)

    def delete_order(self, order_id: int) -> None:
        self._tx(lambda: self.orders.delete_order(order_id))

    def get_order(self, order_id: int) -> Order:
        return self.repos.orders.get(order_id)

    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        orders = self.repos.orders.get_all()
        if status is not None:
            orders = [o for o in orders if o.status is status]
        return orders

    def open_orders(self) -> list[Order]:
        return self.orders.open_orders()

    # -- installments --------------------------------------------------------

    def create_installment_plan(self, description: str, total_amount, installment_count,
                                start_date=None, category: str = "Other",
                                notes: str | None = None) -> InstallmentPlan:
        return self._tx(lambda: self.installments.create_plan(
            description, total_amount, installment_count, start_date, category, notes
        ))

    def set_installment_paid(self, plan_id: int, installment_number: int, paid: bool) -> InstallmentPlan:
        return self._tx(lambda: self.installments.set_installment_paid(plan_id, installment_number, paid))

    def toggle_installment(self, plan_id: int, installment_number: int) -> InstallmentPlan:
        return self._tx(lambda: self.installments.toggle_installment(plan_id, installment_number))

    def delete_installment_plan(self, plan_id: int) -> None:
        self._tx(lambda: self.installments.delete_plan(plan_id))

    def get_installment_plan(self, plan_id: int) -> InstallmentPlan:
        return self.repos.installments.get(plan_id)

    def list_installment_plans(self) -> list[InstallmentPlan]:
        return self.repos.installments.get_all()

    def installment_summary(self, plan_id: int) -> PlanSummary:
        return installment_service.summarize(self.repos.installments.get(plan_id))

    def installments_due_in_month(self, year: int, month: int) -> Decimal:
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        return installment_service.installments_due_in_month(self.repos.installments.get_all(), year, month)

    # -- production ----------------------------------------------------------

    def plan_production(self, manual_targets: Mapping[int, int] | None = None, *,
                        auto_fill: bool = False) -> ProductionPlan:
        """Plan against the current catalog, open order backlog and material stock."""
        return production_service.plan_production(
            self.repos.products.get_all(),
            self.open_orders(),
            self.repos.materials.get_all(),
            manual_targets,
            auto_fill=auto_fill,
            low_stock_threshold=self.repos.settings.get().low_stock_threshold,
            is_make_to_order=self.is_make_to_order,
        )

    # -- catalog & customers -------------------------------------------------

    def add_product(self, product: Product) -> Product:
        if product.quantity < 0:
            raise ValidationError("quantity must be >= 0")
        return self._tx(lambda: self.repos.products.add(product))

    def add_material(self, material: Material) -> Material:
        return self._tx(lambda: self.repos.materials.add(material))

    def add_customer(self, customer: Customer) -> Customer:
        if customer.jar_credits < 0:
            raise ValidationError("jar_credits must be >= 0")
        return self._tx(lambda: self.repos.customers.add(customer))

    def get_product(self, product_id: int) -> Product:
        return self.repos.products.get(product_id)

    def list_products(self) -> list[Product]:
        return self.repos.products.get_all()

    def list_materials(self) -> list[Material]:
        return self.repos.materials.get_all()

    def get_customer(self, customer_id: int) -> Customer:
        return self.repos.customers.get(customer_id)

    def list_customers(self) -> list[Customer]:
        return self.repos.customers.get_all()

    def restock_product(self, product_id: int, quantity: int) -> Product:
        """Record finished units entering stock (production output, recount)."""
        if quantity <= 0:
            raise ValidationError("quantity must be > 0")

        def _restock():
            self.ledger.apply(product_id, quantity)
            return self.repos.products.get(product_id)
        return self._tx(_restock)

    def update_product_price(self, product_id: int, price, reason: str | None = None) -> Product:
        return self._tx(lambda: self.catalog.update_product_price(product_id, price, reason))

    def products_affected_by_category_price_change(self, category: str) -> list[Product]:
        return catalog_service.products_affected_by_category_price_change(self.repos.products.get_all(), category)

    def apply_category_price(self, category: str, price) -> list[Product]:
        return self._tx(lambda: self.catalog.apply_category_price(category, price))

    def low_stock_products(self) -> list[Product]:
        return self.catalog.low_stock_products()

    def low_stock_materials(self) -> list[Material]:
        return self.catalog.low_stock_materials()

    def adjust_jar_credits(self, customer_id: int, delta) -> Customer:
        return self._tx(lambda: self.catalog.adjust_jar_credits(customer_id, delta))

    def birthday_month_customers(self, month: int | None = None) -> list[Customer]:
        return self.catalog.birthday_month_customers(month)

    # -- settings ------------------------------------------------------------

    def get_settings(self) -> Settings:
        return self.repos.settings.get()

    def save_settings(self, settings: Settings) -> Settings:
        if settings.low_stock_threshold < 0:
            raise ValidationError("low_stock_threshold must be >= 0")
        validate_percentage(settings.birthday_discount_percent, "birthday_discount_percent")
        if settings.jar_discount_per_unit < 0:
            raise ValidationError("jar_discount_per_unit must be >= 0")
        return self._tx(lambda: self.repos.settings.save(settings))


def sql_engine(app=None, clock: Clock | None = None) -> Engine:
    """Engine over Flask-SQLAlchemy; call inside an application context."""
    from flask import current_app

    from .repositories.sql import SqlRepositories

    app = app or current_app
    return Engine(
        SqlRepositories(),
        clock=clock,
        make_to_order_pattern=app.config.get("MAKE_TO_ORDER_PATTERN") or None,
    )
