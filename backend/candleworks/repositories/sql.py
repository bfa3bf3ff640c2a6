"""
Flask-SQLAlchemy repositories.

Writes are flushed, never committed here: the engine's unit of work commits
or rolls back the whole session. Reads feeding a stock mutation take a row
lock (SELECT ... FOR UPDATE where the database supports it) and every
versioned row raises StaleDataError on a lost update, which the unit of work
retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..domain import (
    BomLine,
    Customer,
    InstallmentEntry,
    InstallmentPlan,
    LineItem,
    Material,
    Order,
    OrderStatus,
    PaymentMethod,
    PriceChange,
    Product,
    Sale,
    SaleStatus,
    Settings,
)
from ..errors import (
    CustomerNotFound,
    InstallmentPlanNotFound,
    MaterialNotFound,
    OrderNotFound,
    ProductNotFound,
    SaleNotFound,
)
from ..extensions import db
from ..models import (
    Customer as CustomerRow,
    InstallmentPayment,
    InstallmentPaymentStatus,
    Material as MaterialRow,
    Order as OrderRow,
    OrderItem,
    Product as ProductRow,
    ProductMaterial,
    ProductPriceHistory,
    Sale as SaleRow,
    SaleItem,
    StoreSettings,
)
from ..services.concurrency import lock_for_update
from .base import Repositories


def _method(value: str | None) -> PaymentMethod | None:
    return PaymentMethod(value) if value else None


def _line_item(row) -> LineItem:
    return LineItem(
        product_id=row.product_id,
        product_name=row.product_name,
        quantity=row.quantity,
        unit_price=row.unit_price,
    )


class _SqlTable(ABC):
    model = None
    not_found = None

    def _row(self, record_id):
        row = db.session.get(self.model, record_id)
        if row is None:
            raise self.not_found(record_id)
        return row

    def _locked_row(self, record_id):
        row = lock_for_update(self.model.query.filter_by(id=record_id)).first()
        if row is None:
            raise self.not_found(record_id)
        return row

    def get(self, record_id):
        return self.to_domain(self._row(record_id))

    def get_all(self) -> list:
        return [self.to_domain(r) for r in self.model.query.order_by(self.model.id).all()]

    def delete(self, record_id) -> None:
        db.session.delete(self._row(record_id))
        db.session.flush()

    @abstractmethod
    def to_domain(self, row):
        ...


class SqlProductRepository(_SqlTable):
    model = ProductRow
    not_found = ProductNotFound

    def to_domain(self, row: ProductRow) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            price=row.price,
            quantity=row.quantity,
            category=row.category,
            bill_of_materials=[
                BomLine(
                    material_id=line.material_id,
                    material_name=line.material.name,
                    unit=line.material.unit,
                    quantity_per_unit=line.quantity_per_unit,
                    cost_per_unit=line.cost_per_unit,
                )
                for line in row.bill_of_materials
            ],
            price_history=[
                PriceChange(price=h.price, changed_at=h.changed_at, reason=h.reason)
                for h in row.price_history
            ],
        )

    def add(self, product: Product) -> Product:
        row = ProductRow(
            name=product.name,
            category=product.category,
            price=product.price,
            quantity=product.quantity,
        )
        for line in product.bill_of_materials:
            if db.session.get(MaterialRow, line.material_id) is None:
                raise MaterialNotFound(line.material_id)
            row.bill_of_materials.append(ProductMaterial(
                material_id=line.material_id,
                quantity_per_unit=line.quantity_per_unit,
                cost_per_unit=line.cost_per_unit,
            ))
        for entry in product.price_history:
            row.price_history.append(ProductPriceHistory(
                price=entry.price, changed_at=entry.changed_at, reason=entry.reason
            ))
        db.session.add(row)
        db.session.flush()
        return self.to_domain(row)

    def apply_quantity_delta(self, product_id: int, delta: int) -> Product:
        row = self._locked_row(product_id)
        row.quantity = row.quantity + delta
        db.session.flush()
        return self.to_domain(row)

    def set_price(self, product_id: int, price: Decimal) -> Product:
        row = self._locked_row(product_id)
        row.price = price
        db.session.flush()
        return self.to_domain(row)

    def append_price_history(self, product_id: int, entry: PriceChange) -> Product:
        row = self._row(product_id)
        row.price_history.append(ProductPriceHistory(
            price=entry.price, changed_at=entry.changed_at, reason=entry.reason
        ))
        db.session.flush()
        return self.to_domain(row)


class SqlMaterialRepository(_SqlTable):
    model = MaterialRow
    not_found = MaterialNotFound

    def to_domain(self, row: MaterialRow) -> Material:
        return Material(
            id=row.id,
            name=row.name,
            unit=row.unit,
            current_stock=row.current_stock,
            low_stock_alert=row.low_stock_alert,
            cost_per_unit=row.cost_per_unit,
            category=row.category,
        )

    def add(self, material: Material) -> Material:
        row = MaterialRow(
            name=material.name,
            unit=material.unit,
            category=material.category,
            current_stock=material.current_stock,
            low_stock_alert=material.low_stock_alert,
            cost_per_unit=material.cost_per_unit,
        )
        db.session.add(row)
        db.session.flush()
        return self.to_domain(row)


class SqlCustomerRepository(_SqlTable):
    model = CustomerRow
    not_found = CustomerNotFound

    def to_domain(self, row: CustomerRow) -> Customer:
        return Customer(
            id=row.id,
            name=row.name,
            birth_month=row.birth_month,
            birth_day=row.birth_day,
            jar_credits=row.jar_credits,
            email=row.email,
            phone=row.phone,
        )

    def add(self, customer: Customer) -> Customer:
        row = CustomerRow(
            name=customer.name,
            email=customer.email,
            phone=customer.phone,
            birth_month=customer.birth_month,
            birth_day=customer.birth_day,
            jar_credits=customer.jar_credits,
        )
        db.session.add(row)
        db.session.flush()
        return self.to_domain(row)

    def update_jar_credits(self, customer_id: int, new_balance: int) -> Customer:
        row = self._locked_row(customer_id)
        row.jar_credits = new_balance
        db.session.flush()
        return self.to_domain(row)


class SqlSettingsRepository:
    """One settings row; app config supplies defaults until it is saved."""

    def get(self) -> Settings:
        row = StoreSettings.query.order_by(StoreSettings.id).first()
        if row is None:
            cfg = current_app.config
            return Settings(
                low_stock_threshold=int(cfg.get("LOW_STOCK_THRESHOLD", 10)),
                birthday_discount_percent=Decimal(str(cfg.get("BIRTHDAY_DISCOUNT_PERCENT", "0"))),
                jar_discount_per_unit=Decimal(str(cfg.get("JAR_DISCOUNT_PER_UNIT", "0"))),
            )
        return Settings(
            low_stock_threshold=row.low_stock_threshold,
            birthday_discount_percent=row.birthday_discount_percent,
            jar_discount_per_unit=row.jar_discount_per_unit,
        )

    def save(self, settings: Settings) -> Settings:
        row = StoreSettings.query.order_by(StoreSettings.id).first()
        if row is None:
            row = StoreSettings()
            db.session.add(row)
        row.low_stock_threshold = settings.low_stock_threshold
        row.birthday_discount_percent = settings.birthday_discount_percent
        row.jar_discount_per_unit = settings.jar_discount_per_unit
        db.session.flush()
        return settings


class SqlSaleRepository(_SqlTable):
    model = SaleRow
    not_found = SaleNotFound

    def to_domain(self, row: SaleRow) -> Sale:
        return Sale(
            id=row.id,
            customer_id=row.customer_id,
            customer_name=row.customer_name,
            items=[_line_item(i) for i in row.items],
            subtotal=row.subtotal,
            discount_percentage=row.discount_percentage,
            discount_amount=row.discount_amount,
            jar_credits_used=row.jar_credits_used,
            jar_discount_amount=row.jar_discount_amount,
            shipping_cost=row.shipping_cost,
            total_amount=row.total_amount,
            status=SaleStatus(row.status),
            sale_date=row.sale_date,
            payment_method=_method(row.payment_method),
            from_order=row.from_order,
            notes=row.notes,
        )

    def add(self, sale: Sale) -> Sale:
        row = SaleRow(
            customer_id=sale.customer_id,
            customer_name=sale.customer_name,
            subtotal=sale.subtotal,
            discount_percentage=sale.discount_percentage,
            discount_amount=sale.discount_amount,
            jar_credits_used=sale.jar_credits_used,
            jar_discount_amount=sale.jar_discount_amount,
            shipping_cost=sale.shipping_cost,
            total_amount=sale.total_amount,
            status=sale.status.value,
            payment_method=sale.payment_method.value if sale.payment_method else None,
            sale_date=sale.sale_date,
            from_order=sale.from_order,
            notes=sale.notes,
        )
        for position, item in enumerate(sale.items):
            row.items.append(SaleItem(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            ))
        db.session.add(row)
        db.session.flush()
        return self.to_domain(row)

    def update(self, sale: Sale) -> Sale:
        # Items and pricing are fixed at commit; only lifecycle fields change
        row = self._row(sale.id)
        row.status = sale.status.value
        row.payment_method = sale.payment_method.value if sale.payment_method else None
        row.notes = sale.notes
        db.session.flush()
        return self.to_domain(row)


class SqlOrderRepository(_SqlTable):
    model = OrderRow
    not_found = OrderNotFound

    def to_domain(self, row: OrderRow) -> Order:
        return Order(
            id=row.id,
            customer_id=row.customer_id,
            customer_name=row.customer_name,
            items=[_line_item(i) for i in row.items],
            subtotal=row.subtotal,
            discount_percentage=row.discount_percentage,
            discount_amount=row.discount_amount,
            shipping_cost=row.shipping_cost,
            total_amount=row.total_amount,
            order_date=row.order_date,
            expected_delivery_date=row.expected_delivery_date,
            delivered_date=row.delivered_date,
            status=OrderStatus(row.status),
            payment_method=_method(row.payment_method),
            notes=row.notes,
            sale_id=row.sale_id,
        )

    def add(self, order: Order) -> Order:
        row = OrderRow(
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            subtotal=order.subtotal,
            discount_percentage=order.discount_percentage,
            discount_amount=order.discount_amount,
            shipping_cost=order.shipping_cost,
            total_amount=order.total_amount,
            order_date=order.order_date,
            expected_delivery_date=order.expected_delivery_date,
            status=order.status.value,
            payment_method=order.payment_method.value if order.payment_method else None,
            notes=order.notes,
        )
        for position, item in enumerate(order.items):
            row.items.append(OrderItem(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            ))
        db.session.add(row)
        db.session.flush()
        return self.to_domain(row)

    def update(self, order: Order) -> Order:
        row = self._locked_row(order.id)
        row.status = order.status.value
        row.payment_method = order.payment_method.value if order.payment_method else None
        row.expected_delivery_date = order.expected_delivery_date
        row.delivered_date = order.delivered_date
        row.notes = order.notes
        row.sale_id = order.sale_id
        db.session.flush()
        return self.to_domain(row)


class SqlInstallmentRepository(_SqlTable):
    model = InstallmentPayment
    not_found = InstallmentPlanNotFound

    def to_domain(self, row: InstallmentPayment) -> InstallmentPlan:
        return InstallmentPlan(
            id=row.id,
            description=row.description,
            total_amount=row.total_amount,
            installment_count=row.installment_count,
            start_date=row.start_date,
            entries=[
                InstallmentEntry(
                    installment_number=s.installment_number,
                    is_paid=s.is_paid,
                    paid_date=s.paid_date,
                )
                for s in row.payment_status
            ],
            category=row.category,
            notes=row.notes,
        )

    def add(self, plan: InstallmentPlan) -> InstallmentPlan:
        row = InstallmentPayment(
            description=plan.description,
            category=plan.category,
            total_amount=plan.total_amount,
            installment_count=plan.installment_count,
            start_date=plan.start_date,
            notes=plan.notes,
        )
        for entry in plan.entries:
            row.payment_status.append(InstallmentPaymentStatus(
                installment_number=entry.installment_number,
                is_paid=entry.is_paid,
                paid_date=entry.paid_date,
            ))
        db.session.add(row)
        db.session.flush()
        return self.to_domain(row)

    def update(self, plan: InstallmentPlan) -> InstallmentPlan:
        row = self._locked_row(plan.id)
        by_number = {s.installment_number: s for s in row.payment_status}
        for entry in plan.entries:
            status = by_number[entry.installment_number]
            status.is_paid = entry.is_paid
            status.paid_date = entry.paid_date
        row.notes = plan.notes
        db.session.flush()
        return self.to_domain(row)


class SqlRepositories(Repositories):
    """Repositories sharing Flask-SQLAlchemy's scoped session as unit of work."""

    def __init__(self):
        super().__init__(
            products=SqlProductRepository(),
            materials=SqlMaterialRepository(),
            customers=SqlCustomerRepository(),
            settings=SqlSettingsRepository(),
            sales=SqlSaleRepository(),
            orders=SqlOrderRepository(),
            installments=SqlInstallmentRepository(),
            retryable_errors=(OperationalError, StaleDataError),
        )

    def commit(self) -> None:
        db.session.commit()

    def rollback(self) -> None:
        db.session.rollback()
