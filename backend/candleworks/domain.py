"""
Domain records exchanged between the engine and its repositories.

Sales and orders own denormalized copies of their line items (name and unit
price at transaction time) so later catalog edits never rewrite history.
Money and material quantities are Decimal; unit counts are int.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_DOWN, Decimal

from .time_utils import to_utc_z

ZERO = Decimal("0")
CENT = Decimal("0.01")


def _money(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


class SaleStatus(str, enum.Enum):
    PENDING = "Pending"
    AWAITING_PAYMENT = "AwaitingPayment"
    PAID = "Paid"
    CANCELLED = "Cancelled"


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PRODUCTION = "InProduction"
    READY_FOR_DELIVERY = "ReadyForDelivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @property
    def is_open(self) -> bool:
        """Backlog that still has to be produced."""
        return self in (OrderStatus.PENDING, OrderStatus.IN_PRODUCTION)

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    @property
    def stage(self) -> int:
        return _ORDER_STAGES[self]


_ORDER_STAGES = {
    OrderStatus.PENDING: 0,
    OrderStatus.IN_PRODUCTION: 1,
    OrderStatus.READY_FOR_DELIVERY: 2,
    OrderStatus.DELIVERED: 3,
    OrderStatus.CANCELLED: 3,
}


class PaymentMethod(str, enum.Enum):
    CASH = "Cash"
    PIX = "Pix"
    DEBIT = "Debit"
    CREDIT = "Credit"


@dataclass(frozen=True)
class BomLine:
    """One material consumed per unit of a product."""
    material_id: int
    material_name: str
    unit: str
    quantity_per_unit: Decimal
    cost_per_unit: Decimal

    @property
    def cost_per_product_unit(self) -> Decimal:
        return self.quantity_per_unit * self.cost_per_unit

    def to_dict(self) -> dict:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "unit": self.unit,
            "quantity_per_unit": str(self.quantity_per_unit),
            "cost_per_unit": _money(self.cost_per_unit),
        }


@dataclass(frozen=True)
class PriceChange:
    price: Decimal
    changed_at: datetime
    reason: str | None = None

    def to_dict(self) -> dict:
        return {"price": _money(self.price), "changed_at": to_utc_z(self.changed_at), "reason": self.reason}


@dataclass
class Product:
    id: int | None
    name: str
    price: Decimal
    quantity: int = 0
    category: str | None = None
    bill_of_materials: list[BomLine] = field(default_factory=list)
    price_history: list[PriceChange] = field(default_factory=list)

    @property
    def production_cost(self) -> Decimal:
        return sum((line.cost_per_product_unit for line in self.bill_of_materials), ZERO)

    @property
    def profit_margin(self) -> Decimal:
        return self.price - self.production_cost

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": _money(self.price),
            "quantity": self.quantity,
            "category": self.category,
            "production_cost": _money(self.production_cost),
            "profit_margin": _money(self.profit_margin),
            "bill_of_materials": [line.to_dict() for line in self.bill_of_materials],
            "price_history": [entry.to_dict() for entry in self.price_history],
        }


@dataclass
class Material:
    id: int | None
    name: str
    unit: str
    current_stock: Decimal = ZERO
    low_stock_alert: Decimal = ZERO
    cost_per_unit: Decimal = ZERO
    category: str | None = None

    @property
    def is_low(self) -> bool:
        return self.current_stock < self.low_stock_alert

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "current_stock": str(self.current_stock),
            "low_stock_alert": str(self.low_stock_alert),
            "cost_per_unit": _money(self.cost_per_unit),
            "category": self.category,
            "is_low": self.is_low,
        }


@dataclass
class Customer:
    id: int | None
    name: str
    birth_month: int | None = None
    birth_day: int | None = None
    jar_credits: int = 0
    email: str | None = None
    phone: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "birth_month": self.birth_month,
            "birth_day": self.birth_day,
            "jar_credits": self.jar_credits,
            "email": self.email,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class ItemRequest:
    """A caller's request for `quantity` units of a product."""
    product_id: int
    quantity: int


@dataclass(frozen=True)
class LineItem:
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": _money(self.unit_price),
            "line_total": _money(self.line_total),
        }


@dataclass
class Sale:
    id: int | None
    customer_id: int
    customer_name: str
    items: list[LineItem]
    subtotal: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    jar_credits_used: int
    jar_discount_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    status: SaleStatus
    sale_date: datetime
    payment_method: PaymentMethod | None = None
    from_order: bool = False
    notes: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "items": [item.to_dict() for item in self.items],
            "subtotal": _money(self.subtotal),
            "discount_percentage": str(self.discount_percentage),
            "discount_amount": _money(self.discount_amount),
            "jar_credits_used": self.jar_credits_used,
            "jar_discount_amount": _money(self.jar_discount_amount),
            "shipping_cost": _money(self.shipping_cost),
            "total_amount": _money(self.total_amount),
            "status": self.status.value,
            "sale_date": to_utc_z(self.sale_date),
            "payment_method": self.payment_method.value if self.payment_method else None,
            "from_order": self.from_order,
            "notes": self.notes,
        }


@dataclass
class Order:
    id: int | None
    customer_id: int
    customer_name: str
    items: list[LineItem]
    subtotal: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    order_date: datetime
    expected_delivery_date: datetime | None = None
    delivered_date: datetime | None = None
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod | None = None
    notes: str | None = None
    sale_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "items": [item.to_dict() for item in self.items],
            "subtotal": _money(self.subtotal),
            "discount_percentage": str(self.discount_percentage),
            "discount_amount": _money(self.discount_amount),
            "shipping_cost": _money(self.shipping_cost),
            "total_amount": _money(self.total_amount),
            "order_date": to_utc_z(self.order_date),
            "expected_delivery_date": to_utc_z(self.expected_delivery_date),
            "delivered_date": to_utc_z(self.delivered_date),
            "status": self.status.value,
            "payment_method": self.payment_method.value if self.payment_method else None,
            "notes": self.notes,
            "sale_id": self.sale_id,
        }


@dataclass
class InstallmentEntry:
    installment_number: int
    is_paid: bool = False
    paid_date: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "installment_number": self.installment_number,
            "is_paid": self.is_paid,
            "paid_date": to_utc_z(self.paid_date),
        }


@dataclass
class InstallmentPlan:
    id: int | None
    description: str
    total_amount: Decimal
    installment_count: int
    start_date: datetime
    entries: list[InstallmentEntry]
    category: str = "Other"
    notes: str | None = None

    @property
    def installment_amount(self) -> Decimal:
        """Regular installment, truncated to the cent."""
        return (self.total_amount / self.installment_count).quantize(CENT, rounding=ROUND_DOWN)

    def amount_of(self, installment_number: int) -> Decimal:
        """The last installment absorbs the rounding remainder."""
        if installment_number == self.installment_count:
            return self.total_amount - self.installment_amount * (self.installment_count - 1)
        return self.installment_amount

    @property
    def paid_numbers(self) -> list[int]:
        return sorted(e.installment_number for e in self.entries if e.is_paid)

    @property
    def last_paid(self) -> int:
        """Highest paid installment number, 0 when nothing is paid."""
        paid = self.paid_numbers
        return paid[-1] if paid else 0

    @property
    def current_installment(self) -> int | None:
        """Next installment to pay, None once the plan is settled."""
        nxt = self.last_paid + 1
        return nxt if nxt <= self.installment_count else None

    def entry(self, installment_number: int) -> InstallmentEntry | None:
        for e in self.entries:
            if e.installment_number == installment_number:
                return e
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "total_amount": _money(self.total_amount),
            "installment_count": self.installment_count,
            "installment_amount": _money(self.installment_amount),
            "final_installment_amount": _money(self.amount_of(self.installment_count)),
            "start_date": to_utc_z(self.start_date),
            "category": self.category,
            "notes": self.notes,
            "current_installment": self.current_installment,
            "payment_status": [e.to_dict() for e in self.entries],
        }


@dataclass(frozen=True)
class Settings:
    low_stock_threshold: int = 10
    birthday_discount_percent: Decimal = ZERO
    jar_discount_per_unit: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "low_stock_threshold": self.low_stock_threshold,
            "birthday_discount_percent": str(self.birthday_discount_percent),
            "jar_discount_per_unit": _money(self.jar_discount_per_unit),
        }
