"""
Order Service - make-to-order lifecycle and conversion into sales.

Order Lifecycle Rules (authoritative)

- Orders never touch the stock ledger. Production consumes materials through
  its own workflow, and the sale generated on delivery is flagged from_order.
- Status moves forward only: Pending -> InProduction -> ReadyForDelivery ->
  Delivered. Skipping stages is allowed, going back is not.
- Cancelled is reachable from any non-terminal status.
- Delivered and Cancelled are terminal.
- Reaching Delivered requires a payment method, stamps delivered_date and
  converts the order into exactly one Paid sale whose id is kept on the order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from ..domain import ZERO, ItemRequest, Order, OrderStatus, PaymentMethod, Sale, SaleStatus
from ..errors import InvalidStatusTransition, PaymentMethodRequired
from ..repositories.base import Repositories
from ..time_utils import Clock
from .discount_service import calculate_totals
from .sales_service import SaleService, snapshot_items

logger = logging.getLogger(__name__)


@dataclass
class OrderDraft:
    customer_id: int
    items: list[ItemRequest]
    discount_percent: Any = ZERO
    shipping_cost: Any = ZERO
    expected_delivery_date: datetime | None = None
    payment_method: PaymentMethod | None = None
    notes: str | None = None
    order_date: datetime | None = None


def check_transition(current: OrderStatus, requested: OrderStatus) -> None:
    if current.is_terminal:
        raise InvalidStatusTransition(
            current, requested, reason=f"Order is already {current.value}"
        )
    if requested is OrderStatus.CANCELLED:
        return
    if requested.stage < current.stage:
        raise InvalidStatusTransition(current, requested)


def sale_from_order(order: Order, sale_date: datetime) -> Sale:
    """Build the Paid, from_order sale recognizing a delivered order."""
    return Sale(
        id=None,
        customer_id=order.customer_id,
        customer_name=order.customer_name,
        items=list(order.items),
        subtotal=order.subtotal,
        discount_percentage=order.discount_percentage,
        discount_amount=order.discount_amount,
        jar_credits_used=0,
        jar_discount_amount=ZERO,
        shipping_cost=order.shipping_cost,
        total_amount=order.total_amount,
        status=SaleStatus.PAID,
        sale_date=sale_date,
        payment_method=order.payment_method,
        from_order=True,
        notes=f"Order #{order.id} - {order.notes or ''}",
    )


class OrderService:
    def __init__(self, repos: Repositories, sales: SaleService, clock: Clock):
        self.repos = repos
        self.sales = sales
        self.clock = clock

    def create_order(self, draft: OrderDraft) -> Order:
        customer = self.repos.customers.get(draft.customer_id)
        items = snapshot_items(self.repos, draft.items)
        totals = calculate_totals(
            items,
            additional_percent=draft.discount_percent,
            shipping_cost=draft.shipping_cost,
        )

        order = self.repos.orders.add(Order(
            id=None,
            customer_id=customer.id,
            customer_name=customer.name,
            items=items,
            subtotal=totals.subtotal,
            discount_percentage=totals.discount_percentage,
            discount_amount=totals.discount_amount,
            shipping_cost=totals.shipping_cost,
            total_amount=totals.total,
            order_date=draft.order_date or self.clock.now(),
            expected_delivery_date=draft.expected_delivery_date,
            status=OrderStatus.PENDING,
            payment_method=draft.payment_method,
            notes=draft.notes,
        ))
        logger.info("Order %s created for customer %s (total %s)", order.id, customer.id, order.total_amount)
        return order

    def update_order_status(self, order_id: int, new_status: OrderStatus,
                            payment_method: PaymentMethod | None = None) -> Order:
        order = self.repos.orders.get(order_id)
        if new_status is order.status:
            return order
        check_transition(order.status, new_status)

        if new_status is OrderStatus.DELIVERED:
            self.convert_order_to_sale(order, payment_method)
            return self.repos.orders.get(order.id)

        old_status = order.status
        order = self.repos.orders.update(replace(
            order, status=new_status, payment_method=payment_method or order.payment_method
        ))
        logger.info("Order %s: %s -> %s", order.id, old_status.value, new_status.value)
        return order

    def convert_order_to_sale(self, order: Order, payment_method: PaymentMethod | None = None) -> Sale:
        """
        Deliver an order and record its sale.

        Runs once per order: a delivered order (or one already linked to a
        sale) is rejected rather than converted twice.
        """
        if order.status is OrderStatus.DELIVERED or order.sale_id is not None:
            raise InvalidStatusTransition(
                order.status, OrderStatus.DELIVERED, reason=f"Order {order.id} was already delivered"
            )
        check_transition(order.status, OrderStatus.DELIVERED)

        method = payment_method or order.payment_method
        if method is None:
            raise PaymentMethodRequired("A payment method is required to deliver an order")

        now = self.clock.now()
        delivered = replace(
            order, status=OrderStatus.DELIVERED, payment_method=method, delivered_date=now
        )
        sale = self.sales.record_sale(sale_from_order(delivered, now))
        self.repos.orders.update(replace(delivered, sale_id=sale.id))
        logger.info("Order %s delivered as sale %s", order.id, sale.id)
        return sale

    def delete_order(self, order_id: int) -> None:
        self.repos.orders.delete(order_id)
        logger.info("Order %s deleted", order_id)

    def open_orders(self) -> list[Order]:
        """Backlog still to be produced (Pending or InProduction)."""
        return [o for o in self.repos.orders.get_all() if o.status.is_open]
