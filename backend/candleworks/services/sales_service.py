"""
Sales Service - sale commit, status lifecycle and deletion.

Stock policy (retail sales, from_order=False):
- create with any status but Cancelled deducts every line (all-or-nothing);
- moving into Cancelled gives the stock back, moving out of Cancelled deducts
  it again and can fail if the stock was sold meanwhile;
- deleting a Paid sale gives the stock back, deleting any other status does not.
Sales generated from delivered orders (from_order=True) never touch stock.

Paid is terminal. Jar credits are debited once, at creation, unless the sale
is created Cancelled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from ..domain import (
    ZERO,
    Customer,
    ItemRequest,
    LineItem,
    PaymentMethod,
    Sale,
    SaleStatus,
)
from ..errors import InvalidStatusTransition, PaymentMethodRequired, ValidationError
from ..repositories.base import Repositories
from ..time_utils import Clock
from . import jar_credit_service
from .discount_service import SaleTotals, birthday_discount_for, calculate_totals, validate_percentage
from .jar_credit_service import NO_ALLOCATION, JarCreditAllocation
from .stock_ledger import StockLedger

logger = logging.getLogger(__name__)


@dataclass
class SaleDraft:
    customer_id: int
    items: list[ItemRequest]
    status: SaleStatus = SaleStatus.PENDING
    payment_method: PaymentMethod | None = None
    # None means "apply the configured rate if it is the customer's birthday month"
    birthday_discount_percent: Any = None
    additional_discount_percent: Any = ZERO
    shipping_cost: Any = ZERO
    use_jar_credits: bool = True
    notes: str | None = None
    sale_date: datetime | None = None


@dataclass(frozen=True)
class SaleQuote:
    customer: Customer
    items: list[LineItem]
    birthday_discount_percent: Decimal
    additional_discount_percent: Decimal
    jar_credits: JarCreditAllocation
    totals: SaleTotals
    warnings: list[str] = field(default_factory=list)


def snapshot_items(repos: Repositories, requests: list[ItemRequest]) -> list[LineItem]:
    """Copy name and current price of each requested product into line items."""
    if not requests:
        raise ValidationError("At least one item is required")

    items = []
    for request in requests:
        if request.quantity <= 0:
            raise ValidationError(
                "Item quantity must be greater than zero",
                details={"product_id": request.product_id, "quantity": request.quantity},
            )
        product = repos.products.get(request.product_id)
        items.append(LineItem(
            product_id=product.id,
            product_name=product.name,
            quantity=request.quantity,
            unit_price=product.price,
        ))
    return items


def _require_payment_method(status: SaleStatus, payment_method: PaymentMethod | None) -> None:
    if status is SaleStatus.PAID and payment_method is None:
        raise PaymentMethodRequired()


class SaleService:
    def __init__(self, repos: Repositories, ledger: StockLedger, clock: Clock):
        self.repos = repos
        self.ledger = ledger
        self.clock = clock

    # -- preview -------------------------------------------------------------

    def quote(self, draft: SaleDraft) -> SaleQuote:
        """Price a draft without mutating anything."""
        customer = self.repos.customers.get(draft.customer_id)
        settings = self.repos.settings.get()
        items = snapshot_items(self.repos, draft.items)

        if draft.birthday_discount_percent is None:
            birthday = birthday_discount_for(customer, settings, self.clock.now())
        else:
            birthday = validate_percentage(draft.birthday_discount_percent, "birthday_discount_percent")
        additional = validate_percentage(draft.additional_discount_percent, "additional_discount_percent")

        allocation = NO_ALLOCATION
        if draft.use_jar_credits:
            allocation = jar_credit_service.allocate(customer, items, settings.jar_discount_per_unit)

        totals = calculate_totals(
            items,
            birthday_percent=birthday,
            additional_percent=additional,
            jar_credit_amount=allocation.cash_amount,
            shipping_cost=draft.shipping_cost,
        )

        warnings = []
        for product_id, available, requested in self._stock_shortfalls(items):
            warnings.append(f"Product {product_id}: available {available}, requested {requested}")
        if totals.is_credit:
            warnings.append("Discounts exceed subtotal plus shipping; total is negative")

        return SaleQuote(
            customer=customer,
            items=items,
            birthday_discount_percent=birthday,
            additional_discount_percent=additional,
            jar_credits=allocation,
            totals=totals,
            warnings=warnings,
        )

    def _stock_shortfalls(self, items: list[LineItem]):
        totals: dict[int, int] = {}
        for item in items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        for product_id, requested in totals.items():
            available = self.ledger.on_hand(product_id)
            if available < requested:
                yield product_id, available, requested

    # -- commit --------------------------------------------------------------

    def create_sale(self, draft: SaleDraft) -> Sale:
        _require_payment_method(draft.status, draft.payment_method)
        quote = self.quote(draft)

        if draft.status is not SaleStatus.CANCELLED:
            self.ledger.reserve(quote.items)

        sale = Sale(
            id=None,
            customer_id=quote.customer.id,
            customer_name=quote.customer.name,
            items=quote.items,
            subtotal=quote.totals.subtotal,
            discount_percentage=quote.totals.discount_percentage,
            discount_amount=quote.totals.discount_amount,
            jar_credits_used=quote.jar_credits.credits_used,
            jar_discount_amount=quote.totals.jar_discount_amount,
            shipping_cost=quote.totals.shipping_cost,
            total_amount=quote.totals.total,
            status=draft.status,
            sale_date=draft.sale_date or self.clock.now(),
            payment_method=draft.payment_method,
            from_order=False,
            notes=_annotate_notes(draft.notes, quote),
        )
        sale = self.repos.sales.add(sale)

        if quote.jar_credits.credits_used and sale.status is not SaleStatus.CANCELLED:
            balance = max(0, quote.customer.jar_credits - quote.jar_credits.credits_used)
            self.repos.customers.update_jar_credits(quote.customer.id, balance)

        if quote.totals.is_credit:
            logger.warning("Sale %s committed with negative total %s", sale.id, sale.total_amount)
        logger.info("Sale %s created (%s, total %s)", sale.id, sale.status.value, sale.total_amount)
        return sale

    def record_sale(self, sale: Sale) -> Sale:
        """
        Persist an already-priced sale generated from a delivered order.

        Only from_order sales come through here; they bypass the stock ledger
        and never consume jar credits.
        """
        if not sale.from_order:
            raise ValidationError("record_sale only accepts sales generated from orders")
        _require_payment_method(sale.status, sale.payment_method)
        sale = self.repos.sales.add(sale)
        logger.info("Sale %s recorded from order (total %s)", sale.id, sale.total_amount)
        return sale

    # -- lifecycle -----------------------------------------------------------

    def update_sale_status(self, sale_id: int, new_status: SaleStatus,
                           payment_method: PaymentMethod | None = None) -> Sale:
        sale = self.repos.sales.get(sale_id)
        old_status = sale.status

        if old_status is SaleStatus.PAID:
            raise InvalidStatusTransition(
                old_status, new_status, reason="Paid sales cannot change status"
            )

        method = payment_method or sale.payment_method
        _require_payment_method(new_status, method)

        if not sale.from_order:
            if old_status is not SaleStatus.CANCELLED and new_status is SaleStatus.CANCELLED:
                self.ledger.release(sale.items)
            elif old_status is SaleStatus.CANCELLED and new_status is not SaleStatus.CANCELLED:
                self.ledger.reserve(sale.items)

        sale = self.repos.sales.update(replace(sale, status=new_status, payment_method=method))
        logger.info("Sale %s: %s -> %s", sale.id, old_status.value, new_status.value)
        return sale

    def delete_sale(self, sale_id: int) -> None:
        sale = self.repos.sales.get(sale_id)
        if sale.status is SaleStatus.PAID and not sale.from_order:
            self.ledger.release(sale.items)
        self.repos.sales.delete(sale_id)
        logger.info("Sale %s deleted (%s)", sale_id, sale.status.value)


def _annotate_notes(notes: str | None, quote: SaleQuote) -> str | None:
    """Append a human-readable breakdown of discounts applied."""
    parts = []
    if quote.birthday_discount_percent > 0 and quote.additional_discount_percent > 0:
        parts.append(
            f"[Discounts: birthday {quote.birthday_discount_percent}% + additional "
            f"{quote.additional_discount_percent}%]"
        )
    elif quote.birthday_discount_percent > 0:
        parts.append(f"[Discount: birthday {quote.birthday_discount_percent}%]")
    if quote.jar_credits.credits_used:
        used = quote.jar_credits.credits_used
        parts.append(f"[{used} jar{'s' if used != 1 else ''} returned: -{quote.jar_credits.cash_amount}]")

    if not parts:
        return notes
    detail = "\n".join(parts)
    return f"{notes}\n{detail}" if notes else detail
