"""
Discount Calculator - pure pricing of a candidate sale.

Percentages stack by addition: birthday 10% + additional 15% is a flat 25% of
the subtotal, never 10% then 15% compounded. The jar-credit amount is a cash
discount precomputed by the jar-credit allocator. Amounts are exact Decimals;
no rounding and no flooring of the total happen here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from ..domain import ZERO, Customer, LineItem, Settings
from ..errors import InvalidDiscount, ValidationError
from ..validation import to_decimal

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class SaleTotals:
    subtotal: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    jar_discount_amount: Decimal
    shipping_cost: Decimal
    total: Decimal

    @property
    def is_credit(self) -> bool:
        """Discounts and jar credits exceed subtotal plus shipping."""
        return self.total < 0


def validate_percentage(value: Any, field: str = "discount_percent") -> Decimal:
    """Accept 0..100 inclusive; anything else is rejected, never clamped."""
    try:
        pct = to_decimal(value, field)
    except ValidationError:
        raise InvalidDiscount(value, field)
    if pct < 0 or pct > HUNDRED:
        raise InvalidDiscount(value, field)
    return pct


def subtotal_of(items: Iterable[LineItem]) -> Decimal:
    return sum((item.line_total for item in items), ZERO)


def calculate_totals(
    items: Iterable[LineItem],
    *,
    birthday_percent: Any = ZERO,
    additional_percent: Any = ZERO,
    jar_credit_amount: Any = ZERO,
    shipping_cost: Any = ZERO,
) -> SaleTotals:
    birthday = validate_percentage(birthday_percent, "birthday_discount_percent")
    additional = validate_percentage(additional_percent, "additional_discount_percent")

    jar_amount = to_decimal(jar_credit_amount, "jar_credit_amount")
    if jar_amount < 0:
        raise ValidationError("jar_credit_amount must be >= 0")
    shipping = to_decimal(shipping_cost, "shipping_cost")
    if shipping < 0:
        raise ValidationError("shipping_cost must be >= 0")

    subtotal = subtotal_of(items)
    percent = birthday + additional
    discount_amount = subtotal * percent / HUNDRED
    total = subtotal - discount_amount - jar_amount + shipping

    return SaleTotals(
        subtotal=subtotal,
        discount_percentage=percent,
        discount_amount=discount_amount,
        jar_discount_amount=jar_amount,
        shipping_cost=shipping,
        total=total,
    )


def is_birthday_month(customer: Customer, today: datetime) -> bool:
    return customer.birth_month is not None and customer.birth_month == today.month


def birthday_discount_for(customer: Customer, settings: Settings, today: datetime) -> Decimal:
    """The configured birthday rate when `today` falls in the customer's birth month."""
    rate = settings.birthday_discount_percent
    if rate > 0 and is_birthday_month(customer, today):
        return rate
    return ZERO
