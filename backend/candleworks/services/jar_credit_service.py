from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..domain import ZERO, Customer
from .stock_ledger import StockLine


@dataclass(frozen=True)
class JarCreditAllocation:
    credits_used: int
    cash_amount: Decimal


NO_ALLOCATION = JarCreditAllocation(credits_used=0, cash_amount=ZERO)


def allocate(customer: Customer, items: Iterable[StockLine], jar_discount_per_unit: Decimal) -> JarCreditAllocation:
    """
    Preview how many returned-jar credits a sale can consume.

    Every unit sold can take back one jar, whatever the product. Nothing is
    debited here; the sale commit does that.
    """
    if jar_discount_per_unit <= 0 or customer.jar_credits <= 0:
        return NO_ALLOCATION

    total_units = sum(item.quantity for item in items)
    credits_used = min(total_units, customer.jar_credits)
    if credits_used <= 0:
        return NO_ALLOCATION
    return JarCreditAllocation(credits_used=credits_used, cash_amount=credits_used * jar_discount_per_unit)
