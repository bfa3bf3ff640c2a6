"""
Installment Service - financed expenses paid in N sequential installments.

Paid installments always form a prefix {1..k}: paying n needs 1..n-1 paid,
unpaying n needs n to be the highest paid installment. Installment k falls
due k-1 calendar months after the plan's start date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from ..domain import ZERO, InstallmentEntry, InstallmentPlan
from ..errors import NotLastPaid, OutOfSequence, ValidationError
from ..repositories.base import Repositories
from ..time_utils import Clock, months_between
from ..validation import parse_int, parse_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanSummary:
    paid_count: int
    paid_amount: Decimal
    remaining_amount: Decimal
    current_installment: int | None


def summarize(plan: InstallmentPlan) -> PlanSummary:
    paid = plan.paid_numbers
    paid_count = len(paid)
    paid_amount = sum((plan.amount_of(n) for n in paid), ZERO)
    return PlanSummary(
        paid_count=paid_count,
        paid_amount=paid_amount,
        remaining_amount=plan.total_amount - paid_amount,
        current_installment=plan.current_installment,
    )


def installments_due_in_month(plans: Iterable[InstallmentPlan], year: int, month: int) -> Decimal:
    """Sum of unpaid installment amounts falling due in (year, month)."""
    total = ZERO
    for plan in plans:
        offset = months_between(plan.start_date, year, month)
        if 0 <= offset < plan.installment_count:
            entry = plan.entry(offset + 1)
            if entry is None or not entry.is_paid:
                total += plan.amount_of(offset + 1)
    return total


def apply_paid(plan: InstallmentPlan, installment_number: int, paid: bool, when: datetime) -> InstallmentPlan:
    """Pure prefix-preserving transition; returns the updated plan."""
    if not 1 <= installment_number <= plan.installment_count:
        raise ValidationError(
            f"Installment number must be between 1 and {plan.installment_count}",
            details={"installment_number": installment_number},
        )

    last_paid = plan.last_paid
    if paid:
        if installment_number <= last_paid:
            return plan
        if installment_number != last_paid + 1:
            raise OutOfSequence(last_paid + 1)
    else:
        if installment_number != last_paid:
            raise NotLastPaid(last_paid)

    entries = []
    for e in plan.entries:
        if e.installment_number == installment_number:
            e = InstallmentEntry(
                installment_number=installment_number,
                is_paid=paid,
                paid_date=when if paid else None,
            )
        entries.append(e)
    return replace(plan, entries=entries)


class InstallmentService:
    def __init__(self, repos: Repositories, clock: Clock):
        self.repos = repos
        self.clock = clock

    def create_plan(self, description: str, total_amount, installment_count,
                    start_date: datetime | None = None, category: str = "Other",
                    notes: str | None = None) -> InstallmentPlan:
        if not description or not description.strip():
            raise ValidationError("description is required")
        total = parse_money(total_amount, "total_amount", allow_zero=False)
        count = parse_int(installment_count, "installment_count", minimum=1)

        plan = self.repos.installments.add(InstallmentPlan(
            id=None,
            description=description.strip(),
            total_amount=total,
            installment_count=count,
            start_date=start_date or self.clock.now(),
            entries=[InstallmentEntry(installment_number=n) for n in range(1, count + 1)],
            category=category or "Other",
            notes=notes,
        ))
        logger.info("Installment plan %s created (%s x %s)", plan.id, count, plan.installment_amount)
        return plan

    def set_installment_paid(self, plan_id: int, installment_number: int, paid: bool) -> InstallmentPlan:
        plan = self.repos.installments.get(plan_id)
        updated = apply_paid(plan, installment_number, paid, self.clock.now())
        if updated is plan:
            return plan
        plan = self.repos.installments.update(updated)
        logger.info("Installment plan %s: #%s %s", plan.id, installment_number, "paid" if paid else "unpaid")
        return plan

    def toggle_installment(self, plan_id: int, installment_number: int) -> InstallmentPlan:
        plan = self.repos.installments.get(plan_id)
        entry = plan.entry(installment_number)
        currently_paid = entry is not None and entry.is_paid
        return self.set_installment_paid(plan_id, installment_number, not currently_paid)

    def delete_plan(self, plan_id: int) -> None:
        self.repos.installments.delete(plan_id)
        logger.info("Installment plan %s deleted", plan_id)
