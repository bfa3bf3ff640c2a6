# Overview: Pytest coverage for the discount calculator and jar-credit allocator.

from datetime import datetime
from decimal import Decimal

import pytest

from candleworks.domain import Customer, LineItem, Settings
from candleworks.errors import InvalidDiscount, ValidationError
from candleworks.services import jar_credit_service
from candleworks.services.discount_service import (
    birthday_discount_for,
    calculate_totals,
    validate_percentage,
)


def line(price: str, quantity: int, product_id: int = 1) -> LineItem:
    return LineItem(product_id=product_id, product_name=f"P{product_id}", quantity=quantity, unit_price=Decimal(price))


class TestCalculateTotals:
    def test_reference_scenario(self):
        """subtotal 100, 10% + 15%, R$5 jars, R$8 shipping -> 78."""
        totals = calculate_totals(
            [line("25", 4)],
            birthday_percent=10,
            additional_percent=15,
            jar_credit_amount=5,
            shipping_cost=8,
        )

        assert totals.subtotal == Decimal("100")
        assert totals.discount_percentage == Decimal("25")
        assert totals.discount_amount == Decimal("25")
        assert totals.total == Decimal("78")

    def test_percentages_add_not_compound(self):
        totals = calculate_totals([line("50", 2)], birthday_percent=10, additional_percent=10)
        assert totals.discount_amount == Decimal("20")
        assert totals.total == Decimal("80")

    @pytest.mark.parametrize("p1,p2", [(0, 0), (0, 100), (33, 33), (12.5, 7.5), ("100", "100")])
    def test_discount_is_flat_share_of_subtotal(self, p1, p2):
        items = [line("19.90", 3), line("7.35", 2, product_id=2)]
        totals = calculate_totals(items, birthday_percent=p1, additional_percent=p2)

        expected = totals.subtotal * (Decimal(str(p1)) + Decimal(str(p2))) / Decimal("100")
        assert totals.discount_amount == expected

    def test_exact_decimal_money(self):
        totals = calculate_totals([line("0.10", 3)])
        assert totals.subtotal == Decimal("0.30")

    def test_negative_total_is_reported_not_clamped(self):
        totals = calculate_totals([line("10", 1)], additional_percent=100, jar_credit_amount=4)
        assert totals.total == Decimal("-4")
        assert totals.is_credit

    @pytest.mark.parametrize("bad", [-1, 100.01, "150", "abc", None])
    def test_out_of_range_percentage_rejected(self, bad):
        with pytest.raises(InvalidDiscount):
            calculate_totals([line("10", 1)], additional_percent=bad)

    def test_invalid_discount_carries_value(self):
        with pytest.raises(InvalidDiscount) as exc:
            validate_percentage(101, "birthday_discount_percent")
        assert exc.value.value == 101
        assert exc.value.details["field"] == "birthday_discount_percent"

    def test_negative_shipping_rejected(self):
        with pytest.raises(ValidationError):
            calculate_totals([line("10", 1)], shipping_cost=-1)

    def test_negative_jar_amount_rejected(self):
        with pytest.raises(ValidationError):
            calculate_totals([line("10", 1)], jar_credit_amount=-1)


class TestBirthdayDiscount:
    settings = Settings(birthday_discount_percent=Decimal("10"))

    def test_applies_in_birth_month(self):
        customer = Customer(id=1, name="Ana", birth_month=3)
        assert birthday_discount_for(customer, self.settings, datetime(2024, 3, 1)) == Decimal("10")

    def test_not_outside_birth_month(self):
        customer = Customer(id=1, name="Ana", birth_month=3)
        assert birthday_discount_for(customer, self.settings, datetime(2024, 4, 1)) == 0

    def test_not_without_birth_month(self):
        customer = Customer(id=1, name="Ana")
        assert birthday_discount_for(customer, self.settings, datetime(2024, 3, 1)) == 0

    def test_not_when_rate_disabled(self):
        customer = Customer(id=1, name="Ana", birth_month=3)
        assert birthday_discount_for(customer, Settings(), datetime(2024, 3, 1)) == 0


class TestJarCreditAllocator:
    def test_capped_by_units_sold(self):
        customer = Customer(id=1, name="Ana", jar_credits=10)
        allocation = jar_credit_service.allocate(customer, [line("10", 2), line("5", 1, 2)], Decimal("2"))

        assert allocation.credits_used == 3
        assert allocation.cash_amount == Decimal("6")

    def test_capped_by_credits_available(self):
        customer = Customer(id=1, name="Ana", jar_credits=2)
        allocation = jar_credit_service.allocate(customer, [line("10", 5)], Decimal("1.5"))

        assert allocation.credits_used == 2
        assert allocation.cash_amount == Decimal("3.0")

    def test_nothing_without_rate(self):
        customer = Customer(id=1, name="Ana", jar_credits=5)
        allocation = jar_credit_service.allocate(customer, [line("10", 5)], Decimal("0"))
        assert allocation.credits_used == 0
        assert allocation.cash_amount == 0

    def test_nothing_without_credits(self):
        customer = Customer(id=1, name="Ana", jar_credits=0)
        allocation = jar_credit_service.allocate(customer, [line("10", 5)], Decimal("2"))
        assert allocation.credits_used == 0

    @pytest.mark.parametrize("credits,units", [(0, 3), (1, 3), (3, 3), (7, 3), (5, 0)])
    def test_never_exceeds_min_of_units_and_credits(self, credits, units):
        customer = Customer(id=1, name="Ana", jar_credits=credits)
        items = [line("10", units)] if units else []
        allocation = jar_credit_service.allocate(customer, items, Decimal("2"))

        assert allocation.credits_used <= min(units, credits)
        assert allocation.cash_amount == allocation.credits_used * Decimal("2")
