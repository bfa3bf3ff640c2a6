# Overview: Pytest coverage for the production planner (backlog, targets, material deficits).

from decimal import Decimal

import pytest

from candleworks.domain import ItemRequest, OrderStatus
from candleworks.errors import ValidationError
from candleworks.services.order_service import OrderDraft
from candleworks.services.production_service import make_to_order_predicate


@pytest.fixture
def backlog(engine, catalog):
    """Vanilla x4 pending, lavender x3 in production, kit x1 ready (not backlog)."""
    engine.create_order(OrderDraft(
        customer_id=catalog.ana.id, items=[ItemRequest(catalog.vanilla.id, 4)],
    ))
    lavender = engine.create_order(OrderDraft(
        customer_id=catalog.bruno.id, items=[ItemRequest(catalog.lavender.id, 3)],
    ))
    engine.update_order_status(lavender.id, OrderStatus.IN_PRODUCTION)
    ready = engine.create_order(OrderDraft(
        customer_id=catalog.carla.id, items=[ItemRequest(catalog.kit.id, 1)],
    ))
    engine.update_order_status(ready.id, OrderStatus.READY_FOR_DELIVERY)
    return catalog


class TestBacklog:
    def test_open_orders_drive_production(self, engine, backlog):
        plan = engine.plan_production()

        assert plan.for_product(backlog.vanilla.id).pending_orders == 4
        assert plan.for_product(backlog.lavender.id).pending_orders == 3
        assert plan.for_product(backlog.kit.id).pending_orders == 0
        assert plan.total_units == 7

    def test_materials_within_stock(self, engine, backlog):
        plan = engine.plan_production()

        wax = next(m for m in plan.materials if m.material_id == backlog.wax.id)
        assert wax.quantity_needed == Decimal("1.8")
        assert wax.deficit == Decimal("0.2")
        assert plan.deficits == []

    def test_nothing_to_produce(self, engine, catalog):
        plan = engine.plan_production()
        assert plan.products_needing_production == []
        assert plan.total_cost == 0


class TestTargets:
    def test_manual_target_adds_to_backlog(self, engine, backlog):
        plan = engine.plan_production({backlog.lavender.id: 5})

        lavender = plan.for_product(backlog.lavender.id)
        assert lavender.manual_quantity == 5
        assert lavender.total_to_produce == 8

    def test_material_deficit_reported(self, engine, backlog):
        """8 lavender + 4 vanilla need 2.8kg of wax against 2kg in stock.

        Lavender alone needs 1.6kg, so the shortage only shows in the aggregate.
        """
        plan = engine.plan_production({backlog.lavender.id: 5})

        assert [m.material_name for m in plan.deficits] == ["Soy wax"]
        wax = plan.deficits[0]
        assert wax.quantity_needed == Decimal("2.8")
        assert wax.deficit == Decimal("-0.8")
        assert wax.is_short
        assert not plan.for_product(backlog.lavender.id).has_material_deficit

    def test_costs(self, engine, backlog):
        plan = engine.plan_production({backlog.lavender.id: 5})

        assert plan.for_product(backlog.lavender.id).cost == Decimal("52")
        assert plan.for_product(backlog.vanilla.id).cost == Decimal("38")
        assert plan.total_cost == Decimal("90")

    def test_negative_target_rejected(self, engine, backlog):
        with pytest.raises(ValidationError):
            engine.plan_production({backlog.lavender.id: -1})

    def test_auto_fill_tops_up_to_threshold(self, engine, catalog):
        plan = engine.plan_production(auto_fill=True)

        assert plan.for_product(catalog.lavender.id).manual_quantity == 5
        assert plan.for_product(catalog.vanilla.id).manual_quantity == 2

    def test_auto_fill_skips_make_to_order_products(self, engine, catalog):
        plan = engine.plan_production(auto_fill=True)
        assert plan.for_product(catalog.kit.id).manual_quantity == 0

    def test_manual_target_overrides_auto_fill(self, engine, catalog):
        plan = engine.plan_production({catalog.lavender.id: 0, catalog.kit.id: 3}, auto_fill=True)

        assert plan.for_product(catalog.lavender.id).manual_quantity == 0
        assert plan.for_product(catalog.kit.id).manual_quantity == 3


class TestOrdering:
    def test_backlog_first_then_largest_runs(self, engine, backlog):
        plan = engine.plan_production({backlog.kit.id: 20, backlog.lavender.id: 5})
        assert [p.product_id for p in plan.products] == [
            backlog.lavender.id, backlog.vanilla.id, backlog.kit.id,
        ]

    def test_deficits_first_then_by_name(self, engine, backlog):
        plan = engine.plan_production()
        assert [m.material_name for m in plan.materials] == ["Cotton wick", "Soy wax"]

        plan = engine.plan_production({backlog.lavender.id: 5})
        assert [m.material_name for m in plan.materials] == ["Soy wax", "Cotton wick"]


class TestMakeToOrderPredicate:
    @pytest.mark.parametrize("name,expected", [
        ("Gift kit", True),
        ("CUSTOM label candle", True),
        ("Kitchen candle", False),
        ("Lavender candle", False),
    ])
    def test_case_insensitive_word_match(self, catalog, name, expected):
        predicate = make_to_order_predicate(r"\b(kit|custom)\b")
        product = catalog.lavender
        product.name = name
        assert predicate(product) is expected

    def test_no_pattern_excludes_nothing(self, catalog):
        assert make_to_order_predicate(None)(catalog.kit) is False

    def test_invalid_pattern(self):
        with pytest.raises(ValidationError):
            make_to_order_predicate("(unclosed")
