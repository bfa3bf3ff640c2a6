"""
Production Planner - backlog plus manual targets turned into material needs.

Pure computation over snapshots: nothing here reads a repository or writes
anything. The engine hands in products, open orders and materials.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Iterable, Mapping

from ..domain import ZERO, Material, Order, Product
from ..errors import ValidationError


@dataclass
class MaterialNeed:
    material_id: int
    material_name: str
    unit: str
    quantity_needed: Decimal
    current_stock: Decimal
    cost_per_unit: Decimal
    total_cost: Decimal

    @property
    def deficit(self) -> Decimal:
        """Stock left after production; negative means a shortage."""
        return self.current_stock - self.quantity_needed

    @property
    def is_short(self) -> bool:
        return self.deficit < 0

    def to_dict(self) -> dict:
        return {
            "material_id": self.material_id,
            "material_name": self.material_name,
            "unit": self.unit,
            "quantity_needed": str(self.quantity_needed),
            "current_stock": str(self.current_stock),
            "deficit": str(self.deficit),
            "cost_per_unit": str(self.cost_per_unit),
            "total_cost": str(self.total_cost),
        }


@dataclass
class ProductPlan:
    product_id: int
    product_name: str
    current_stock: int
    pending_orders: int
    manual_quantity: int
    materials: list[MaterialNeed] = field(default_factory=list)

    @property
    def total_to_produce(self) -> int:
        return self.pending_orders + self.manual_quantity

    @property
    def cost(self) -> Decimal:
        return sum((m.total_cost for m in self.materials), ZERO)

    @property
    def has_material_deficit(self) -> bool:
        return any(m.is_short for m in self.materials)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "current_stock": self.current_stock,
            "pending_orders": self.pending_orders,
            "manual_quantity": self.manual_quantity,
            "total_to_produce": self.total_to_produce,
            "cost": str(self.cost),
            "has_material_deficit": self.has_material_deficit,
            "materials": [m.to_dict() for m in self.materials],
        }


@dataclass
class ProductionPlan:
    products: list[ProductPlan]
    materials: list[MaterialNeed]

    @property
    def total_cost(self) -> Decimal:
        return sum((p.cost for p in self.products), ZERO)

    @property
    def total_units(self) -> int:
        return sum(p.total_to_produce for p in self.products)

    @property
    def products_needing_production(self) -> list[ProductPlan]:
        return [p for p in self.products if p.total_to_produce > 0]

    @property
    def deficits(self) -> list[MaterialNeed]:
        return [m for m in self.materials if m.is_short]

    def for_product(self, product_id: int) -> ProductPlan | None:
        for plan in self.products:
            if plan.product_id == product_id:
                return plan
        return None

    def to_dict(self) -> dict:
        return {
            "products": [p.to_dict() for p in self.products],
            "materials": [m.to_dict() for m in self.materials],
            "total_cost": str(self.total_cost),
            "total_units": self.total_units,
            "products_needing_production": [p.product_id for p in self.products_needing_production],
            "deficits": [m.material_id for m in self.deficits],
        }


def make_to_order_predicate(pattern: str | None) -> Callable[[Product], bool]:
    """Build the auto-fill exclusion from a case-insensitive name regex."""
    if not pattern:
        return lambda product: False
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise ValidationError(f"Invalid make-to-order pattern: {exc}")
    return lambda product: regex.search(product.name) is not None


def backlog_by_product(open_orders: Iterable[Order]) -> dict[int, int]:
    """Units ordered per product across Pending and InProduction orders."""
    totals: dict[int, int] = {}
    for order in open_orders:
        if not order.status.is_open:
            continue
        for item in order.items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
    return totals


def auto_fill_targets(products: Iterable[Product], low_stock_threshold: int,
                      is_make_to_order: Callable[[Product], bool]) -> dict[int, int]:
    """Top every stocked product back up to the low-stock threshold."""
    targets = {}
    for product in products:
        if is_make_to_order(product):
            continue
        gap = low_stock_threshold - product.quantity
        if gap > 0:
            targets[product.id] = gap
    return targets


def plan_production(
    products: Iterable[Product],
    open_orders: Iterable[Order],
    materials: Iterable[Material],
    manual_targets: Mapping[int, int] | None = None,
    *,
    auto_fill: bool = False,
    low_stock_threshold: int = 10,
    is_make_to_order: Callable[[Product], bool] | None = None,
) -> ProductionPlan:
    products = list(products)
    stock_by_material = {m.id: m.current_stock for m in materials}
    backlog = backlog_by_product(open_orders)

    targets: dict[int, int] = {}
    if auto_fill:
        targets.update(auto_fill_targets(products, low_stock_threshold, is_make_to_order or (lambda p: False)))
    for product_id, quantity in (manual_targets or {}).items():
        if quantity < 0:
            raise ValidationError(
                "Manual production target must be >= 0",
                details={"product_id": product_id, "quantity": quantity},
            )
        targets[product_id] = quantity

    plans = []
    for product in products:
        plan = ProductPlan(
            product_id=product.id,
            product_name=product.name,
            current_stock=product.quantity,
            pending_orders=backlog.get(product.id, 0),
            manual_quantity=targets.get(product.id, 0),
        )
        for line in product.bill_of_materials:
            needed = line.quantity_per_unit * plan.total_to_produce
            plan.materials.append(MaterialNeed(
                material_id=line.material_id,
                material_name=line.material_name,
                unit=line.unit,
                quantity_needed=needed,
                current_stock=stock_by_material.get(line.material_id, ZERO),
                cost_per_unit=line.cost_per_unit,
                total_cost=needed * line.cost_per_unit,
            ))
        plans.append(plan)

    # Products with order backlog first, then the largest runs
    plans.sort(key=lambda p: (p.pending_orders == 0, -p.total_to_produce))
    return ProductionPlan(products=plans, materials=aggregate_materials(plans))


def aggregate_materials(plans: Iterable[ProductPlan]) -> list[MaterialNeed]:
    merged: dict[int, MaterialNeed] = {}
    for plan in plans:
        for need in plan.materials:
            existing = merged.get(need.material_id)
            if existing is None:
                merged[need.material_id] = MaterialNeed(**vars(need))
            else:
                existing.quantity_needed += need.quantity_needed
                existing.total_cost += need.total_cost

    return sorted(merged.values(), key=lambda m: (not m.is_short, m.material_name.lower()))
