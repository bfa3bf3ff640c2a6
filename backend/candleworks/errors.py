"""
Structured engine errors.

Every failure the engine reports is an EngineError carrying a human message,
a machine `code`, the HTTP status the host should answer with, and a `details`
dict with the fields a caller needs to act on it (e.g. available vs requested
quantity). Nothing here is retried automatically; callers correct input or
refresh stale data and try again.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for all engine failures."""

    code = "engine_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


# -- input validation (400) ---------------------------------------------------

class ValidationError(EngineError):
    """400-level input problem."""

    code = "validation_error"


class InvalidDiscount(ValidationError):
    code = "invalid_discount"

    def __init__(self, value: Any, field: str = "discount_percent"):
        super().__init__(
            f"{field} must be between 0 and 100, got {value}",
            details={"field": field, "value": str(value)},
        )
        self.value = value
        self.field = field


class PaymentMethodRequired(ValidationError):
    code = "payment_method_required"

    def __init__(self, message: str = "A payment method is required for paid sales"):
        super().__init__(message)


# -- referential integrity (404) ---------------------------------------------

class NotFoundError(EngineError):
    code = "not_found"
    status_code = 404
    entity = "record"

    def __init__(self, entity_id: Any):
        super().__init__(
            f"{self.entity.capitalize()} {entity_id} not found",
            details={"entity": self.entity, "id": entity_id},
        )
        self.entity_id = entity_id


class ProductNotFound(NotFoundError):
    code = "product_not_found"
    entity = "product"


class MaterialNotFound(NotFoundError):
    code = "material_not_found"
    entity = "material"


class CustomerNotFound(NotFoundError):
    code = "customer_not_found"
    entity = "customer"


class SaleNotFound(NotFoundError):
    code = "sale_not_found"
    entity = "sale"


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    entity = "order"


class InstallmentPlanNotFound(NotFoundError):
    code = "installment_plan_not_found"
    entity = "installment plan"


# -- business rule conflicts (409) -------------------------------------------

class InsufficientStock(EngineError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, product_id: Any, available: int, requested: int, shortages: list[dict] | None = None):
        super().__init__(
            f"Insufficient stock for product {product_id}: available {available}, requested {requested}",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
                "items": shortages or [],
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InvalidStatusTransition(EngineError):
    code = "invalid_status_transition"
    status_code = 409

    def __init__(self, current: Any, requested: Any, reason: str | None = None):
        current_value = getattr(current, "value", current)
        requested_value = getattr(requested, "value", requested)
        message = reason or f"Cannot change status from {current_value} to {requested_value}"
        super().__init__(message, details={"current": current_value, "requested": requested_value})
        self.current = current
        self.requested = requested


class OutOfSequence(EngineError):
    code = "installment_out_of_sequence"
    status_code = 409

    def __init__(self, expected_installment: int):
        super().__init__(
            f"Installment {expected_installment} must be paid first",
            details={"expected_installment": expected_installment},
        )
        self.expected_installment = expected_installment


class NotLastPaid(EngineError):
    code = "installment_not_last_paid"
    status_code = 409

    def __init__(self, last_paid: int):
        if last_paid:
            message = f"Only the most recently paid installment ({last_paid}) can be unpaid"
        else:
            message = "No installment has been paid yet"
        super().__init__(message, details={"last_paid": last_paid})
        self.last_paid = last_paid
