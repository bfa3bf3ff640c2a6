# Overview: Flask API routes for make-to-order orders and their delivery.

from flask import Blueprint, current_app, jsonify, request

from ..domain import OrderStatus, PaymentMethod
from ..errors import EngineError
from ..services.order_service import OrderDraft
from ..validation import parse_datetime, parse_enum, parse_int, parse_optional_enum, require_fields
from .helpers import error_response, get_engine, parse_items


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/")
def create_order_route():
    """Create a Pending order. Orders never touch product stock."""
    try:
        data = request.get_json() or {}
        require_fields(data, "customer_id")
        draft = OrderDraft(
            customer_id=parse_int(data.get("customer_id"), "customer_id", minimum=1),
            items=parse_items(data),
            expected_delivery_date=parse_datetime(data.get("expected_delivery_date"), "expected_delivery_date"),
            payment_method=parse_optional_enum(PaymentMethod, data.get("payment_method"), "payment_method"),
            notes=data.get("notes"),
        )
        if data.get("discount_percent") is not None:
            draft.discount_percent = data["discount_percent"]
        if data.get("shipping_cost") is not None:
            draft.shipping_cost = data["shipping_cost"]

        order = get_engine().create_order(draft)
        return jsonify({"order": order.to_dict()}), 201

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/")
def list_orders_route():
    try:
        engine = get_engine()
        if request.args.get("open") in ("1", "true"):
            orders = engine.open_orders()
        else:
            status = request.args.get("status")
            orders = engine.list_orders(parse_enum(OrderStatus, status, "status") if status else None)
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        return jsonify({"order": get_engine().get_order(order_id).to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/status")
def update_order_status_route(order_id: int):
    """
    Move an order along its lifecycle.

    Delivering requires a payment method (in the body or already on the
    order) and answers with the generated sale as well.
    """
    try:
        data = request.get_json() or {}
        require_fields(data, "status")
        engine = get_engine()
        order = engine.update_order_status(
            order_id,
            parse_enum(OrderStatus, data.get("status"), "status"),
            parse_optional_enum(PaymentMethod, data.get("payment_method"), "payment_method"),
        )
        body = {"order": order.to_dict()}
        if order.sale_id is not None:
            body["sale"] = engine.get_sale(order.sale_id).to_dict()
        return jsonify(body), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
def delete_order_route(order_id: int):
    try:
        get_engine().delete_order(order_id)
        return "", 204

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
