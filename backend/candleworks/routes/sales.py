# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/candleworks/routes/sales.py
"""Sales API routes: preview, commit, status lifecycle and deletion."""

from flask import Blueprint, current_app, jsonify, request

from ..domain import PaymentMethod, SaleStatus
from ..errors import EngineError
from ..services.sales_service import SaleDraft, SaleQuote
from ..validation import parse_datetime, parse_enum, parse_int, parse_optional_enum, require_fields
from .helpers import error_response, get_engine, parse_bool, parse_items


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _draft_from_payload(data: dict) -> SaleDraft:
    require_fields(data, "customer_id")
    draft = SaleDraft(
        customer_id=parse_int(data.get("customer_id"), "customer_id", minimum=1),
        items=parse_items(data),
        status=parse_enum(SaleStatus, data.get("status", SaleStatus.PENDING.value), "status"),
        payment_method=parse_optional_enum(PaymentMethod, data.get("payment_method"), "payment_method"),
        birthday_discount_percent=data.get("birthday_discount_percent"),
        use_jar_credits=parse_bool(data.get("use_jar_credits"), "use_jar_credits", default=True),
        notes=data.get("notes"),
        sale_date=parse_datetime(data.get("sale_date"), "sale_date"),
    )
    if data.get("additional_discount_percent") is not None:
        draft.additional_discount_percent = data["additional_discount_percent"]
    if data.get("shipping_cost") is not None:
        draft.shipping_cost = data["shipping_cost"]
    return draft


def _quote_to_dict(quote: SaleQuote) -> dict:
    totals = quote.totals
    return {
        "customer": quote.customer.to_dict(),
        "items": [item.to_dict() for item in quote.items],
        "birthday_discount_percent": str(quote.birthday_discount_percent),
        "additional_discount_percent": str(quote.additional_discount_percent),
        "jar_credits_used": quote.jar_credits.credits_used,
        "subtotal": str(totals.subtotal),
        "discount_percentage": str(totals.discount_percentage),
        "discount_amount": str(totals.discount_amount),
        "jar_discount_amount": str(totals.jar_discount_amount),
        "shipping_cost": str(totals.shipping_cost),
        "total_amount": str(totals.total),
        "warnings": quote.warnings,
    }


@sales_bp.post("/preview")
def preview_sale_route():
    """Price a candidate sale without committing anything."""
    try:
        draft = _draft_from_payload(request.get_json() or {})
        quote = get_engine().preview_sale(draft)
        return jsonify({"quote": _quote_to_dict(quote)}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to preview sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/")
def create_sale_route():
    """
    Commit a sale.

    Deducts stock for every line unless created Cancelled; answers 409 with
    available vs requested quantities when stock is short.
    """
    try:
        draft = _draft_from_payload(request.get_json() or {})
        sale = get_engine().create_sale(draft)
        return jsonify({"sale": sale.to_dict()}), 201

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/")
def list_sales_route():
    try:
        status = request.args.get("status")
        status = parse_enum(SaleStatus, status, "status") if status else None
        sales = get_engine().list_sales(status)
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": get_engine().get_sale(sale_id).to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.patch("/<int:sale_id>/status")
def update_sale_status_route(sale_id: int):
    try:
        data = request.get_json() or {}
        require_fields(data, "status")
        sale = get_engine().update_sale_status(
            sale_id,
            parse_enum(SaleStatus, data.get("status"), "status"),
            parse_optional_enum(PaymentMethod, data.get("payment_method"), "payment_method"),
        )
        return jsonify({"sale": sale.to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update sale status")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
def delete_sale_route(sale_id: int):
    try:
        get_engine().delete_sale(sale_id)
        return "", 204

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
