# Overview: Flask API routes for customers, jar credits and birthdays.

from flask import Blueprint, current_app, jsonify, request

from ..domain import Customer
from ..errors import EngineError, ValidationError
from ..validation import parse_int, require_fields
from .helpers import error_response, get_engine


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


def _optional_int(value, field, minimum, maximum):
    if value in (None, ""):
        return None
    result = parse_int(value, field, minimum=minimum)
    if result > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return result


@customers_bp.post("/")
def create_customer_route():
    try:
        data = request.get_json() or {}
        require_fields(data, "name")
        customer = get_engine().add_customer(Customer(
            id=None,
            name=data["name"],
            birth_month=_optional_int(data.get("birth_month"), "birth_month", 1, 12),
            birth_day=_optional_int(data.get("birth_day"), "birth_day", 1, 31),
            jar_credits=parse_int(data.get("jar_credits", 0), "jar_credits", minimum=0),
            email=data.get("email"),
            phone=data.get("phone"),
        ))
        return jsonify({"customer": customer.to_dict()}), 201

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    try:
        return jsonify({"customer": get_engine().get_customer(customer_id).to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/<int:customer_id>/jar-credits")
def adjust_jar_credits_route(customer_id: int):
    """Body {"delta": n}: jars returned (positive) or corrected (negative)."""
    try:
        data = request.get_json() or {}
        require_fields(data, "delta")
        customer = get_engine().adjust_jar_credits(customer_id, data.get("delta"))
        return jsonify({"customer": customer.to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust jar credits")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/birthdays")
def birthday_customers_route():
    try:
        month = _optional_int(request.args.get("month"), "month", 1, 12)
        customers = get_engine().birthday_month_customers(month)
        return jsonify({"customers": [c.to_dict() for c in customers]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list birthday customers")
        return jsonify({"error": "Internal server error"}), 500
