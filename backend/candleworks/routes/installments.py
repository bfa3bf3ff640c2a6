# Overview: Flask API routes for installment plans (financed expenses).

from flask import Blueprint, current_app, jsonify, request

from ..domain import InstallmentPlan
from ..errors import EngineError, ValidationError
from ..validation import parse_datetime, parse_int, require_fields
from .helpers import error_response, get_engine


installments_bp = Blueprint("installments", __name__, url_prefix="/api/installments")


def _plan_to_dict(plan: InstallmentPlan) -> dict:
    summary = get_engine().installment_summary(plan.id)
    body = plan.to_dict()
    body.update({
        "paid_count": summary.paid_count,
        "paid_amount": str(summary.paid_amount),
        "remaining_amount": str(summary.remaining_amount),
    })
    return body


@installments_bp.post("/")
def create_plan_route():
    try:
        data = request.get_json() or {}
        require_fields(data, "description", "total_amount", "installment_count")
        plan = get_engine().create_installment_plan(
            description=data.get("description"),
            total_amount=data.get("total_amount"),
            installment_count=data.get("installment_count"),
            start_date=parse_datetime(data.get("start_date"), "start_date"),
            category=data.get("category") or "Other",
            notes=data.get("notes"),
        )
        return jsonify({"plan": _plan_to_dict(plan)}), 201

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create installment plan")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.get("/")
def list_plans_route():
    try:
        plans = get_engine().list_installment_plans()
        category = request.args.get("category")
        if category:
            plans = [p for p in plans if p.category == category]
        if request.args.get("pending") in ("1", "true"):
            plans = [p for p in plans if p.current_installment is not None]
        return jsonify({"plans": [_plan_to_dict(p) for p in plans]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list installment plans")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.get("/due")
def due_in_month_route():
    """Unpaid installment total falling due in ?year=&month=."""
    try:
        year = parse_int(request.args.get("year"), "year", minimum=1)
        month = parse_int(request.args.get("month"), "month", minimum=1)
        amount = get_engine().installments_due_in_month(year, month)
        return jsonify({"year": year, "month": month, "amount_due": str(amount)}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute installments due")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.get("/<int:plan_id>")
def get_plan_route(plan_id: int):
    try:
        return jsonify({"plan": _plan_to_dict(get_engine().get_installment_plan(plan_id))}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get installment plan")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.put("/<int:plan_id>/installments/<int:installment_number>")
def set_paid_route(plan_id: int, installment_number: int):
    """Body {"paid": true|false}; paid installments must stay a 1..k prefix."""
    try:
        data = request.get_json() or {}
        paid = data.get("paid")
        if not isinstance(paid, bool):
            raise ValidationError("paid must be a boolean")
        plan = get_engine().set_installment_paid(plan_id, installment_number, paid)
        return jsonify({"plan": _plan_to_dict(plan)}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set installment status")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.post("/<int:plan_id>/toggle-payment/<int:installment_number>")
def toggle_route(plan_id: int, installment_number: int):
    try:
        plan = get_engine().toggle_installment(plan_id, installment_number)
        return jsonify({"plan": _plan_to_dict(plan)}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to toggle installment")
        return jsonify({"error": "Internal server error"}), 500


@installments_bp.delete("/<int:plan_id>")
def delete_plan_route(plan_id: int):
    try:
        get_engine().delete_installment_plan(plan_id)
        return "", 204

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete installment plan")
        return jsonify({"error": "Internal server error"}), 500
