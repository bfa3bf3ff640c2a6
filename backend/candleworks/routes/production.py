# Overview: Flask API route for the production plan report.

from flask import Blueprint, current_app, jsonify, request

from ..errors import EngineError, ValidationError
from ..validation import parse_int
from .helpers import error_response, get_engine, parse_bool


production_bp = Blueprint("production", __name__, url_prefix="/api/production")


@production_bp.post("/plan")
def plan_route():
    """
    Build the production plan.

    Body: {"auto_fill": bool, "manual_targets": {"<product_id>": qty, ...}}.
    Pure report; nothing is persisted.
    """
    try:
        data = request.get_json(silent=True) or {}
        raw_targets = data.get("manual_targets") or {}
        if not isinstance(raw_targets, dict):
            raise ValidationError("manual_targets must be an object keyed by product id")

        targets = {
            parse_int(product_id, "manual_targets key", minimum=1): parse_int(qty, f"manual_targets[{product_id}]", minimum=0)
            for product_id, qty in raw_targets.items()
        }
        plan = get_engine().plan_production(
            targets, auto_fill=parse_bool(data.get("auto_fill"), "auto_fill")
        )
        return jsonify({"plan": plan.to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build production plan")
        return jsonify({"error": "Internal server error"}), 500
