# Overview: Shared request parsing and engine access for the JSON blueprints.

from __future__ import annotations

from flask import current_app, jsonify

from ..domain import ItemRequest
from ..engine import Engine, sql_engine
from ..errors import EngineError, ValidationError
from ..validation import parse_int

ENGINE_KEY = "candleworks.engine"


def get_engine() -> Engine:
    """
    One engine per app: its stock ledger lock is the in-process
    serialization point, so requests must share it.
    """
    app = current_app._get_current_object()
    engine = app.extensions.get(ENGINE_KEY)
    if engine is None:
        engine = sql_engine(app, clock=app.config.get("ENGINE_CLOCK"))
        app.extensions[ENGINE_KEY] = engine
    return engine


def error_response(e: EngineError):
    return jsonify(e.to_dict()), e.status_code


def parse_items(payload: dict) -> list[ItemRequest]:
    raw = payload.get("items")
    if not isinstance(raw, list) or not raw:
        raise ValidationError("items must be a non-empty list")

    items = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"items[{index}] must be an object")
        items.append(ItemRequest(
            product_id=parse_int(entry.get("product_id"), f"items[{index}].product_id", minimum=1),
            quantity=parse_int(entry.get("quantity"), f"items[{index}].quantity", minimum=1),
        ))
    return items


def parse_bool(value, field: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.lower() in ("false", "0", "no"):
        return False
    raise ValidationError(f"{field} must be a boolean")
