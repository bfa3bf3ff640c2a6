# Overview: Flask API routes for products, materials and pricing.

from decimal import Decimal

from flask import Blueprint, current_app, jsonify, request

from ..domain import ZERO, BomLine, Material, Product
from ..errors import EngineError, ValidationError
from ..validation import parse_int, parse_money, require_fields, to_decimal
from .helpers import error_response, get_engine


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


def _parse_bom(raw, engine) -> list[BomLine]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("bill_of_materials must be a list")

    materials = {m.id: m for m in engine.list_materials()}
    lines = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValidationError(f"bill_of_materials[{index}] must be an object")
        material_id = parse_int(entry.get("material_id"), f"bill_of_materials[{index}].material_id", minimum=1)
        material = materials.get(material_id)
        if material is None:
            raise ValidationError(f"Unknown material {material_id}", details={"material_id": material_id})
        quantity = to_decimal(entry.get("quantity_per_unit"), f"bill_of_materials[{index}].quantity_per_unit")
        if quantity <= 0:
            raise ValidationError(f"bill_of_materials[{index}].quantity_per_unit must be > 0")
        cost = entry.get("cost_per_unit")
        lines.append(BomLine(
            material_id=material.id,
            material_name=material.name,
            unit=material.unit,
            quantity_per_unit=quantity,
            cost_per_unit=material.cost_per_unit if cost is None else parse_money(cost, "cost_per_unit"),
        ))
    return lines


@catalog_bp.post("/products")
def create_product_route():
    try:
        data = request.get_json() or {}
        require_fields(data, "name", "price")
        engine = get_engine()
        product = engine.add_product(Product(
            id=None,
            name=data["name"],
            price=parse_money(data.get("price"), "price"),
            quantity=parse_int(data.get("quantity", 0), "quantity", minimum=0),
            category=data.get("category"),
            bill_of_materials=_parse_bom(data.get("bill_of_materials"), engine),
        ))
        return jsonify({"product": product.to_dict()}), 201

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products")
def list_products_route():
    try:
        return jsonify({"products": [p.to_dict() for p in get_engine().list_products()]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify({"product": get_engine().get_product(product_id).to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/products/<int:product_id>/price")
def update_price_route(product_id: int):
    try:
        data = request.get_json() or {}
        require_fields(data, "price")
        product = get_engine().update_product_price(product_id, data.get("price"), data.get("reason"))
        return jsonify({"product": product.to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product price")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/products/<int:product_id>/restock")
def restock_route(product_id: int):
    try:
        data = request.get_json() or {}
        quantity = parse_int(data.get("quantity"), "quantity", minimum=1)
        product = get_engine().restock_product(product_id, quantity)
        return jsonify({"product": product.to_dict()}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products/low-stock")
def low_stock_products_route():
    try:
        products = get_engine().low_stock_products()
        return jsonify({"products": [p.to_dict() for p in products]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/categories/<category>/affected")
def category_affected_route(category: str):
    """Products a category price change would touch; lets the UI confirm first."""
    try:
        products = get_engine().products_affected_by_category_price_change(category)
        return jsonify({"count": len(products), "products": [p.to_dict() for p in products]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list category products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.put("/categories/<category>/price")
def apply_category_price_route(category: str):
    try:
        data = request.get_json() or {}
        require_fields(data, "price")
        products = get_engine().apply_category_price(category, data.get("price"))
        return jsonify({"count": len(products), "products": [p.to_dict() for p in products]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to apply category price")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/materials")
def create_material_route():
    try:
        data = request.get_json() or {}
        require_fields(data, "name", "unit")
        stock = to_decimal(data.get("current_stock", ZERO), "current_stock")
        if stock < 0:
            raise ValidationError("current_stock must be >= 0")
        material = get_engine().add_material(Material(
            id=None,
            name=data["name"],
            unit=data["unit"],
            current_stock=stock,
            low_stock_alert=to_decimal(data.get("low_stock_alert", ZERO), "low_stock_alert"),
            cost_per_unit=parse_money(data.get("cost_per_unit", Decimal("0")), "cost_per_unit"),
            category=data.get("category"),
        ))
        return jsonify({"material": material.to_dict()}), 201

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create material")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/materials/low-stock")
def low_stock_materials_route():
    try:
        materials = get_engine().low_stock_materials()
        return jsonify({"materials": [m.to_dict() for m in materials]}), 200

    except EngineError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list low-stock materials")
        return jsonify({"error": "Internal server error"}), 500
