from __future__ import annotations

from ..extensions import db

# Exact money: 4 decimal places keeps percentage discounts of 2-place prices exact
MONEY = db.Numeric(14, 4)
MEASURE = db.Numeric(14, 4)


class Product(db.Model):
    """
    Finished candle (or kit) sold from stock or made to order.

    quantity is the authoritative on-hand count mutated only through the
    stock ledger; the check constraint backs its non-negative invariant.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=True)
    price = db.Column(MONEY, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    bill_of_materials = db.relationship(
        "ProductMaterial", backref="product", lazy=True,
        cascade="all, delete-orphan", order_by="ProductMaterial.id",
    )
    price_history = db.relationship(
        "ProductPriceHistory", backref="product", lazy=True,
        cascade="all, delete-orphan", order_by="ProductPriceHistory.id",
    )
    __mapper_args__ = {"version_id_col": version_id}


class ProductPriceHistory(db.Model):
    """Append-only log of price changes; rows are never updated."""
    __tablename__ = "product_price_history"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    price = db.Column(MONEY, nullable=False)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False)
    reason = db.Column(db.String(255), nullable=True)


class Material(db.Model):
    __tablename__ = "materials"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    category = db.Column(db.String(128), nullable=True)
    current_stock = db.Column(MEASURE, nullable=False, default=0)
    low_stock_alert = db.Column(MEASURE, nullable=False, default=0)
    cost_per_unit = db.Column(MONEY, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}


class ProductMaterial(db.Model):
    """
    Bill-of-materials line: material consumed per unit of product.

    cost_per_unit is captured when the line is defined, so production costing
    follows the recipe's recorded cost rather than later material repricing.
    """
    __tablename__ = "product_materials"
    __table_args__ = (
        db.UniqueConstraint("product_id", "material_id", name="uq_product_materials_product_material"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False, index=True)
    quantity_per_unit = db.Column(MEASURE, nullable=False)
    cost_per_unit = db.Column(MONEY, nullable=False, default=0)

    material = db.relationship("Material", lazy="joined")
