from __future__ import annotations

from ..extensions import db
from .catalog import MONEY


class Sale(db.Model):
    """
    Recognized sale with its own copy of the items sold.

    from_order marks sales generated by delivering an order; those never
    moved stock and must never give it back.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_date", "status", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)

    subtotal = db.Column(MONEY, nullable=False)
    discount_percentage = db.Column(db.Numeric(7, 4), nullable=False, default=0)
    discount_amount = db.Column(MONEY, nullable=False, default=0)
    jar_credits_used = db.Column(db.Integer, nullable=False, default=0)
    jar_discount_amount = db.Column(MONEY, nullable=False, default=0)
    shipping_cost = db.Column(MONEY, nullable=False, default=0)
    total_amount = db.Column(MONEY, nullable=False)

    # Pending, AwaitingPayment, Paid, Cancelled
    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    payment_method = db.Column(db.String(16), nullable=True)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)
    from_order = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "SaleItem", backref="sale", lazy=True,
        cascade="all, delete-orphan", order_by="SaleItem.position",
    )
    __mapper_args__ = {"version_id_col": version_id}


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # Snapshot at sale time, not a live reference
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(MONEY, nullable=False)
