from __future__ import annotations

from ..extensions import db
from .catalog import MONEY


class Order(db.Model):
    """
    Make-to-order request. Delivery turns it into exactly one sale (sale_id).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_orders_sale_id"),
        db.Index("ix_orders_status_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_name = db.Column(db.String(255), nullable=False)

    subtotal = db.Column(MONEY, nullable=False)
    discount_percentage = db.Column(db.Numeric(7, 4), nullable=False, default=0)
    discount_amount = db.Column(MONEY, nullable=False, default=0)
    shipping_cost = db.Column(MONEY, nullable=False, default=0)
    total_amount = db.Column(MONEY, nullable=False)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False)
    expected_delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    delivered_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Pending, InProduction, ReadyForDelivery, Delivered, Cancelled
    status = db.Column(db.String(24), nullable=False, default="Pending", index=True)
    payment_method = db.Column(db.String(16), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "OrderItem", backref="order", lazy=True,
        cascade="all, delete-orphan", order_by="OrderItem.position",
    )
    __mapper_args__ = {"version_id_col": version_id}


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(MONEY, nullable=False)
