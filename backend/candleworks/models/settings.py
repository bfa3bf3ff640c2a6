from __future__ import annotations

from ..extensions import db


class StoreSettings(db.Model):
    """Single-row table with the rates and thresholds the engine reads."""
    __tablename__ = "store_settings"

    id = db.Column(db.Integer, primary_key=True)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    birthday_discount_percent = db.Column(db.Numeric(7, 4), nullable=False, default=0)
    jar_discount_per_unit = db.Column(db.Numeric(14, 4), nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
