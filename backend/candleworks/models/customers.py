from __future__ import annotations

from ..extensions import db


class Customer(db.Model):
    """
    Customer with birthday and returned-jar balance.

    jar_credits counts jars handed back; each is worth the configured cash
    discount on one future unit sold.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("jar_credits >= 0", name="jar_credits_non_negative"),
        db.Index("ix_customers_birth_month", "birth_month"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    birth_month = db.Column(db.Integer, nullable=True)
    birth_day = db.Column(db.Integer, nullable=True)
    jar_credits = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}
