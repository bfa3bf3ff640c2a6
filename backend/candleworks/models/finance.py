from __future__ import annotations

from ..extensions import db
from .catalog import MONEY


class InstallmentPayment(db.Model):
    """
    Financed expense split into installment_count monthly installments.

    Paid installments always form a prefix 1..k (enforced by the installment
    service, not by the schema).
    """
    __tablename__ = "installment_payments"
    __table_args__ = (
        db.CheckConstraint("installment_count >= 1", name="installment_count_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    description = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=False, default="Other")
    total_amount = db.Column(MONEY, nullable=False)
    installment_count = db.Column(db.Integer, nullable=False)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    payment_status = db.relationship(
        "InstallmentPaymentStatus", backref="plan", lazy=True,
        cascade="all, delete-orphan", order_by="InstallmentPaymentStatus.installment_number",
    )
    __mapper_args__ = {"version_id_col": version_id}


class InstallmentPaymentStatus(db.Model):
    __tablename__ = "installment_payment_status"
    __table_args__ = (
        db.UniqueConstraint("plan_id", "installment_number", name="uq_installment_payment_status_plan_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("installment_payments.id"), nullable=False, index=True)
    installment_number = db.Column(db.Integer, nullable=False)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_date = db.Column(db.DateTime(timezone=True), nullable=True)
