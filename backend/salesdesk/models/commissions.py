from __future__ import annotations

from ..extensions import db
from ..money import fmt
from salesdesk.time_utils import to_utc_z, to_iso_date


class CommissionPayment(db.Model):
    """
    Money paid out to a journalist.

    Not linked to individual sales: reconciliation is by aggregate only
    (earned - paid), see commission_service.
    """
    __tablename__ = "commission_payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_commission_payments_amount_positive"),
        db.Index("ix_commission_payments_journalist", "journalist_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    journalist_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    payment_method = db.Column(db.String(50), nullable=True)
    reference_number = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    paid_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    journalist = db.relationship("User", foreign_keys=[journalist_id])
    paid_by = db.relationship("User", foreign_keys=[paid_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "journalist_id": self.journalist_id,
            "journalist_name": self.journalist.full_name if self.journalist else None,
            "amount": fmt(self.amount),
            "payment_date": to_iso_date(self.payment_date),
            "payment_method": self.payment_method,
            "reference_number": self.reference_number,
            "notes": self.notes,
            "paid_by_user_id": self.paid_by_user_id,
            "paid_by_name": self.paid_by.full_name if self.paid_by else None,
            "created_at": to_utc_z(self.created_at),
        }
