from __future__ import annotations

import enum

from ..extensions import db
from ..money import fmt
from salesdesk.time_utils import to_utc_z, to_iso_date


class SaleStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


PAYMENT_METHODS = ("Cash", "Ecocash", "InnBucks", "Omari", "Bank Transfer")
AD_TYPES = ("WhatsApp Channel", "WhatsApp Group", "Print", "Radio", "TV", "Digital Banner")


class Sale(db.Model):
    """
    One advertising transaction logged by a journalist.

    Lifecycle: PENDING -> APPROVED | REJECTED. Both outcomes are terminal.
    WHY: approved sales feed invoices and financial aggregates; editing them
    afterwards would silently change documents already issued.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_sales_amount_positive"),
        db.Index("ix_sales_journalist_status", "journalist_id", "status"),
        db.Index("ix_sales_payment_date", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)
    journalist_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(50), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    ad_type = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Path relative to UPLOAD_FOLDER
    proof_of_payment_path = db.Column(db.String(500), nullable=True)

    commission_rate = db.Column(db.Numeric(5, 2), nullable=False, default=10)
    commission_amount = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(
        db.Enum(SaleStatus, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SaleStatus.PENDING,
        index=True,
    )

    # Approval audit trail (also set on rejection)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    client = db.relationship("Client", backref=db.backref("sales", lazy="dynamic"))
    journalist = db.relationship("User", foreign_keys=[journalist_id])
    approver = db.relationship("User", foreign_keys=[approved_by_user_id])

    @property
    def is_pending(self) -> bool:
        return self.status is SaleStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "client_name": self.client.client_name if self.client else None,
            "client_phone": self.client.phone_number if self.client else None,
            "journalist_id": self.journalist_id,
            "journalist_name": self.journalist.full_name if self.journalist else None,
            "amount": fmt(self.amount),
            "payment_method": self.payment_method,
            "payment_date": to_iso_date(self.payment_date),
            "ad_type": self.ad_type,
            "description": self.description,
            "proof_of_payment_path": self.proof_of_payment_path,
            "commission_rate": fmt(self.commission_rate),
            "commission_amount": fmt(self.commission_amount),
            "status": self.status.value if self.status else None,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_by_name": self.approver.full_name if self.approver else None,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }
