from __future__ import annotations

from ..extensions import db
from ..money import fmt
from salesdesk.time_utils import to_utc_z, to_iso_date


class Invoice(db.Model):
    """
    Billing document for exactly one approved sale.

    Client and payment fields are a snapshot taken at generation time.
    Both sale_id and invoice_number are unique: the first guards against a
    second invoice for the same sale, the second against two concurrent
    generators allocating the same number.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_invoices_sale"),
        db.UniqueConstraint("invoice_number", name="uq_invoices_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    # e.g. "INV-2026-007"
    invoice_number = db.Column(db.String(50), nullable=False)

    client_name = db.Column(db.String(255), nullable=False)
    client_phone = db.Column(db.String(20), nullable=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(50), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    ad_type = db.Column(db.String(50), nullable=True)
    description = db.Column(db.Text, nullable=True)

    generated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    generated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Path relative to UPLOAD_FOLDER
    pdf_path = db.Column(db.String(500), nullable=True)

    sale = db.relationship("Sale", backref=db.backref("invoice", uselist=False))
    generated_by = db.relationship("User", foreign_keys=[generated_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "invoice_number": self.invoice_number,
            "client_name": self.client_name,
            "client_phone": self.client_phone,
            "amount": fmt(self.amount),
            "payment_method": self.payment_method,
            "payment_date": to_iso_date(self.payment_date),
            "ad_type": self.ad_type,
            "description": self.description,
            "generated_by_user_id": self.generated_by_user_id,
            "generated_by_name": self.generated_by.full_name if self.generated_by else None,
            "generated_at": to_utc_z(self.generated_at),
            "pdf_path": self.pdf_path,
        }
