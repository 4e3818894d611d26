from __future__ import annotations

from ..extensions import db
from salesdesk.time_utils import to_utc_z


class Client(db.Model):
    """Advertisers the organization sells to. Shared by all staff."""
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_added_by", "added_by_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=True)
    phone_number = db.Column(db.String(20), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)

    added_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    added_by = db.relationship("User", foreign_keys=[added_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_name": self.client_name,
            "contact_person": self.contact_person,
            "phone_number": self.phone_number,
            "email": self.email,
            "address": self.address,
            "added_by_user_id": self.added_by_user_id,
            "added_by_name": self.added_by.full_name if self.added_by else None,
            "created_at": to_utc_z(self.created_at),
        }
