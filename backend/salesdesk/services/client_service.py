# Overview: Service-layer operations for clients; encapsulates business logic and database work.

from __future__ import annotations

import logging

from sqlalchemy import and_, func, or_

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Client, Sale, SaleStatus
from ..money import fmt, quantize
from ..roles import Actor, ensure_admin
from ..validation import ModelValidationPolicy, enforce_email, enforce_phone, validate_payload

logger = logging.getLogger(__name__)

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"client_name", "contact_person", "phone_number", "email", "address"},
    required_on_create={"client_name", "phone_number"},
)


def _approved_totals_query():
    return (
        db.session.query(
            Client,
            func.count(Sale.id).label("total_sales"),
            func.coalesce(func.sum(Sale.amount), 0).label("total_revenue"),
        )
        .outerjoin(Sale, and_(Sale.client_id == Client.id, Sale.status == SaleStatus.APPROVED))
        .group_by(Client.id)
    )


def _with_totals(row) -> dict:
    client, total_sales, total_revenue = row
    data = client.to_dict()
    data["total_sales"] = int(total_sales or 0)
    data["total_revenue"] = fmt(total_revenue)
    return data


def list_clients(search: str | None = None) -> list[dict]:
    """All clients with their approved sales count and revenue, newest first."""
    query = _approved_totals_query()
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Client.client_name).like(pattern),
                func.lower(func.coalesce(Client.contact_person, "")).like(pattern),
                func.lower(Client.phone_number).like(pattern),
                func.lower(func.coalesce(Client.email, "")).like(pattern),
            )
        )
    rows = query.order_by(Client.created_at.desc(), Client.id.desc()).all()
    return [_with_totals(row) for row in rows]


def get_client(client_id: int) -> Client:
    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


def get_client_detail(client_id: int) -> dict:
    row = _approved_totals_query().filter(Client.id == client_id).first()
    if row is None:
        raise NotFoundError("Client not found")
    return _with_totals(row)


def create_client(actor: Actor, data: dict) -> Client:
    patch = validate_payload(model=Client, payload=data, policy=CLIENT_POLICY, partial=False)
    enforce_phone(patch)
    enforce_email(patch)

    client = Client(added_by_user_id=actor.user_id, **patch)
    db.session.add(client)
    db.session.commit()
    logger.info("Client %s created by %s", client.id, actor.user_id)
    return client


def update_client(actor: Actor, client_id: int, data: dict) -> Client:
    client = get_client(client_id)
    patch = validate_payload(model=Client, payload=data, policy=CLIENT_POLICY, partial=True)
    enforce_phone(patch)
    enforce_email(patch)

    for key, value in patch.items():
        setattr(client, key, value)
    db.session.commit()
    logger.info("Client %s updated by %s", client.id, actor.user_id)
    return client


def delete_client(actor: Actor, client_id: int) -> None:
    """Referential guard: a client with any sale (in any state) cannot be deleted."""
    ensure_admin(actor, "delete clients")
    client = get_client(client_id)

    sales_count = db.session.query(func.count(Sale.id)).filter(Sale.client_id == client.id).scalar() or 0
    if sales_count:
        raise ConflictError(
            "Cannot delete client with existing sales",
            {"sales": int(sales_count)},
        )

    db.session.delete(client)
    db.session.commit()
    logger.info("Client %s deleted by %s", client_id, actor.user_id)


def client_stats() -> dict:
    total_clients = db.session.query(func.count(Client.id)).scalar() or 0

    per_client = (
        db.session.query(
            Sale.client_id.label("client_id"),
            func.sum(Sale.amount).label("revenue"),
        )
        .filter(Sale.status == SaleStatus.APPROVED)
        .group_by(Sale.client_id)
        .subquery()
    )
    clients_with_sales, avg_revenue = db.session.query(
        func.count(per_client.c.client_id),
        func.avg(per_client.c.revenue),
    ).one()

    return {
        "total_clients": int(total_clients),
        "clients_with_sales": int(clients_with_sales or 0),
        "avg_revenue_per_client": str(quantize(avg_revenue)),
    }
