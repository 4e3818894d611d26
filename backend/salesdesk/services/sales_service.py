"""
Sales Service - the sale approval lifecycle.

States: PENDING -> APPROVED | REJECTED. No transition leaves APPROVED or
REJECTED, so Update/Approve/Reject/Delete all fail with InvalidStateError on
a decided sale.

WHY one-directional: approved sales feed invoices and financial aggregates.
Rejected sales are re-submitted as new records rather than resurrected.

Every operation takes the caller's Actor explicitly. Journalists act only on
their own sales; admins act on any.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func, or_
from sqlalchemy.orm import joinedload
from werkzeug.datastructures import FileStorage

from ..errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import AD_TYPES, PAYMENT_METHODS, Client, Sale, SaleStatus, User
from ..money import compute_commission, to_decimal
from ..roles import Actor, Role, ensure_admin, journalist_scope
from ..validation import (
    ModelValidationPolicy,
    enforce_choice,
    enforce_commission_rate,
    enforce_positive_amount,
    validate_payload,
)
from salesdesk.time_utils import parse_iso_date, utcnow
from . import settings_service, storage_service
from .concurrency import lock_for_update

logger = logging.getLogger(__name__)

SALE_POLICY = ModelValidationPolicy(
    writable_fields={"client_id", "amount", "payment_method", "payment_date", "ad_type", "description"},
    required_on_create={"client_id", "amount", "payment_method", "payment_date", "ad_type"},
)


def _status(value) -> SaleStatus:
    try:
        return SaleStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError("Invalid status", {"allowed": [s.value for s in SaleStatus]})


def _require_pending(sale: Sale, action: str) -> None:
    if sale.status is not SaleStatus.PENDING:
        raise InvalidStateError(
            f"Cannot {action} a sale that is {sale.status.value}",
            {"sale_id": sale.id, "status": sale.status.value},
        )


def _require_owner_or_admin(actor: Actor, sale: Sale) -> None:
    if actor.is_admin or actor.owns(sale.journalist_id):
        return
    raise ForbiddenError("You can only access your own sales")


def _ensure_client(client_id: int) -> None:
    if db.session.get(Client, client_id) is None:
        raise NotFoundError("Client not found")


def _resolve_journalist(actor: Actor, requested) -> int:
    """Admins may record a sale on behalf of a journalist; journalists always sell as themselves."""
    if requested in (None, ""):
        return actor.user_id

    try:
        journalist_id = int(requested)
    except (TypeError, ValueError):
        raise ValidationError("journalist_id must be an integer")

    if not actor.is_admin:
        if journalist_id != actor.user_id:
            raise ForbiddenError("Journalists can only record their own sales")
        return journalist_id

    journalist = db.session.get(User, journalist_id)
    if journalist is None:
        raise NotFoundError("Journalist not found")
    if journalist.role is not Role.JOURNALIST:
        raise ValidationError("journalist_id must refer to a journalist")
    return journalist_id


def _resolve_rate(actor: Actor, requested) -> Decimal:
    """Only admins may override the organization's default commission rate."""
    if requested in (None, "") or not actor.is_admin:
        return settings_service.default_commission_rate()
    try:
        rate = to_decimal(requested, "commission_rate")
    except ValueError as exc:
        raise ValidationError(str(exc))
    enforce_commission_rate(rate)
    return rate


def _enforce_sale_rules(patch: dict) -> None:
    enforce_positive_amount(patch)
    enforce_choice(patch, "payment_method", PAYMENT_METHODS)
    enforce_choice(patch, "ad_type", AD_TYPES)


def _query():
    return db.session.query(Sale).options(
        joinedload(Sale.client),
        joinedload(Sale.journalist),
        joinedload(Sale.approver),
    )


def get_sale(actor: Actor, sale_id: int) -> Sale:
    sale = _query().filter(Sale.id == sale_id).first()
    if sale is None:
        raise NotFoundError("Sale not found")
    _require_owner_or_admin(actor, sale)
    return sale


def list_sales(
    actor: Actor,
    *,
    status: str | None = None,
    journalist_id: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    search: str | None = None,
) -> list[Sale]:
    """Journalists only ever see their own sales; the journalist_id filter is admin-only."""
    query = _query().join(Client, Client.id == Sale.client_id)

    scope = journalist_scope(actor)
    if scope is not None:
        query = query.filter(Sale.journalist_id == scope)
    elif journalist_id is not None:
        query = query.filter(Sale.journalist_id == journalist_id)

    if status:
        query = query.filter(Sale.status == _status(status))

    try:
        start = parse_iso_date(start_date) if start_date else None
        end = parse_iso_date(end_date) if end_date else None
    except ValueError:
        raise ValidationError("start_date and end_date must be dates (YYYY-MM-DD)")
    if start:
        query = query.filter(Sale.payment_date >= start)
    if end:
        query = query.filter(Sale.payment_date <= end)

    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Client.client_name).like(pattern),
                func.lower(func.coalesce(Sale.description, "")).like(pattern),
            )
        )

    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def _locked_sale(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter(Sale.id == sale_id)).first()
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def create_sale(actor: Actor, data: dict, proof_file: FileStorage | None = None) -> Sale:
    """
    Record a new PENDING sale.

    commission_amount = amount * commission_rate / 100. When a proof of
    payment is attached it is stored first and removed again if anything
    after the upload fails.
    """
    payload = dict(data or {})
    journalist_id = _resolve_journalist(actor, payload.pop("journalist_id", None))
    rate = _resolve_rate(actor, payload.pop("commission_rate", None))

    patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=False)
    _enforce_sale_rules(patch)
    _ensure_client(patch["client_id"])

    proof_path = storage_service.save_proof(proof_file) if proof_file else None
    try:
        sale = Sale(
            journalist_id=journalist_id,
            commission_rate=rate,
            commission_amount=compute_commission(patch["amount"], rate),
            status=SaleStatus.PENDING,
            proof_of_payment_path=proof_path,
            **patch,
        )
        db.session.add(sale)
        db.session.commit()
    except Exception:
        db.session.rollback()
        storage_service.remove_file(proof_path)
        raise

    logger.info(
        "Sale %s created by %s for journalist %s (amount=%s, commission=%s)",
        sale.id, actor.user_id, journalist_id, sale.amount, sale.commission_amount,
    )
    return sale


def update_sale(actor: Actor, sale_id: int, data: dict, proof_file: FileStorage | None = None) -> Sale:
    """
    Edit a PENDING sale. Owner or admin only.

    The row is locked before the PENDING check.

    Commission is recomputed from the (possibly changed) amount and rate.
    """
    sale = _locked_sale(sale_id)
    _require_owner_or_admin(actor, sale)
    _require_pending(sale, "update")

    payload = dict(data or {})
    requested_rate = payload.pop("commission_rate", None)
    if requested_rate not in (None, "") and not actor.is_admin:
        raise ForbiddenError("Only admins can change the commission rate")

    patch = validate_payload(model=Sale, payload=payload, policy=SALE_POLICY, partial=True)
    _enforce_sale_rules(patch)
    if "client_id" in patch:
        _ensure_client(patch["client_id"])

    rate = sale.commission_rate
    if requested_rate not in (None, ""):
        rate = _resolve_rate(actor, requested_rate)

    new_proof = storage_service.save_proof(proof_file) if proof_file else None
    old_proof = sale.proof_of_payment_path
    try:
        for key, value in patch.items():
            setattr(sale, key, value)
        sale.commission_rate = rate
        sale.commission_amount = compute_commission(sale.amount, rate)
        if new_proof:
            sale.proof_of_payment_path = new_proof
        db.session.commit()
    except Exception:
        db.session.rollback()
        storage_service.remove_file(new_proof)
        raise

    if new_proof and old_proof:
        storage_service.remove_file(old_proof)

    logger.info("Sale %s updated by %s", sale.id, actor.user_id)
    return sale


def approve_sale(actor: Actor, sale_id: int) -> Sale:
    """PENDING -> APPROVED. Records approver and timestamp. Admin only."""
    ensure_admin(actor, "approve sales")
    sale = _locked_sale(sale_id)
    _require_pending(sale, "approve")

    sale.status = SaleStatus.APPROVED
    sale.approved_by_user_id = actor.user_id
    sale.approved_at = utcnow()
    db.session.commit()

    logger.info("Sale %s approved by %s", sale.id, actor.user_id)
    return sale


def reject_sale(actor: Actor, sale_id: int, reason: str | None) -> Sale:
    """PENDING -> REJECTED. A non-empty reason is mandatory and stored verbatim. Admin only."""
    ensure_admin(actor, "reject sales")
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("Rejection reason is required")

    sale = _locked_sale(sale_id)
    _require_pending(sale, "reject")

    sale.status = SaleStatus.REJECTED
    sale.approved_by_user_id = actor.user_id
    sale.approved_at = utcnow()
    sale.rejection_reason = reason
    db.session.commit()

    logger.info("Sale %s rejected by %s", sale.id, actor.user_id)
    return sale


def delete_sale(actor: Actor, sale_id: int) -> None:
    """Only PENDING sales can be deleted; journalists only their own. Removes the proof file."""
    sale = _locked_sale(sale_id)
    _require_owner_or_admin(actor, sale)
    _require_pending(sale, "delete")

    proof_path = sale.proof_of_payment_path
    db.session.delete(sale)
    db.session.commit()
    storage_service.remove_file(proof_path)

    logger.info("Sale %s deleted by %s", sale_id, actor.user_id)


def proof_file_path(actor: Actor, sale_id: int) -> str:
    """Absolute path of the sale's stored proof of payment."""
    sale = get_sale(actor, sale_id)
    if not storage_service.file_exists(sale.proof_of_payment_path):
        raise NotFoundError("No proof of payment on file for this sale")
    return storage_service.resolve_path(sale.proof_of_payment_path)
