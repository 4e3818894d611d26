# Overview: Service-layer operations for commission payments and aggregate balance reconciliation.

"""
Commission reconciliation is aggregate only:

    earned(j)  = sum of commission_amount over j's APPROVED sales
    paid(j)    = sum of amount over j's commission payments
    balance(j) = earned(j) - paid(j)

Payments are not allocated to individual sales. Overpayment is allowed, so a
balance may be negative.

WHY separate sums: joining sales and payments in one query multiplies each
side by the row count of the other. Each total is computed on its own.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..errors import ForbiddenError, NotFoundError
from ..extensions import db
from ..models import CommissionPayment, Sale, SaleStatus, User
from ..money import fmt, quantize
from ..roles import Actor, Role, ensure_admin, journalist_scope
from ..validation import ModelValidationPolicy, enforce_positive_amount, validate_payload

logger = logging.getLogger(__name__)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"journalist_id", "amount", "payment_date", "payment_method", "reference_number", "notes"},
    required_on_create={"journalist_id", "amount", "payment_date"},
)

RECENT_PAYMENTS_LIMIT = 10


def earned(journalist_id: int | None = None) -> Decimal:
    query = db.session.query(func.coalesce(func.sum(Sale.commission_amount), 0)).filter(
        Sale.status == SaleStatus.APPROVED
    )
    if journalist_id is not None:
        query = query.filter(Sale.journalist_id == journalist_id)
    return quantize(query.scalar())


def paid(journalist_id: int | None = None) -> Decimal:
    query = db.session.query(func.coalesce(func.sum(CommissionPayment.amount), 0))
    if journalist_id is not None:
        query = query.filter(CommissionPayment.journalist_id == journalist_id)
    return quantize(query.scalar())


def balance(journalist_id: int | None = None) -> Decimal:
    return earned(journalist_id) - paid(journalist_id)


def _ensure_journalist(journalist_id: int) -> User:
    user = db.session.get(User, journalist_id)
    if user is None or user.role is not Role.JOURNALIST:
        raise NotFoundError("Journalist not found")
    return user


def _check_access(actor: Actor, journalist_id: int) -> None:
    scope = journalist_scope(actor)
    if scope is not None and scope != journalist_id:
        raise ForbiddenError("You can only view your own commission data")


def _query():
    return db.session.query(CommissionPayment).options(
        joinedload(CommissionPayment.journalist),
        joinedload(CommissionPayment.paid_by),
    )


def list_payments(actor: Actor, *, journalist_id: int | None = None) -> list[CommissionPayment]:
    query = _query()
    scope = journalist_scope(actor)
    if scope is not None:
        query = query.filter(CommissionPayment.journalist_id == scope)
    elif journalist_id is not None:
        query = query.filter(CommissionPayment.journalist_id == journalist_id)
    return query.order_by(
        CommissionPayment.payment_date.desc(),
        CommissionPayment.created_at.desc(),
        CommissionPayment.id.desc(),
    ).all()


def get_payment(actor: Actor, payment_id: int) -> CommissionPayment:
    payment = _query().filter(CommissionPayment.id == payment_id).first()
    if payment is None:
        raise NotFoundError("Commission payment not found")
    _check_access(actor, payment.journalist_id)
    return payment


def create_payment(actor: Actor, data: dict) -> CommissionPayment:
    """Record a disbursement to a journalist. Admin only. No upper bound against the balance."""
    ensure_admin(actor, "record commission payments")
    patch = validate_payload(model=CommissionPayment, payload=data, policy=PAYMENT_POLICY, partial=False)
    enforce_positive_amount(patch)
    _ensure_journalist(patch["journalist_id"])

    payment = CommissionPayment(paid_by_user_id=actor.user_id, **patch)
    db.session.add(payment)
    db.session.commit()

    logger.info(
        "Commission payment %s of %s to journalist %s recorded by %s",
        payment.id, payment.amount, payment.journalist_id, actor.user_id,
    )
    return payment


def update_payment(actor: Actor, payment_id: int, data: dict) -> CommissionPayment:
    ensure_admin(actor, "update commission payments")
    payment = db.session.get(CommissionPayment, payment_id)
    if payment is None:
        raise NotFoundError("Commission payment not found")

    patch = validate_payload(model=CommissionPayment, payload=data, policy=PAYMENT_POLICY, partial=True)
    enforce_positive_amount(patch)
    if "journalist_id" in patch:
        _ensure_journalist(patch["journalist_id"])

    for key, value in patch.items():
        setattr(payment, key, value)
    db.session.commit()

    logger.info("Commission payment %s updated by %s", payment.id, actor.user_id)
    return payment


def delete_payment(actor: Actor, payment_id: int) -> None:
    ensure_admin(actor, "delete commission payments")
    payment = db.session.get(CommissionPayment, payment_id)
    if payment is None:
        raise NotFoundError("Commission payment not found")
    db.session.delete(payment)
    db.session.commit()
    logger.info("Commission payment %s deleted by %s", payment_id, actor.user_id)


def journalist_summary(actor: Actor, journalist_id: int) -> dict:
    """Earned, paid and balance for one journalist, plus the latest payments."""
    _check_access(actor, journalist_id)
    journalist = _ensure_journalist(journalist_id)

    total_earned = earned(journalist_id)
    total_paid = paid(journalist_id)
    recent = (
        _query()
        .filter(CommissionPayment.journalist_id == journalist_id)
        .order_by(CommissionPayment.payment_date.desc(), CommissionPayment.created_at.desc(), CommissionPayment.id.desc())
        .limit(RECENT_PAYMENTS_LIMIT)
        .all()
    )

    return {
        "journalist_id": journalist.id,
        "journalist_name": journalist.full_name,
        "total_earned": fmt(total_earned),
        "total_paid": fmt(total_paid),
        "balance": fmt(total_earned - total_paid),
        "recent_payments": [p.to_dict() for p in recent],
    }


def all_journalists_stats(actor: Actor) -> dict:
    """
    Per-journalist earned/paid/balance for journalists with at least one
    approved sale, highest balance first, plus organization totals.
    """
    ensure_admin(actor, "view commission statistics")

    earned_sq = (
        db.session.query(
            Sale.journalist_id.label("journalist_id"),
            func.sum(Sale.commission_amount).label("total_earned"),
        )
        .filter(Sale.status == SaleStatus.APPROVED)
        .group_by(Sale.journalist_id)
        .subquery()
    )
    paid_sq = (
        db.session.query(
            CommissionPayment.journalist_id.label("journalist_id"),
            func.sum(CommissionPayment.amount).label("total_paid"),
        )
        .group_by(CommissionPayment.journalist_id)
        .subquery()
    )

    rows = (
        db.session.query(User, earned_sq.c.total_earned, paid_sq.c.total_paid)
        .join(earned_sq, earned_sq.c.journalist_id == User.id)
        .outerjoin(paid_sq, paid_sq.c.journalist_id == User.id)
        .filter(User.role == Role.JOURNALIST)
        .all()
    )

    statistics = []
    for user, total_earned, total_paid in rows:
        e = quantize(total_earned)
        p = quantize(total_paid)
        statistics.append({
            "journalist_id": user.id,
            "journalist_name": user.full_name,
            "total_earned": e,
            "total_paid": p,
            "balance": e - p,
        })
    statistics.sort(key=lambda row: (-row["balance"], row["journalist_id"]))

    totals_earned = sum((row["total_earned"] for row in statistics), Decimal("0.00"))
    totals_paid = sum((row["total_paid"] for row in statistics), Decimal("0.00"))

    return {
        "statistics": [
            {**row, "total_earned": fmt(row["total_earned"]), "total_paid": fmt(row["total_paid"]), "balance": fmt(row["balance"])}
            for row in statistics
        ],
        "totals": {
            "total_earned": fmt(totals_earned),
            "total_paid": fmt(totals_paid),
            "balance": fmt(totals_earned - totals_paid),
        },
    }
