# Overview: Read-only analytics projections over sales, clients and commission payments.

"""
Every projection recomputes from current rows (no caching) and respects the
caller: journalists see only their own sales, admins see everything.
Leaderboard, top clients and the CSV export are admin only.
"""

from __future__ import annotations

import csv
import io

from sqlalchemy import and_, case, func

from ..errors import ValidationError
from ..extensions import db
from ..models import Client, Sale, SaleStatus, User
from ..money import fmt, quantize
from ..roles import Actor, Role, ensure_admin, journalist_scope
from salesdesk.time_utils import months_ago, parse_iso_date, to_iso_date, to_utc_z, today
from . import commission_service

PERIOD_FORMATS = {
    # period: (sqlite strftime, postgres to_char)
    "day": ("%Y-%m-%d", "YYYY-MM-DD"),
    "week": ("%Y-W%W", 'IYYY-"W"IW'),
    "month": ("%Y-%m", "YYYY-MM"),
}

LEADERBOARD_WINDOWS = {"all": None, "month": 1, "quarter": 3, "year": 12}

MAX_LIMIT = 100
MAX_TREND_MONTHS = 120

CSV_HEADER = [
    "ID", "Created At", "Payment Date", "Client", "Phone", "Journalist",
    "Amount", "Commission", "Payment Method", "Ad Type", "Status", "Description",
]


def parse_limit(value, default: int = 10) -> int:
    if value in (None, ""):
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    if limit < 1 or limit > MAX_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")
    return limit


def _scoped(query, actor: Actor):
    scope = journalist_scope(actor)
    if scope is not None:
        query = query.filter(Sale.journalist_id == scope)
    return query


def _approved(query, actor: Actor):
    return _scoped(query.filter(Sale.status == SaleStatus.APPROVED), actor)


def _count_status(status: SaleStatus):
    return func.coalesce(func.sum(case((Sale.status == status, 1), else_=0)), 0)


def dashboard(actor: Actor) -> dict:
    sales_row = _scoped(
        db.session.query(
            func.count(Sale.id),
            _count_status(SaleStatus.PENDING),
            _count_status(SaleStatus.APPROVED),
            _count_status(SaleStatus.REJECTED),
        ),
        actor,
    ).one()

    revenue_total, revenue_avg = _approved(
        db.session.query(
            func.coalesce(func.sum(Sale.amount), 0),
            func.avg(Sale.amount),
        ),
        actor,
    ).one()

    scope = journalist_scope(actor)
    earned = commission_service.earned(scope)
    paid = commission_service.paid(scope)

    clients_query = db.session.query(func.count(Client.id))
    if scope is not None:
        clients_query = clients_query.filter(Client.added_by_user_id == scope)

    return {
        "sales": {
            "total": int(sales_row[0] or 0),
            "pending": int(sales_row[1] or 0),
            "approved": int(sales_row[2] or 0),
            "rejected": int(sales_row[3] or 0),
        },
        "revenue": {
            "total": fmt(revenue_total),
            "average": fmt(quantize(revenue_avg)),
        },
        "commissions": {
            "earned": fmt(earned),
            "paid": fmt(paid),
            "unpaid": fmt(earned - paid),
        },
        "clients": {
            "total": int(clients_query.scalar() or 0),
        },
    }


def _period_expr(period: str):
    sqlite_fmt, pg_fmt = PERIOD_FORMATS[period]
    dialect = db.session.get_bind().dialect.name
    if dialect == "postgresql":
        return func.to_char(Sale.payment_date, pg_fmt)
    return func.strftime(sqlite_fmt, Sale.payment_date)


def revenue_trend(actor: Actor, *, period: str = "month", months=12) -> list[dict]:
    """Approved sales bucketed by payment date over a trailing window, most recent bucket first."""
    period = (period or "month").lower()
    if period not in PERIOD_FORMATS:
        raise ValidationError("period must be day, week, or month")
    try:
        months = int(months)
    except (TypeError, ValueError):
        raise ValidationError("months must be an integer")
    if months < 1 or months > MAX_TREND_MONTHS:
        raise ValidationError(f"months must be between 1 and {MAX_TREND_MONTHS}")

    bucket = _period_expr(period).label("period")
    rows = (
        _approved(
            db.session.query(
                bucket,
                func.count(Sale.id).label("sales_count"),
                func.coalesce(func.sum(Sale.amount), 0).label("revenue"),
                func.coalesce(func.sum(Sale.commission_amount), 0).label("commission"),
            ),
            actor,
        )
        .filter(Sale.payment_date >= months_ago(today(), months))
        .group_by(bucket)
        .order_by(bucket.desc())
        .all()
    )
    return [
        {
            "period": row.period,
            "sales_count": int(row.sales_count or 0),
            "revenue": fmt(row.revenue),
            "commission": fmt(row.commission),
        }
        for row in rows
    ]


def _breakdown(actor: Actor, column) -> list[dict]:
    value = func.coalesce(func.sum(Sale.amount), 0)
    rows = (
        _approved(
            db.session.query(column.label("name"), func.count(Sale.id).label("count"), value.label("value")),
            actor,
        )
        .group_by(column)
        .order_by(value.desc(), column.asc())
        .all()
    )
    return [{"name": row.name, "count": int(row.count or 0), "value": fmt(row.value)} for row in rows]


def sales_by_ad_type(actor: Actor) -> list[dict]:
    return _breakdown(actor, Sale.ad_type)


def sales_by_payment_method(actor: Actor) -> list[dict]:
    return _breakdown(actor, Sale.payment_method)


def leaderboard(actor: Actor, *, limit: int = 10, period: str = "all") -> list[dict]:
    """Journalists ranked by approved revenue; journalists without sales appear with zeros."""
    ensure_admin(actor, "view the leaderboard")
    period = (period or "all").lower()
    if period not in LEADERBOARD_WINDOWS:
        raise ValidationError("period must be all, month, quarter, or year")

    join_on = and_(Sale.journalist_id == User.id, Sale.status == SaleStatus.APPROVED)
    window = LEADERBOARD_WINDOWS[period]
    if window:
        join_on = and_(join_on, Sale.payment_date >= months_ago(today(), window))

    revenue = func.coalesce(func.sum(Sale.amount), 0)
    rows = (
        db.session.query(
            User,
            func.count(Sale.id).label("total_sales"),
            revenue.label("total_revenue"),
            func.coalesce(func.sum(Sale.commission_amount), 0).label("total_commission"),
            func.avg(Sale.amount).label("avg_sale_amount"),
            func.count(func.distinct(Sale.client_id)).label("unique_clients"),
        )
        .outerjoin(Sale, join_on)
        .filter(User.role == Role.JOURNALIST)
        .group_by(User.id)
        .order_by(revenue.desc(), User.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": user.id,
            "name": user.full_name,
            "email": user.email,
            "total_sales": int(total_sales or 0),
            "total_revenue": fmt(total_revenue),
            "total_commission": fmt(total_commission),
            "avg_sale_amount": fmt(quantize(avg_sale_amount)),
            "unique_clients": int(unique_clients or 0),
        }
        for user, total_sales, total_revenue, total_commission, avg_sale_amount, unique_clients in rows
    ]


def top_clients(actor: Actor, *, limit: int = 10) -> list[dict]:
    """Clients with approved sales, ranked by approved revenue."""
    ensure_admin(actor, "view top clients")
    revenue = func.coalesce(func.sum(Sale.amount), 0)
    rows = (
        db.session.query(
            Client,
            func.count(Sale.id).label("total_sales"),
            revenue.label("total_revenue"),
            func.max(Sale.payment_date).label("last_sale_date"),
        )
        .join(Sale, Sale.client_id == Client.id)
        .filter(Sale.status == SaleStatus.APPROVED)
        .group_by(Client.id)
        .order_by(revenue.desc(), Client.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": client.id,
            "client_name": client.client_name,
            "phone_number": client.phone_number,
            "email": client.email,
            "total_sales": int(total_sales or 0),
            "total_revenue": fmt(total_revenue),
            "last_sale_date": to_iso_date(last_sale_date) if hasattr(last_sale_date, "isoformat") else last_sale_date,
        }
        for client, total_sales, total_revenue, last_sale_date in rows
    ]


def recent_sales(actor: Actor, *, limit: int = 10) -> list[dict]:
    sales = (
        _scoped(db.session.query(Sale), actor)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": sale.id,
            "amount": fmt(sale.amount),
            "payment_date": to_iso_date(sale.payment_date),
            "ad_type": sale.ad_type,
            "status": sale.status.value,
            "created_at": to_utc_z(sale.created_at),
            "client_name": sale.client.client_name if sale.client else None,
            "journalist_name": sale.journalist.full_name if sale.journalist else None,
        }
        for sale in sales
    ]


def export_sales_csv(
    actor: Actor,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
) -> str:
    """All matching sales as CSV text, newest first. Admin only."""
    ensure_admin(actor, "export sales")

    query = db.session.query(Sale)
    try:
        start = parse_iso_date(start_date) if start_date else None
        end = parse_iso_date(end_date) if end_date else None
    except ValueError:
        raise ValidationError("start_date and end_date must be dates (YYYY-MM-DD)")
    if start:
        query = query.filter(Sale.payment_date >= start)
    if end:
        query = query.filter(Sale.payment_date <= end)
    if status:
        try:
            query = query.filter(Sale.status == SaleStatus(status.strip().lower()))
        except ValueError:
            raise ValidationError("Invalid status", {"allowed": [s.value for s in SaleStatus]})

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)
    for sale in query.order_by(Sale.created_at.desc(), Sale.id.desc()).all():
        writer.writerow([
            sale.id,
            to_utc_z(sale.created_at),
            to_iso_date(sale.payment_date),
            sale.client.client_name if sale.client else "",
            sale.client.phone_number if sale.client else "",
            sale.journalist.full_name if sale.journalist else "",
            fmt(sale.amount),
            fmt(sale.commission_amount),
            sale.payment_method,
            sale.ad_type,
            sale.status.value,
            sale.description or "",
        ])
    return buffer.getvalue()
