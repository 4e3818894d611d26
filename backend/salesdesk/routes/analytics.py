# Overview: Flask API routes for dashboard analytics and CSV export.

from flask import Blueprint, Response, jsonify, g, request

from ..decorators import require_auth, require_admin
from ..services import analytics_service


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/dashboard")
@require_auth
def dashboard_route():
    return jsonify({"stats": analytics_service.dashboard(g.actor)}), 200


@analytics_bp.get("/revenue-trend")
@require_auth
def revenue_trend_route():
    data = analytics_service.revenue_trend(
        g.actor,
        period=request.args.get("period", "month"),
        months=request.args.get("months", 12),
    )
    return jsonify({"data": data}), 200


@analytics_bp.get("/sales-by-ad-type")
@require_auth
def sales_by_ad_type_route():
    return jsonify({"data": analytics_service.sales_by_ad_type(g.actor)}), 200


@analytics_bp.get("/sales-by-payment-method")
@require_auth
def sales_by_payment_method_route():
    return jsonify({"data": analytics_service.sales_by_payment_method(g.actor)}), 200


@analytics_bp.get("/leaderboard")
@require_auth
@require_admin
def leaderboard_route():
    rows = analytics_service.leaderboard(
        g.actor,
        limit=analytics_service.parse_limit(request.args.get("limit")),
        period=request.args.get("period", "all"),
    )
    return jsonify({"leaderboard": rows}), 200


@analytics_bp.get("/top-clients")
@require_auth
@require_admin
def top_clients_route():
    rows = analytics_service.top_clients(g.actor, limit=analytics_service.parse_limit(request.args.get("limit")))
    return jsonify({"top_clients": rows}), 200


@analytics_bp.get("/recent-sales")
@require_auth
def recent_sales_route():
    rows = analytics_service.recent_sales(g.actor, limit=analytics_service.parse_limit(request.args.get("limit")))
    return jsonify({"recent_sales": rows}), 200


@analytics_bp.get("/export/sales")
@require_auth
@require_admin
def export_sales_route():
    """CSV of sales filtered by start_date, end_date and status."""
    body = analytics_service.export_sales_csv(
        g.actor,
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        status=request.args.get("status"),
    )
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=sales-export.csv"},
    )
