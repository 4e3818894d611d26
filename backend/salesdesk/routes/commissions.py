# Overview: Flask API routes for commission payments and balances.

from flask import Blueprint, jsonify, g, request

from ..decorators import require_auth, require_admin
from ..services import commission_service
from ..validation import json_body


commissions_bp = Blueprint("commissions", __name__, url_prefix="/api/commission-payments")


@commissions_bp.get("")
@require_auth
def list_payments_route():
    """Journalists see only their own payments; admins may filter by ?journalist_id=."""
    payments = commission_service.list_payments(
        g.actor,
        journalist_id=request.args.get("journalist_id", type=int),
    )
    return jsonify({"payments": [p.to_dict() for p in payments]}), 200


@commissions_bp.get("/stats/all-journalists")
@require_auth
@require_admin
def all_journalists_stats_route():
    return jsonify(commission_service.all_journalists_stats(g.actor)), 200


@commissions_bp.get("/journalist/<int:journalist_id>/summary")
@require_auth
def journalist_summary_route(journalist_id: int):
    return jsonify({"summary": commission_service.journalist_summary(g.actor, journalist_id)}), 200


@commissions_bp.get("/<int:payment_id>")
@require_auth
def get_payment_route(payment_id: int):
    return jsonify({"payment": commission_service.get_payment(g.actor, payment_id).to_dict()}), 200


@commissions_bp.post("")
@require_auth
@require_admin
def create_payment_route():
    payment = commission_service.create_payment(g.actor, json_body())
    return jsonify({"message": "Commission payment recorded", "payment": payment.to_dict()}), 201


@commissions_bp.put("/<int:payment_id>")
@require_auth
@require_admin
def update_payment_route(payment_id: int):
    payment = commission_service.update_payment(g.actor, payment_id, json_body())
    return jsonify({"message": "Commission payment updated", "payment": payment.to_dict()}), 200


@commissions_bp.delete("/<int:payment_id>")
@require_auth
@require_admin
def delete_payment_route(payment_id: int):
    commission_service.delete_payment(g.actor, payment_id)
    return jsonify({"message": "Commission payment deleted"}), 200
