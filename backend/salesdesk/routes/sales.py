# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales API routes.

Create and update accept JSON, or multipart/form-data with the proof of
payment in the `proof_of_payment` file part.
"""

from flask import Blueprint, request, jsonify, g, send_file
from flask import current_app

from ..decorators import require_auth, require_admin
from ..errors import AppError
from ..services import sales_service
from ..validation import json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_input():
    """(fields, uploaded proof or None) from a JSON or multipart request."""
    if request.mimetype == "multipart/form-data":
        proof = request.files.get("proof_of_payment")
        if proof is not None and not proof.filename:
            proof = None
        return request.form.to_dict(), proof
    return json_body(), None


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales, newest first.

    Filters: status, journalist_id (admin only), start_date, end_date, search.
    Journalists always get only their own sales.
    """
    sales = sales_service.list_sales(
        g.actor,
        status=request.args.get("status"),
        journalist_id=request.args.get("journalist_id", type=int),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        search=request.args.get("search"),
    )
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    return jsonify({"sale": sales_service.get_sale(g.actor, sale_id).to_dict()}), 200


@sales_bp.post("")
@require_auth
def create_sale_route():
    """Record a new pending sale."""
    data, proof = _sale_input()
    try:
        sale = sales_service.create_sale(g.actor, data, proof)
        return jsonify({"message": "Sale created successfully", "sale": sale.to_dict()}), 201

    except AppError:
        raise
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    """Edit a pending sale (owner or admin)."""
    data, proof = _sale_input()
    try:
        sale = sales_service.update_sale(g.actor, sale_id, data, proof)
        return jsonify({"message": "Sale updated successfully", "sale": sale.to_dict()}), 200

    except AppError:
        raise
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/approve")
@require_auth
@require_admin
def approve_sale_route(sale_id: int):
    sale = sales_service.approve_sale(g.actor, sale_id)
    return jsonify({"message": "Sale approved successfully", "sale": sale.to_dict()}), 200


@sales_bp.post("/<int:sale_id>/reject")
@require_auth
@require_admin
def reject_sale_route(sale_id: int):
    """Reject a pending sale; `rejection_reason` is required."""
    data = json_body()
    sale = sales_service.reject_sale(g.actor, sale_id, data.get("rejection_reason"))
    return jsonify({"message": "Sale rejected", "sale": sale.to_dict()}), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
def delete_sale_route(sale_id: int):
    sales_service.delete_sale(g.actor, sale_id)
    return jsonify({"message": "Sale deleted successfully"}), 200


@sales_bp.get("/<int:sale_id>/proof")
@require_auth
def sale_proof_route(sale_id: int):
    """Stream the uploaded proof of payment."""
    path = sales_service.proof_file_path(g.actor, sale_id)
    return send_file(path)
