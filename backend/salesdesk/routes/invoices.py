# Overview: Flask API routes for invoices; generation, listing, PDF download and deletion.

from flask import Blueprint, jsonify, g, send_file
from flask import current_app

from ..decorators import require_auth, require_admin
from ..errors import AppError
from ..services import invoice_service


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """Admins see all invoices; journalists only those for their own sales."""
    invoices = invoice_service.list_invoices(g.actor)
    return jsonify({"invoices": [i.to_dict() for i in invoices]}), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    return jsonify({"invoice": invoice_service.get_invoice(g.actor, invoice_id).to_dict()}), 200


@invoices_bp.post("/generate/<int:sale_id>")
@require_auth
@require_admin
def generate_invoice_route(sale_id: int):
    """
    Generate the invoice and PDF for an approved sale.

    404 unknown sale, 400 sale not approved, 409 invoice already exists.
    """
    try:
        invoice = invoice_service.generate_invoice(g.actor, sale_id)
        return jsonify({"message": "Invoice generated successfully", "invoice": invoice.to_dict()}), 201

    except AppError:
        raise
    except Exception:
        current_app.logger.exception("Failed to generate invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>/download")
@require_auth
def download_invoice_route(invoice_id: int):
    path, filename = invoice_service.invoice_pdf(g.actor, invoice_id)
    return send_file(path, mimetype="application/pdf", as_attachment=True, download_name=filename)


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_admin
def delete_invoice_route(invoice_id: int):
    invoice_service.delete_invoice(g.actor, invoice_id)
    return jsonify({"message": "Invoice deleted successfully"}), 200
