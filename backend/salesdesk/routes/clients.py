# Overview: Flask API routes for clients; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g, request

from ..decorators import require_auth, require_admin
from ..services import client_service
from ..validation import json_body


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@require_auth
def list_clients_route():
    """All clients with approved sales totals. Optional ?search= over name, contact, phone, email."""
    clients = client_service.list_clients(request.args.get("search"))
    return jsonify({"clients": clients}), 200


@clients_bp.get("/stats/overview")
@require_auth
@require_admin
def client_stats_route():
    return jsonify({"stats": client_service.client_stats()}), 200


@clients_bp.get("/<int:client_id>")
@require_auth
def get_client_route(client_id: int):
    return jsonify({"client": client_service.get_client_detail(client_id)}), 200


@clients_bp.post("")
@require_auth
def create_client_route():
    client = client_service.create_client(g.actor, json_body())
    return jsonify({"message": "Client created successfully", "client": client.to_dict()}), 201


@clients_bp.put("/<int:client_id>")
@require_auth
def update_client_route(client_id: int):
    client = client_service.update_client(g.actor, client_id, json_body())
    return jsonify({"message": "Client updated successfully", "client": client.to_dict()}), 200


@clients_bp.delete("/<int:client_id>")
@require_auth
@require_admin
def delete_client_route(client_id: int):
    """Fails with 409 while the client has any sales."""
    client_service.delete_client(g.actor, client_id)
    return jsonify({"message": "Client deleted successfully"}), 200
