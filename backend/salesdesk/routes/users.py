# Overview: Flask API routes for user administration; admin only.

from flask import Blueprint, jsonify, g, request

from ..decorators import require_auth, require_admin
from ..errors import ValidationError
from ..services import auth_service
from ..validation import json_body


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    if raw.lower() in ("true", "1"):
        return True
    if raw.lower() in ("false", "0"):
        return False
    raise ValidationError(f"{name} must be true or false")


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    users = auth_service.list_users(role=request.args.get("role"), is_active=_bool_arg("is_active"))
    return jsonify({"users": [u.to_dict() for u in users]}), 200


@users_bp.get("/stats/overview")
@require_auth
@require_admin
def user_stats_route():
    return jsonify({"stats": auth_service.user_stats()}), 200


@users_bp.get("/<int:user_id>")
@require_auth
@require_admin
def get_user_route(user_id: int):
    return jsonify({"user": auth_service.get_user(user_id).to_dict()}), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user_route():
    user = auth_service.create_user(g.actor, json_body())
    return jsonify({"message": "User created successfully", "user": user.to_dict()}), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_admin
def update_user_route(user_id: int):
    user = auth_service.update_user(g.actor, user_id, json_body())
    return jsonify({"message": "User updated successfully", "user": user.to_dict()}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user_route(user_id: int):
    auth_service.delete_user(g.actor, user_id)
    return jsonify({"message": "User deleted successfully"}), 200
