# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes.

Tokens are stateless and signed (see token_service). Logout only tells the
client to drop its token.
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth
from ..services import auth_service, token_service
from ..validation import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user):
    return {
        "token": token_service.issue_token(user),
        "user": user.to_dict(),
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email and password.

    401 for unknown email or wrong password, 403 for a deactivated account.
    """
    data = json_body()
    user = auth_service.authenticate(data.get("email"), data.get("password"))
    return jsonify({"message": "Login successful", **_session_payload(user)}), 200


@auth_bp.post("/bootstrap")
def bootstrap_route():
    """Create the first admin. Only works while the users table is empty."""
    user = auth_service.bootstrap_admin(json_body())
    return jsonify({"message": "Admin account created", **_session_payload(user)}), 201


@auth_bp.get("/me")
@require_auth
def me_route():
    user = auth_service.get_user(g.actor.user_id)
    return jsonify({"user": user.to_dict()}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    data = json_body()
    auth_service.change_password(g.actor, data.get("current_password"), data.get("new_password"))
    return jsonify({"message": "Password changed successfully"}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    return jsonify({"message": "Logged out"}), 200
