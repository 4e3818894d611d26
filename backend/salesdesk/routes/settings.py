# Overview: Flask API routes for organization settings.

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import settings_service
from ..validation import json_body


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def list_settings_route():
    return jsonify({"settings": settings_service.get_all()}), 200


@settings_bp.post("/bulk-update")
@require_auth
@require_admin
def bulk_update_route():
    """Body: {"settings": {key: value, ...}}. All or nothing."""
    data = json_body()
    values = settings_service.bulk_update(g.actor, data.get("settings"))
    return jsonify({"message": "Settings updated successfully", "settings": values}), 200


@settings_bp.post("/reset-defaults")
@require_auth
@require_admin
def reset_defaults_route():
    values = settings_service.reset_defaults(g.actor)
    return jsonify({"message": "Settings reset to defaults", "settings": values}), 200


@settings_bp.get("/<string:key>")
@require_auth
def get_setting_route(key: str):
    return jsonify({"setting": settings_service.get_setting(key)}), 200


@settings_bp.put("/<string:key>")
@require_auth
@require_admin
def upsert_setting_route(key: str):
    data = json_body()
    setting = settings_service.upsert_setting(g.actor, key, data.get("value"))
    return jsonify({"message": "Setting saved", "setting": setting.to_dict()}), 200


@settings_bp.delete("/<string:key>")
@require_auth
@require_admin
def delete_setting_route(key: str):
    """Protected keys (company_name, default_commission_rate, invoice_prefix) return 400."""
    settings_service.delete_setting(g.actor, key)
    return jsonify({"message": "Setting deleted"}), 200
