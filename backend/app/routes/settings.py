from flask import Blueprint, jsonify, request

from app.services import settings_service
from .errors import json_error


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings():
    try:
        return jsonify(settings_service.get_settings().to_dict()), 200
    except Exception as exc:
        return json_error(exc, "load settings")


@settings_bp.put("")
def update_settings():
    """
    Request body (all keys optional):
    {
        "store_name": "My Store",
        "notification_rules": {"SHIPPED": {"enabled": true, "days": 5}}
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(payload)
    except Exception as exc:
        return json_error(exc, "update settings")
    return jsonify(settings.to_dict()), 200
