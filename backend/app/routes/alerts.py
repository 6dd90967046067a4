from flask import Blueprint, jsonify

from app.services import alert_service
from .errors import json_error


alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("")
def list_alerts():
    try:
        alerts = alert_service.get_alerts()
    except Exception as exc:
        return json_error(exc, "scan alerts")
    data = [a.to_dict() for a in alerts]
    return jsonify({"items": data, "count": len(data)}), 200
