from flask import Blueprint, jsonify, request

from app.services import financial_service
from .errors import json_error


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/financial")
def financial_report():
    """Profit/loss summary; optional date_from/date_to (ISO-8601) bound orders and expenses."""
    try:
        report = financial_service.get_financial_summary(
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
        )
        return jsonify(report), 200
    except Exception as exc:
        return json_error(exc, "build financial report")
