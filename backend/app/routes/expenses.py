# Overview: Flask API routes for general expenses.

from flask import Blueprint, request

from ..models import Expense
from ..services import expense_service
from ..validation import enforce_rules_expense, validate_payload
from .errors import json_error

expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
def list_expenses_route():
    """
    Query params:
    - category: exact category (optional)
    - date_from, date_to: ISO-8601 (optional)
    - page, per_page: pagination (optional)
    """
    try:
        return expense_service.list_expenses(
            category=request.args.get("category"),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except Exception as e:
        return json_error(e, "list expenses")


@expenses_bp.post("")
def create_expense_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Expense, payload=payload, policy=expense_service.EXPENSE_POLICY, partial=False,
        )
        enforce_rules_expense(patch)
        created = expense_service.create_expense(patch=patch)
    except Exception as e:
        return json_error(e, "create expense")

    return created, 201


@expenses_bp.put("/<int:expense_id>")
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=Expense, payload=payload, policy=expense_service.EXPENSE_POLICY, partial=True,
        )
        enforce_rules_expense(patch)
        updated = expense_service.update_expense(expense_id=expense_id, patch=patch)
    except Exception as e:
        return json_error(e, "update expense")

    return updated, 200


@expenses_bp.delete("/<int:expense_id>")
def delete_expense_route(expense_id: int):
    try:
        deleted = expense_service.delete_expense(expense_id=expense_id)
    except Exception as e:
        return json_error(e, "delete expense")

    if not deleted:
        return {"error": "Expense not found"}, 404

    return {"ok": True}, 200
