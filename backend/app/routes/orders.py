# Overview: Flask API routes for orders; CRUD, status transitions, totals preview and printing.

# backend/app/routes/orders.py
"""
Order API Routes

DESIGN:
- Status is changed through POST /<id>/status (or the "status" key of a PUT),
  which runs the stock-aware transition in order_service.
- Return-bearing transitions need a return breakdown. Over HTTP there is no
  interactive prompt: without "return_detail" the API answers 422 with
  needs_return_detail=true and a prefill the client shows to the operator,
  then resubmits.
- Stock is never touched on create.
"""

from flask import Blueprint, request, jsonify

from ..models import Order
from ..services import order_service
from ..services.order_status import ReturnDetail, effect_for, normalize_status
from ..validation import ValidationError, enforce_rules_order, validate_payload
from .errors import json_error


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _list_args() -> dict:
    return {
        "status": request.args.get("status"),
        "shipper_id": request.args.get("shipper_id", type=int),
        "search": request.args.get("search"),
        "date_from": request.args.get("date_from"),
        "date_to": request.args.get("date_to"),
        "page": request.args.get("page", type=int),
        "per_page": request.args.get("per_page", type=int),
    }


def _pop_transition_options(payload: dict) -> tuple[ReturnDetail | None, bool]:
    raw_detail = payload.pop("return_detail", None)
    allow_negative = payload.pop("allow_negative_stock", False)
    if not isinstance(allow_negative, bool):
        raise ValidationError("allow_negative_stock must be a boolean")
    detail = ReturnDetail.from_payload(raw_detail) if raw_detail is not None else None
    return detail, allow_negative


# =============================================================================
# LISTING
# =============================================================================

@orders_bp.get("")
def list_orders_route():
    """
    List orders (newest first).

    Query params:
    - status: status code or legacy label (optional)
    - shipper_id: int (optional)
    - search: customer name / phone / order id (optional)
    - date_from, date_to: ISO-8601 (optional)
    - page, per_page: pagination (optional; all rows when page is omitted)
    """
    try:
        return order_service.list_orders(**_list_args())
    except Exception as e:
        return json_error(e, "list orders")


@orders_bp.get("/returns")
def list_returns_route():
    """Canceled, rejected and partially delivered orders that carry return bookkeeping."""
    try:
        return order_service.list_return_orders(**_list_args())
    except Exception as e:
        return json_error(e, "list returns")


@orders_bp.get("/<int:order_id>")
def get_order_route(order_id: int):
    try:
        return order_service.get_order(order_id).to_dict()
    except Exception as e:
        return json_error(e, "get order")


# =============================================================================
# CREATE / UPDATE / DELETE
# =============================================================================

@orders_bp.post("")
def create_order_route():
    """
    Create an order (status UNDER_REVIEW unless a non-deducting status is given).

    Request body:
    {
        "customer_name": "Mona", "phone": "0100...", "governorate": "Cairo",
        "address": "...", "shipper_id": 1, "discount_cents": 0,
        "items": [{"product_id": 1, "quantity": 3}]
    }

    Legacy single-product payloads ({"product_id", "quantity"}) are accepted.
    """
    try:
        fields, items, status = order_service.split_order_payload(request.get_json(silent=True))
        patch = validate_payload(model=Order, payload=fields, policy=order_service.ORDER_POLICY, partial=False)
        enforce_rules_order(patch)
        order = order_service.create_order(patch=patch, items=items or [], status=status)
    except Exception as e:
        return json_error(e, "create order")

    return jsonify(order.to_dict()), 201


@orders_bp.put("/<int:order_id>")
def update_order_route(order_id: int):
    """
    Save edits to an order.

    Item edits on an order whose stock is already deducted move stock by the
    difference. A "status" key is applied after the edits are saved; if that
    transition needs return detail the edits stay saved and the response is
    422 with the prefill (resubmitting the same edits is a no-op).
    """
    payload = request.get_json(silent=True) or {}

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        detail, allow_negative = _pop_transition_options(payload)
        fields, items, status = order_service.split_order_payload(payload)
        patch = validate_payload(model=Order, payload=fields, policy=order_service.ORDER_POLICY, partial=True)
        enforce_rules_order(patch)
        result = order_service.update_order(
            order_id=order_id,
            patch=patch,
            items=items,
            status=status,
            return_detail=detail,
            allow_negative_stock=allow_negative,
        )
    except Exception as e:
        return json_error(e, "update order")

    return jsonify(result.to_dict()), 200


@orders_bp.delete("/<int:order_id>")
def delete_order_route(order_id: int):
    """Soft delete. Stock is not adjusted."""
    try:
        deleted = order_service.delete_order(order_id=order_id)
    except Exception as e:
        return json_error(e, "delete order")

    if not deleted:
        return jsonify({"error": "Order not found"}), 404

    return jsonify({"ok": True}), 200


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

@orders_bp.post("/<int:order_id>/status")
def change_status_route(order_id: int):
    """
    Move an order to a new status.

    Request body:
    {
        "status": "CANCELED",
        "return_detail": {                       (required for return-bearing moves)
            "return_cost_cents": 1500,
            "items": [{"product_id": 1, "returned_quantity": 3}]
        },
        "allow_negative_stock": false            (optional)
    }

    Returns:
        200: {order, stock_movements, applied}
        400: invalid status / return detail
        409: insufficient stock
        422: return detail required (body carries the prefill)
        503: write failed, status unchanged
    """
    payload = request.get_json(silent=True) or {}

    try:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        status = payload.get("status")
        if not status:
            raise ValidationError("status required")
        detail, allow_negative = _pop_transition_options(payload)
        result = order_service.transition_order(
            order_id,
            status,
            return_detail=detail,
            allow_negative_stock=allow_negative,
        )
    except Exception as e:
        return json_error(e, "change order status")

    return jsonify(result.to_dict()), 200


@orders_bp.get("/<int:order_id>/return-detail")
def return_detail_prefill_route(order_id: int):
    """Whether moving to ?status= needs return detail, and the suggested values."""
    try:
        status = request.args.get("status")
        if not status:
            raise ValidationError("status query parameter required")
        to_status = normalize_status(status)
        order = order_service.get_order(order_id)
        prefill = order_service.return_detail_prefill(order, to_status)
        required = order.status != to_status and effect_for(order.status, to_status).requires_return_detail
    except Exception as e:
        return json_error(e, "build return detail prefill")

    return jsonify({
        "order_id": order_id,
        "from_status": order.status,
        "to_status": to_status,
        "required": required,
        "prefill": prefill.to_dict(),
    }), 200


# =============================================================================
# TOTALS / PRINTING
# =============================================================================

@orders_bp.post("/totals")
def preview_totals_route():
    """Compute totals for an unsaved order form (nothing is written)."""
    try:
        fields, items, _status = order_service.split_order_payload(request.get_json(silent=True))
        if not items:
            raise ValidationError("order must have at least one item")
        patch = validate_payload(model=Order, payload=fields, policy=order_service.ORDER_POLICY, partial=True)
        enforce_rules_order(patch)
        totals = order_service.preview_totals(fields=patch, items=items)
    except Exception as e:
        return json_error(e, "compute order totals")

    return jsonify(totals.to_dict()), 200


@orders_bp.post("/print")
def mark_printed_route():
    """Record that labels/invoices were printed: {"order_ids": [1, 2]}."""
    payload = request.get_json(silent=True) or {}

    try:
        order_ids = payload.get("order_ids") if isinstance(payload, dict) else None
        if not isinstance(order_ids, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) for i in order_ids
        ):
            raise ValidationError("order_ids must be a list of integers")
        orders = order_service.mark_printed(order_ids=order_ids)
    except Exception as e:
        return json_error(e, "mark orders printed")

    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200
