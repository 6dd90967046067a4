# Overview: Flask API routes for shippers and their governorate rate tables.

from flask import Blueprint, request

from ..models import Shipper
from ..services import catalog_service
from ..validation import ModelValidationPolicy, enforce_money_fields, validate_payload
from .errors import json_error

SHIPPER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "return_cost_cents"},
    required_on_create={"name"},
)

shippers_bp = Blueprint("shippers", __name__, url_prefix="/api/shippers")


@shippers_bp.get("")
def list_shippers():
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    return catalog_service.list_shippers(include_deleted=include_deleted, page=page, per_page=per_page)


@shippers_bp.get("/<int:shipper_id>")
def get_shipper_route(shipper_id: int):
    try:
        return catalog_service.get_shipper_or_404(shipper_id).to_dict()
    except Exception as e:
        return json_error(e, "get shipper")


@shippers_bp.post("")
def create_shipper_route():
    """
    Create a shipper.

    Request body:
    {
        "name": "Fast Courier",
        "return_cost_cents": 1500,
        "rates": [{"governorate": "Cairo", "price_cents": 5000, "discount_cents": 0}]
    }
    """
    payload = request.get_json(silent=True) or {}
    rates = payload.pop("rates", None)

    try:
        patch = validate_payload(model=Shipper, payload=payload, policy=SHIPPER_POLICY, partial=False)
        enforce_money_fields(patch, ("return_cost_cents",))
        created = catalog_service.create_shipper(patch=patch, rates=rates)
    except Exception as e:
        return json_error(e, "create shipper")

    return created, 201


@shippers_bp.put("/<int:shipper_id>")
def update_shipper_route(shipper_id: int):
    """Update a shipper. Supplying "rates" replaces the whole rate table."""
    payload = request.get_json(silent=True) or {}
    rates = payload.pop("rates", None)

    try:
        patch = validate_payload(model=Shipper, payload=payload, policy=SHIPPER_POLICY, partial=True)
        enforce_money_fields(patch, ("return_cost_cents",))
        updated = catalog_service.update_shipper(shipper_id=shipper_id, patch=patch, rates=rates)
    except Exception as e:
        return json_error(e, "update shipper")

    return updated, 200


@shippers_bp.delete("/<int:shipper_id>")
def delete_shipper_route(shipper_id: int):
    try:
        deleted = catalog_service.delete_shipper(shipper_id=shipper_id)
    except Exception as e:
        return json_error(e, "delete shipper")

    if not deleted:
        return {"error": "Shipper not found"}, 404

    return {"ok": True}, 200
