# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product management routes.

Stock is editable here as a manual correction; order-driven stock changes
happen only through order status transitions.
"""
from flask import Blueprint, request

from ..models import Product
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)
from .errors import json_error

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "purchase_price_cents", "sell_price_cents", "stock", "stock_threshold"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products with optional search and pagination.

    Query params:
    - search: str (optional) - case-insensitive name match
    - include_deleted: bool (optional, default false)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    search = request.args.get("search")
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)

    return catalog_service.list_products(
        search=search,
        include_deleted=include_deleted,
        page=page,
        per_page=per_page,
    )


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return catalog_service.get_product_or_404(product_id).to_dict()
    except Exception as e:
        return json_error(e, "get product")


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = catalog_service.create_product(patch=patch)
    except Exception as e:
        return json_error(e, "create product")

    return created, 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = catalog_service.update_product(product_id=product_id, patch=patch)
    except Exception as e:
        return json_error(e, "update product")

    return updated, 200


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Soft delete; orders keep referencing the product id."""
    try:
        deleted = catalog_service.delete_product(product_id=product_id)
    except Exception as e:
        return json_error(e, "delete product")

    if not deleted:
        return {"error": "Product not found"}, 404

    return {"ok": True}, 200
