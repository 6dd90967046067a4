# Overview: Service-layer operations for products and shippers (the catalog store).

# backend/app/services/catalog_service.py
"""
Catalog Store

Holds Products and Shippers. Products are mutated only by:
- explicit CRUD from the product form (including manual stock edits)
- stock adjustments issued by order_service during status transitions

STOCK ADJUSTMENT RULES:
- Always read the product fresh (optionally row-locked) right before writing;
  never trust an in-memory copy loaded earlier in the request.
- A deduction that would make stock negative raises InsufficientStockError
  unless the caller passed allow_negative=True.
- Unknown or soft-deleted products are skipped (no movement, no error):
  orders may still reference products that were removed from the catalog.
- Adjustments flush but never commit; the caller owns the transaction.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Product, Shipper, ShipperRate
from ..validation import ConflictError, NotFoundError, ValidationError, enforce_money_fields
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate


PRODUCT_MUTABLE_FIELDS = {"name", "purchase_price_cents", "sell_price_cents", "stock", "stock_threshold"}
SHIPPER_MUTABLE_FIELDS = {"name", "return_cost_cents"}


class InsufficientStockError(ConflictError):
    """A deduction would drive a product's stock below zero."""

    def __init__(self, product_id: int, stock: int, delta: int):
        self.product_id = product_id
        self.stock = stock
        self.delta = delta
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"on hand {stock}, requested {-delta}"
        )


@dataclass(frozen=True)
class StockMovement:
    """One applied stock change, as reported back to the caller."""
    product_id: int
    delta: int
    stock_before: int
    stock_after: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "delta": self.delta,
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
        }


# =============================================================================
# STORE CONTRACT (used by the order engine)
# =============================================================================

def get_product(product_id: int, *, lock: bool = False, include_deleted: bool = False) -> Product | None:
    query = db.session.query(Product).filter_by(id=product_id)
    if not include_deleted:
        query = query.filter(Product.is_deleted.is_(False))
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_shipper(shipper_id: int | None, *, include_deleted: bool = False) -> Shipper | None:
    if shipper_id is None:
        return None
    query = db.session.query(Shipper).filter_by(id=shipper_id)
    if not include_deleted:
        query = query.filter(Shipper.is_deleted.is_(False))
    return query.first()


def set_product_stock(product_id: int, new_stock: int) -> Product:
    """Overwrite a product's stock (flush only)."""
    product = get_product(product_id, lock=True)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    product.stock = new_stock
    db.session.flush()
    return product


def adjust_product_stock(product_id: int, delta: int, *, allow_negative: bool = False) -> StockMovement | None:
    """
    Apply a stock delta to one product (flush only).

    Returns None when the product is unknown or soft-deleted; such items
    contribute nothing to stock math.
    """
    if delta == 0:
        return None

    product = get_product(product_id, lock=True)
    if product is None:
        current_app.logger.warning(
            "Skipping stock adjustment %+d for unknown product %s", delta, product_id
        )
        return None

    before = int(product.stock or 0)
    after = before + delta
    if after < 0 and not allow_negative:
        raise InsufficientStockError(product_id, before, delta)

    set_product_stock(product_id, after)
    return StockMovement(product_id=product_id, delta=delta, stock_before=before, stock_after=after)


def load_products(product_ids) -> dict[int, Product]:
    """Live (non-deleted) products keyed by id; missing ids are simply absent."""
    ids = {pid for pid in product_ids if pid is not None}
    if not ids:
        return {}
    rows = db.session.query(Product).filter(
        Product.id.in_(ids),
        Product.is_deleted.is_(False),
    ).all()
    return {p.id: p for p in rows}


def load_shippers(shipper_ids) -> dict[int, Shipper]:
    ids = {sid for sid in shipper_ids if sid is not None}
    if not ids:
        return {}
    rows = db.session.query(Shipper).filter(
        Shipper.id.in_(ids),
        Shipper.is_deleted.is_(False),
    ).all()
    return {s.id: s for s in rows}


# =============================================================================
# PRODUCT CRUD
# =============================================================================

def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(
    *,
    search: str | None = None,
    include_deleted: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Product)
    if not include_deleted:
        query = query.filter(Product.is_deleted.is_(False))
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))
    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page=page, per_page=per_page)


def get_product_or_404(product_id: int) -> Product:
    product = get_product(product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def create_product(*, patch: dict) -> dict:
    """Create product using a validated patch dict."""
    def _op():
        product = Product(stock=0, purchase_price_cents=0, sell_price_cents=0)
        apply_product_patch(product, patch)
        db.session.add(product)
        db.session.commit()
        return product.to_dict()

    return run_in_transaction(_op)


def update_product(*, product_id: int, patch: dict) -> dict:
    """
    Update a product. A `stock` value here is a manual inventory correction;
    it replaces the count outright.
    """
    def _op():
        product = get_product(product_id, lock=True)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        apply_product_patch(product, patch)
        db.session.commit()
        return product.to_dict()

    return run_in_transaction(_op)


def delete_product(*, product_id: int) -> bool:
    """Soft delete; existing orders keep the reference."""
    def _op():
        product = get_product(product_id, lock=True)
        if product is None:
            return False
        product.is_deleted = True
        db.session.commit()
        return True

    return run_in_transaction(_op)


# =============================================================================
# SHIPPER CRUD
# =============================================================================

def _parse_rates(raw_rates) -> list[ShipperRate]:
    """
    Validate a rate table payload: [{governorate, price_cents, discount_cents?}].

    Governorates are matched exactly (case-sensitive) by pricing, so they are
    only stripped here; duplicates are rejected.
    """
    if raw_rates is None:
        return []
    if not isinstance(raw_rates, list):
        raise ValidationError("rates must be a list")

    rates: list[ShipperRate] = []
    seen: set[str] = set()
    for raw in raw_rates:
        if not isinstance(raw, dict):
            raise ValidationError("each rate must be an object")
        governorate = str(raw.get("governorate") or "").strip()
        if not governorate:
            raise ValidationError("rate governorate cannot be blank")
        if governorate in seen:
            raise ValidationError(f"duplicate rate for governorate {governorate!r}")
        seen.add(governorate)

        price = raw.get("price_cents", 0)
        discount = raw.get("discount_cents")
        for key, value in (("price_cents", price), ("discount_cents", discount)):
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValidationError(f"{key} must be an integer")
        enforce_money_fields({"price_cents": price, "discount_cents": discount}, ("price_cents", "discount_cents"))

        rates.append(ShipperRate(governorate=governorate, price_cents=price, discount_cents=discount))
    return rates


def list_shippers(*, include_deleted: bool = False, page: int | None = None, per_page: int | None = None) -> dict:
    query = db.session.query(Shipper)
    if not include_deleted:
        query = query.filter(Shipper.is_deleted.is_(False))
    query = query.order_by(Shipper.name.asc(), Shipper.id.asc())
    return paginate(query, page=page, per_page=per_page)


def get_shipper_or_404(shipper_id: int) -> Shipper:
    shipper = get_shipper(shipper_id)
    if shipper is None:
        raise NotFoundError(f"Shipper {shipper_id} not found")
    return shipper


def create_shipper(*, patch: dict, rates=None) -> dict:
    parsed_rates = _parse_rates(rates)

    def _op():
        shipper = Shipper()
        for k, v in patch.items():
            if k in SHIPPER_MUTABLE_FIELDS:
                setattr(shipper, k, v)
        shipper.rates = list(parsed_rates)
        db.session.add(shipper)
        db.session.commit()
        return shipper.to_dict()

    return run_in_transaction(_op)


def update_shipper(*, shipper_id: int, patch: dict, rates=None) -> dict:
    """Update a shipper; when rates is given the whole rate table is replaced."""
    parsed_rates = _parse_rates(rates) if rates is not None else None

    def _op():
        shipper = get_shipper(shipper_id)
        if shipper is None:
            raise NotFoundError(f"Shipper {shipper_id} not found")
        for k, v in patch.items():
            if k in SHIPPER_MUTABLE_FIELDS:
                setattr(shipper, k, v)
        if parsed_rates is not None:
            shipper.rates.clear()
            db.session.flush()
            shipper.rates.extend(parsed_rates)
        db.session.commit()
        return shipper.to_dict()

    return run_in_transaction(_op)


def delete_shipper(*, shipper_id: int) -> bool:
    def _op():
        shipper = get_shipper(shipper_id)
        if shipper is None:
            return False
        shipper.is_deleted = True
        db.session.commit()
        return True

    return run_in_transaction(_op)
