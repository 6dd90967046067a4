# Overview: Service-layer operations for orders; status transitions with stock side effects, CRUD and totals.

"""
Order Engine

WHY: An order's status decides how much of its items is held out of stock.
Every status change and every item edit on a shipped order therefore has to
move stock, and must do so exactly once.

DESIGN PRINCIPLES:
- Status is never written directly; transition_order is the only writer.
- What a transition does is decided by the pure table in order_status;
  this module only loads rows, applies the plan and commits.
- Stock mutations are applied first (sequentially, products in id order,
  each read fresh under a row lock), then the order fields and status
  history, then one commit. Any failure rolls the whole unit back, so the
  stored status never disagrees with stock.
- Creating an order never touches stock.
- Return-bearing transitions need a ReturnDetail. It is passed in, or
  obtained from an injected prompt capability; without either the engine
  raises ReturnDetailRequired and changes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Order, OrderItem, OrderStatusHistory
from ..validation import ModelValidationPolicy, NotFoundError, ValidationError, parse_datetime_param
from app.time_utils import utcnow
from .catalog_service import StockMovement, adjust_product_stock, get_shipper, load_products, load_shippers
from .concurrency import lock_for_update, run_in_transaction
from .order_status import (
    CANCELED,
    CLASS_FULL,
    CLASS_PARTIAL,
    CLASS_VOID,
    PARTIALLY_DELIVERED,
    REJECTED,
    UNDER_REVIEW,
    ReturnDetail,
    ReturnDetailRequired,
    TransitionPlan,
    default_return_detail,
    effect_for,
    held_quantity,
    is_deducted,
    normalize_status,
    plan_transition,
    status_class,
)
from .pagination import paginate
from .pricing_service import OrderTotals, compute_totals


ORDER_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_name", "phone", "alt_phone", "governorate", "address",
        "shipper_id", "discount_cents", "date", "delivery_days", "notes",
    },
    required_on_create={"customer_name", "phone"},
)

# Capability that asks the operator for return detail. Receives the order,
# the target status and a prefilled suggestion; returns None when canceled.
ReturnDetailPrompt = Callable[[Order, str, ReturnDetail], Optional[ReturnDetail]]

RETURN_STATUSES = (CANCELED, REJECTED, PARTIALLY_DELIVERED)


@dataclass
class TransitionResult:
    order: Order
    stock_movements: list[StockMovement] = field(default_factory=list)
    applied: bool = False

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(),
            "stock_movements": [m.to_dict() for m in self.stock_movements],
            "applied": self.applied,
        }


# =============================================================================
# PAYLOAD NORMALIZATION
# =============================================================================

def split_order_payload(payload: dict) -> tuple[dict, list[dict] | None, str | None]:
    """
    Separate column fields from items and status.

    Legacy single-item orders ({"product_id", "quantity"} instead of "items")
    are converted to a one-line items list here, so nothing past this point
    ever sees the old shape.

    Returns:
        (fields, items or None when not provided, status or None)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    fields = dict(payload)
    items = fields.pop("items", None)
    legacy_product_id = fields.pop("product_id", None)
    legacy_quantity = fields.pop("quantity", None)
    status = fields.pop("status", None)

    if items is None and legacy_product_id is not None:
        items = [{"product_id": legacy_product_id, "quantity": legacy_quantity}]

    return fields, (normalize_items(items) if items is not None else None), status


def normalize_items(raw_items) -> list[dict]:
    """
    Validate items and merge duplicate product lines.

    Each item: product_id (int), quantity (int > 0), returned_quantity
    (optional, 0..quantity).
    """
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    if not raw_items:
        raise ValidationError("order must have at least one item")

    merged: dict[int, dict] = {}
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValidationError("each item must be an object")
        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        returned = raw.get("returned_quantity")

        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError("item product_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("item quantity must be a positive integer")
        if returned is not None:
            if isinstance(returned, bool) or not isinstance(returned, int):
                raise ValidationError("item returned_quantity must be an integer")
            if returned < 0 or returned > quantity:
                raise ValidationError("item returned_quantity must be between 0 and quantity")

        line = merged.get(product_id)
        if line is None:
            merged[product_id] = {"product_id": product_id, "quantity": quantity, "returned_quantity": returned}
        else:
            line["quantity"] += quantity
            if returned is not None:
                line["returned_quantity"] = (line["returned_quantity"] or 0) + returned

    return list(merged.values())


def _items_signature(items) -> list[tuple]:
    return sorted(
        (i["product_id"], i["quantity"], i.get("returned_quantity")) if isinstance(i, dict)
        else (i.product_id, i.quantity, i.returned_quantity)
        for i in items
    )


# =============================================================================
# LOOKUPS
# =============================================================================

def get_order(order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter(Order.id == order_id, Order.is_deleted.is_(False))
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def _apply_filters(query, *, status=None, shipper_id=None, search=None, date_from=None, date_to=None):
    if status:
        query = query.filter(Order.status == normalize_status(status))
    if shipper_id is not None:
        query = query.filter(Order.shipper_id == shipper_id)
    if search:
        term = search.strip()
        conditions = [Order.customer_name.ilike(f"%{term}%"), Order.phone.ilike(f"%{term}%")]
        if term.isdigit():
            conditions.append(Order.id == int(term))
        query = query.filter(or_(*conditions))

    start_dt = parse_datetime_param(date_from, "date_from")
    end_dt = parse_datetime_param(date_to, "date_to")
    if start_dt:
        query = query.filter(Order.date >= start_dt)
    if end_dt:
        query = query.filter(Order.date <= end_dt)
    return query


def list_orders(
    *,
    status: str | None = None,
    shipper_id: int | None = None,
    search: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = db.session.query(Order).filter(Order.is_deleted.is_(False))
    query = _apply_filters(
        query, status=status, shipper_id=shipper_id, search=search, date_from=date_from, date_to=date_to,
    )
    query = query.order_by(Order.date.desc(), Order.id.desc())
    return paginate(query, page=page, per_page=per_page)


def list_return_orders(
    *,
    status: str | None = None,
    shipper_id: int | None = None,
    search: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Orders that came back (fully or partly) after stock had left the shelf:
    canceled/rejected/partially delivered orders carrying return bookkeeping.
    """
    if status is not None and normalize_status(status) not in RETURN_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(RETURN_STATUSES)}")

    query = db.session.query(Order).filter(
        Order.is_deleted.is_(False),
        Order.status.in_(RETURN_STATUSES),
        Order.returned_quantity.isnot(None),
    )
    query = _apply_filters(
        query, status=status, shipper_id=shipper_id, search=search, date_from=date_from, date_to=date_to,
    )
    query = query.order_by(Order.date.desc(), Order.id.desc())
    return paginate(query, page=page, per_page=per_page)


# =============================================================================
# TOTALS
# =============================================================================

def _recompute_totals(order: Order) -> OrderTotals:
    products = load_products(i.product_id for i in order.items)
    shippers = load_shippers([order.shipper_id])
    totals = compute_totals(order, products, shippers)
    order.shipping_cost_cents = totals.shipping_cost_cents
    order.total_price_cents = totals.total_price_cents
    return totals


def preview_totals(*, fields: dict, items: list[dict]) -> OrderTotals:
    """Totals for an unsaved form state (nothing is written)."""
    draft = Order(
        shipper_id=fields.get("shipper_id"),
        governorate=fields.get("governorate") or "",
        discount_cents=fields.get("discount_cents") or 0,
        items=[OrderItem(product_id=i["product_id"], quantity=i["quantity"]) for i in items],
    )
    products = load_products(i.product_id for i in draft.items)
    shippers = load_shippers([draft.shipper_id])
    return compute_totals(draft, products, shippers)


# =============================================================================
# CREATE / UPDATE / DELETE
# =============================================================================

def create_order(*, patch: dict, items: list[dict], status: str | None = None) -> Order:
    """
    Create an order. Stock is NOT touched: it is deducted only when the order
    first moves to a deducted status.

    Raises:
        ValidationError: missing items, or an initial status that holds stock
    """
    if not items:
        raise ValidationError("order must have at least one item")

    initial_status = normalize_status(status) if status else UNDER_REVIEW
    if is_deducted(initial_status):
        raise ValidationError(
            f"Orders are created as {UNDER_REVIEW}; move them to {initial_status} with a status transition"
        )

    def _op():
        now = utcnow()
        order = Order(status=initial_status, print_count=0, discount_cents=0)
        for k, v in patch.items():
            if k in ORDER_POLICY.writable_fields:
                setattr(order, k, v)
        if order.date is None:
            order.date = now
        order.items = [
            OrderItem(product_id=i["product_id"], quantity=i["quantity"], returned_quantity=i.get("returned_quantity"))
            for i in items
        ]
        order.status_history = [OrderStatusHistory(status=initial_status, changed_at=now)]
        _recompute_totals(order)
        db.session.add(order)
        db.session.commit()
        return order

    return run_in_transaction(_op)


def _resolve_returned(order: Order, items: list[dict]) -> list[dict]:
    """
    Fill in returned_quantity for submitted item lines.

    A kept product line that omits returned_quantity keeps its recorded
    return, capped at the new quantity. FULL orders carry no returns.
    """
    cls = status_class(order.status)
    recorded = {i.product_id: i.returned_quantity for i in order.items}

    resolved = []
    for i in items:
        returned = i.get("returned_quantity")
        if cls == CLASS_FULL:
            returned = None
        else:
            if returned is None and recorded.get(i["product_id"]) is not None:
                returned = min(recorded[i["product_id"]], i["quantity"])
            if cls == CLASS_PARTIAL and returned is None:
                returned = 0
        resolved.append({**i, "returned_quantity": returned})
    return resolved


def _replace_items(order: Order, items: list[dict], *, allow_negative_stock: bool) -> list[StockMovement]:
    """
    Swap an order's item set (items already passed through _resolve_returned).

    If the order's stock is already deducted, the old held quantities are
    refunded first and the new ones deducted afterwards, inside the caller's
    transaction, so stock is never double-counted or left uncounted.
    """
    movements: list[StockMovement] = []
    cls = status_class(order.status)

    new_items = [
        OrderItem(product_id=i["product_id"], quantity=i["quantity"], returned_quantity=i["returned_quantity"])
        for i in items
    ]

    if is_deducted(order.status):
        for item in sorted(order.items, key=lambda i: i.product_id):
            m = adjust_product_stock(item.product_id, held_quantity(item, order.status))
            if m:
                movements.append(m)
        for item in sorted(new_items, key=lambda i: i.product_id):
            m = adjust_product_stock(
                item.product_id, -held_quantity(item, order.status), allow_negative=allow_negative_stock,
            )
            if m:
                movements.append(m)

    order.items.clear()
    db.session.flush()
    order.items.extend(new_items)

    if cls == CLASS_PARTIAL:
        returned_total = sum(i.returned_quantity or 0 for i in new_items)
        order.returned_quantity = returned_total
        order.delivered_quantity = sum(i.quantity for i in new_items) - returned_total
    elif cls == CLASS_VOID and order.returned_quantity is not None:
        order.returned_quantity = sum(i.returned_quantity or 0 for i in new_items)

    return movements


def update_order(
    *,
    order_id: int,
    patch: dict,
    items: list[dict] | None = None,
    status: str | None = None,
    return_detail: ReturnDetail | None = None,
    prompt: ReturnDetailPrompt | None = None,
    allow_negative_stock: bool = False,
) -> TransitionResult:
    """
    Save edits to an order, then apply a status change if one was requested.

    Field/item edits and their stock adjustments commit as one unit; the
    status change is then a separate transition (it may need return detail).
    Totals are recomputed on every save.
    """
    def _op():
        order = get_order(order_id, lock=True)
        movements: list[StockMovement] = []

        for k, v in patch.items():
            if k in ORDER_POLICY.writable_fields:
                setattr(order, k, v)

        if items is not None:
            resolved = _resolve_returned(order, items)
            if _items_signature(resolved) != _items_signature(order.items):
                movements = _replace_items(order, resolved, allow_negative_stock=allow_negative_stock)

        _recompute_totals(order)
        db.session.commit()
        return order, movements

    order, movements = run_in_transaction(_op)
    if movements:
        current_app.logger.info(
            "Order %s items edited while %s; stock moved: %s",
            order.id, order.status, ", ".join(f"{m.product_id}:{m.delta:+d}" for m in movements),
        )

    result = TransitionResult(order=order, stock_movements=movements, applied=bool(movements))
    if status is not None and normalize_status(status) != order.status:
        transition = transition_order(
            order_id,
            status,
            return_detail=return_detail,
            prompt=prompt,
            allow_negative_stock=allow_negative_stock,
        )
        result = TransitionResult(
            order=transition.order,
            stock_movements=movements + transition.stock_movements,
            applied=transition.applied or result.applied,
        )
    return result


def delete_order(*, order_id: int) -> bool:
    """Soft delete. Stock is left as it is."""
    def _op():
        try:
            order = get_order(order_id, lock=True)
        except NotFoundError:
            return False
        order.is_deleted = True
        db.session.commit()
        return True

    return run_in_transaction(_op)


def mark_printed(*, order_ids: list[int]) -> list[Order]:
    """Increment print_count once per order (label/invoice printing)."""
    if not order_ids:
        raise ValidationError("order_ids required")

    def _op():
        orders = [get_order(oid, lock=True) for oid in dict.fromkeys(order_ids)]
        for order in orders:
            order.print_count = (order.print_count or 0) + 1
        db.session.commit()
        return orders

    return run_in_transaction(_op)


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

def return_detail_prefill(order: Order, to_status: str) -> ReturnDetail:
    """Suggested return detail, with the shipper's usual return fee as the cost."""
    shipper = get_shipper(order.shipper_id)
    cost = int(shipper.return_cost_cents or 0) if shipper is not None else 0
    return default_return_detail(order.items, to_status, return_cost_cents=cost)


def _record_transition(order: Order, plan: TransitionPlan) -> None:
    now = utcnow()
    by_product = {p.product_id: p for p in plan.items}
    for item in order.items:
        item_plan = by_product.get(item.product_id)
        if item_plan is not None:
            item.returned_quantity = item_plan.returned_quantity

    for key, value in plan.order_updates.items():
        setattr(order, key, value)

    if plan.effect.stamps_ship_date:
        order.ship_date = now

    order.status = plan.to_status
    order.status_history.append(OrderStatusHistory(status=plan.to_status, changed_at=now))


def transition_order(
    order_id: int,
    new_status: str,
    *,
    return_detail: ReturnDetail | None = None,
    prompt: ReturnDetailPrompt | None = None,
    allow_negative_stock: bool = False,
) -> TransitionResult:
    """
    Move an order to `new_status`, applying the stock side effects.

    Args:
        order_id: order to move
        new_status: target status code (legacy labels accepted)
        return_detail: operator return breakdown for return-bearing transitions
        prompt: capability asked for the breakdown when return_detail is None
        allow_negative_stock: explicit override for deductions beyond on-hand stock

    Returns:
        TransitionResult; applied=False for a same-status no-op or when the
        prompt was canceled (status unchanged in both cases)

    Raises:
        ReturnDetailRequired: detail needed, none given and no prompt
        ValidationError: invalid status or return detail (nothing mutated)
        InsufficientStockError: a deduction would make stock negative
        PersistenceError: a write failed; prior status retained
    """
    new_status = normalize_status(new_status)
    order = get_order(order_id)

    if order.status == new_status:
        return TransitionResult(order=order, applied=False)

    if effect_for(order.status, new_status).requires_return_detail and return_detail is None:
        prefill = return_detail_prefill(order, new_status)
        if prompt is None:
            raise ReturnDetailRequired(order.status, new_status, prefill)
        return_detail = prompt(order, new_status, prefill)
        if return_detail is None:
            current_app.logger.info(
                "Return detail prompt canceled; order %s stays %s", order.id, order.status,
            )
            return TransitionResult(order=order, applied=False)

    def _op():
        locked = get_order(order_id, lock=True)
        if locked.status == new_status:
            return locked, None, []

        plan = plan_transition(locked.items, locked.status, new_status, return_detail)

        movements: list[StockMovement] = []
        for product_id, delta in sorted(plan.stock_deltas.items()):
            m = adjust_product_stock(product_id, delta, allow_negative=allow_negative_stock)
            if m:
                movements.append(m)

        _record_transition(locked, plan)
        db.session.commit()
        return locked, plan, movements

    order, plan, movements = run_in_transaction(_op)
    if plan is None:
        return TransitionResult(order=order, applied=False)

    current_app.logger.info(
        "Order %s moved %s -> %s; stock moved: %s",
        order.id, plan.from_status, plan.to_status,
        ", ".join(f"{m.product_id}:{m.delta:+d}" for m in movements) or "none",
    )
    return TransitionResult(order=order, stock_movements=movements, applied=True)

