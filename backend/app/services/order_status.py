# Overview: Pure order-status state machine; classifies statuses and plans transition side effects.

"""
Order Status State Machine

================================================================================
PURPOSE: Decide, without touching the database, what a status change does to
stock and to the order's return bookkeeping.
================================================================================

STATUSES (closed set):
    UNDER_REVIEW (initial), SHIPPED, DELIVERED, PARTIALLY_DELIVERED,
    CANCELED, REJECTED

Every ordered pair is allowed (operators pick any status from a selector), so
instead of a chain of pair checks the statuses are grouped into four classes
and the side effects are looked up in TRANSITION_TABLE by
(source class, target class):

    OPEN     UNDER_REVIEW               nothing held in stock
    VOID     CANCELED, REJECTED         nothing held in stock
    FULL     SHIPPED, DELIVERED         full item quantities deducted
    PARTIAL  PARTIALLY_DELIVERED        quantity - returned_quantity deducted

STOCK RULES:
- Stock is deducted only when the order enters a deducted class (FULL or
  PARTIAL) from a non-deducted one; never at creation.
- Stock is refunded in proportion to what is actually held when leaving a
  deducted class.
- Every planned delta equals held_before - held_after per item, so cycling
  an order back to a non-deducted class always restores the original stock.

RETURN DETAIL:
Entering VOID or PARTIAL from a deducted class, or PARTIAL from anywhere,
needs the operator's return breakdown (per-item returned quantity + carrier
return fee). Planning without it raises ReturnDetailRequired; no default is
ever applied silently.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..validation import ValidationError


# =============================================================================
# STATUS CONSTANTS
# =============================================================================

UNDER_REVIEW = "UNDER_REVIEW"
SHIPPED = "SHIPPED"
DELIVERED = "DELIVERED"
PARTIALLY_DELIVERED = "PARTIALLY_DELIVERED"
CANCELED = "CANCELED"
REJECTED = "REJECTED"

ORDER_STATUSES = (UNDER_REVIEW, SHIPPED, DELIVERED, PARTIALLY_DELIVERED, CANCELED, REJECTED)

# Labels used by the original Arabic UI and by legacy exported data
STATUS_LABELS_AR = {
    UNDER_REVIEW: "تحت المراجعة",
    SHIPPED: "تم الشحن",
    DELIVERED: "تم التوصيل",
    PARTIALLY_DELIVERED: "تسليم جزئي",
    CANCELED: "لاغي",
    REJECTED: "مرفوض",
}
_STATUS_BY_LABEL = {label: code for code, label in STATUS_LABELS_AR.items()}

CLASS_OPEN = "OPEN"
CLASS_VOID = "VOID"
CLASS_FULL = "FULL"
CLASS_PARTIAL = "PARTIAL"

STATUS_CLASS = {
    UNDER_REVIEW: CLASS_OPEN,
    CANCELED: CLASS_VOID,
    REJECTED: CLASS_VOID,
    SHIPPED: CLASS_FULL,
    DELIVERED: CLASS_FULL,
    PARTIALLY_DELIVERED: CLASS_PARTIAL,
}

DEDUCTED_CLASSES = frozenset({CLASS_FULL, CLASS_PARTIAL})


def normalize_status(value) -> str:
    """
    Map a status code (any case) or a legacy Arabic label to a status code.

    Raises:
        ValidationError: unknown status
    """
    if isinstance(value, str):
        s = value.strip()
        if s.upper() in ORDER_STATUSES:
            return s.upper()
        if s in _STATUS_BY_LABEL:
            return _STATUS_BY_LABEL[s]
    raise ValidationError(
        f"Invalid status {value!r}. Must be one of: {', '.join(ORDER_STATUSES)}"
    )


def status_class(status: str) -> str:
    return STATUS_CLASS[normalize_status(status)]


def is_deducted(status: str) -> bool:
    """True when stock for the order's items is currently held (removed from inventory)."""
    return status_class(status) in DEDUCTED_CLASSES


def held_quantity(item, status: str) -> int:
    """Units of this item currently deducted from stock while the order is in `status`."""
    cls = status_class(status)
    if cls == CLASS_FULL:
        return int(item.quantity)
    if cls == CLASS_PARTIAL:
        return int(item.quantity) - int(item.returned_quantity or 0)
    return 0


# =============================================================================
# TRANSITION TABLE
# =============================================================================

# Stock movement kinds. Each rule maps
# (quantity, current returned_quantity, new returned_quantity) -> stock delta.
STOCK_NONE = "NONE"
STOCK_DEDUCT_ALL = "DEDUCT_ALL"
STOCK_DEDUCT_DELIVERED = "DEDUCT_DELIVERED"
STOCK_REDEDUCT_RETURNED = "REDEDUCT_RETURNED"
STOCK_REFUND_ALL = "REFUND_ALL"
STOCK_REFUND_RETURNED = "REFUND_RETURNED"
STOCK_REFUND_OUTSTANDING = "REFUND_OUTSTANDING"

STOCK_RULES = {
    STOCK_NONE: lambda qty, cur, new: 0,
    STOCK_DEDUCT_ALL: lambda qty, cur, new: -qty,
    STOCK_DEDUCT_DELIVERED: lambda qty, cur, new: -(qty - new),
    STOCK_REDEDUCT_RETURNED: lambda qty, cur, new: -cur,
    STOCK_REFUND_ALL: lambda qty, cur, new: qty,
    STOCK_REFUND_RETURNED: lambda qty, cur, new: new,
    STOCK_REFUND_OUTSTANDING: lambda qty, cur, new: qty - cur,
}

# Return bookkeeping kinds
BOOK_KEEP = "KEEP"                # leave item/order return fields as they are
BOOK_CLEAR = "CLEAR"              # wipe returned quantities and return cost
BOOK_PARTIAL = "PARTIAL"          # record the operator's per-item breakdown
BOOK_FULL_RETURN = "FULL_RETURN"  # every unit came back


@dataclass(frozen=True)
class TransitionEffect:
    stock: str
    bookkeeping: str
    requires_return_detail: bool = False
    stamps_ship_date: bool = False


RELABEL = TransitionEffect(stock=STOCK_NONE, bookkeeping=BOOK_KEEP)

_SHIP = TransitionEffect(stock=STOCK_DEDUCT_ALL, bookkeeping=BOOK_CLEAR, stamps_ship_date=True)
_DELIVER_PART_FROM_STOCK = TransitionEffect(
    stock=STOCK_DEDUCT_DELIVERED,
    bookkeeping=BOOK_PARTIAL,
    requires_return_detail=True,
    stamps_ship_date=True,
)

TRANSITION_TABLE: dict[tuple[str, str], TransitionEffect] = {
    (CLASS_OPEN, CLASS_OPEN): RELABEL,
    (CLASS_OPEN, CLASS_VOID): RELABEL,
    (CLASS_OPEN, CLASS_FULL): _SHIP,
    (CLASS_OPEN, CLASS_PARTIAL): _DELIVER_PART_FROM_STOCK,

    (CLASS_VOID, CLASS_OPEN): RELABEL,
    (CLASS_VOID, CLASS_VOID): RELABEL,
    (CLASS_VOID, CLASS_FULL): _SHIP,
    (CLASS_VOID, CLASS_PARTIAL): _DELIVER_PART_FROM_STOCK,

    # Un-shipment: goods come back without a carrier return
    (CLASS_FULL, CLASS_OPEN): TransitionEffect(stock=STOCK_REFUND_ALL, bookkeeping=BOOK_CLEAR),
    (CLASS_FULL, CLASS_VOID): TransitionEffect(
        stock=STOCK_REFUND_ALL, bookkeeping=BOOK_FULL_RETURN, requires_return_detail=True,
    ),
    (CLASS_FULL, CLASS_FULL): RELABEL,
    (CLASS_FULL, CLASS_PARTIAL): TransitionEffect(
        stock=STOCK_REFUND_RETURNED, bookkeeping=BOOK_PARTIAL, requires_return_detail=True,
    ),

    (CLASS_PARTIAL, CLASS_OPEN): TransitionEffect(stock=STOCK_REFUND_OUTSTANDING, bookkeeping=BOOK_CLEAR),
    (CLASS_PARTIAL, CLASS_VOID): TransitionEffect(
        stock=STOCK_REFUND_OUTSTANDING, bookkeeping=BOOK_FULL_RETURN, requires_return_detail=True,
    ),
    # Re-shipping the returned goods
    (CLASS_PARTIAL, CLASS_FULL): TransitionEffect(stock=STOCK_REDEDUCT_RETURNED, bookkeeping=BOOK_CLEAR),
    (CLASS_PARTIAL, CLASS_PARTIAL): RELABEL,
}


def effect_for(from_status: str, to_status: str) -> TransitionEffect:
    return TRANSITION_TABLE[(status_class(from_status), status_class(to_status))]


# =============================================================================
# RETURN DETAIL
# =============================================================================

@dataclass(frozen=True)
class ReturnDetail:
    """Operator-supplied return breakdown: carrier fee + returned units per product."""
    return_cost_cents: int
    returned_quantities: Mapping[int, int] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, data) -> "ReturnDetail":
        """
        Parse {"return_cost_cents": int, "items": [{"product_id", "returned_quantity"}]}.
        """
        if not isinstance(data, dict):
            raise ValidationError("return_detail must be an object")

        cost = data.get("return_cost_cents", 0)
        if cost is None:
            cost = 0
        if isinstance(cost, bool) or not isinstance(cost, int):
            raise ValidationError("return_cost_cents must be an integer")

        quantities: dict[int, int] = {}
        for raw in data.get("items") or []:
            if not isinstance(raw, dict):
                raise ValidationError("return_detail items must be objects")
            product_id = raw.get("product_id")
            qty = raw.get("returned_quantity", 0)
            if isinstance(product_id, bool) or not isinstance(product_id, int):
                raise ValidationError("return_detail product_id must be an integer")
            if isinstance(qty, bool) or not isinstance(qty, int):
                raise ValidationError("returned_quantity must be an integer")
            quantities[product_id] = qty

        return cls(return_cost_cents=cost, returned_quantities=quantities)

    def to_dict(self) -> dict:
        return {
            "return_cost_cents": self.return_cost_cents,
            "items": [
                {"product_id": pid, "returned_quantity": qty}
                for pid, qty in self.returned_quantities.items()
            ],
        }


class ReturnDetailRequired(ValidationError):
    """
    The transition needs a return breakdown that was not supplied.

    Nothing was mutated. `prefill` is the suggested detail to show the operator.
    """

    def __init__(self, from_status: str, to_status: str, prefill: ReturnDetail):
        self.from_status = from_status
        self.to_status = to_status
        self.prefill = prefill
        super().__init__(f"Return detail required to move order from {from_status} to {to_status}")


def default_return_detail(items: Iterable, to_status: str, *, return_cost_cents: int = 0) -> ReturnDetail:
    """
    Prefill for the return prompt: everything returned for a cancellation or
    rejection, nothing returned for a partial delivery.
    """
    full = status_class(to_status) == CLASS_VOID
    return ReturnDetail(
        return_cost_cents=return_cost_cents,
        returned_quantities={
            item.product_id: (int(item.quantity) if full else 0) for item in items
        },
    )


def validate_return_detail(items: Iterable, detail: ReturnDetail) -> None:
    """Reject out-of-range or foreign quantities before anything is mutated."""
    if detail.return_cost_cents < 0:
        raise ValidationError("return_cost_cents must be >= 0")

    by_product = {item.product_id: item for item in items}
    for product_id, qty in detail.returned_quantities.items():
        item = by_product.get(product_id)
        if item is None:
            raise ValidationError(f"Product {product_id} is not part of this order")
        if qty < 0 or qty > int(item.quantity):
            raise ValidationError(
                f"returned_quantity for product {product_id} must be between 0 and {item.quantity}"
            )


# =============================================================================
# PLANNING
# =============================================================================

@dataclass(frozen=True)
class ItemPlan:
    product_id: int
    quantity: int
    returned_quantity: int | None
    stock_delta: int


@dataclass(frozen=True)
class TransitionPlan:
    from_status: str
    to_status: str
    effect: TransitionEffect
    items: tuple[ItemPlan, ...] = ()
    # Order-level fields to overwrite; absent keys stay as they are
    order_updates: Mapping[str, object] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return self.from_status == self.to_status

    @property
    def stock_deltas(self) -> dict[int, int]:
        """Non-zero stock delta per product (negative = deduct)."""
        deltas: dict[int, int] = {}
        for item in self.items:
            if item.stock_delta:
                deltas[item.product_id] = deltas.get(item.product_id, 0) + item.stock_delta
        return {pid: d for pid, d in deltas.items() if d}


def plan_transition(items: Iterable, from_status: str, to_status: str, detail: ReturnDetail | None = None) -> TransitionPlan:
    """
    Compute the side effects of moving an order from `from_status` to `to_status`.

    Args:
        items: the order's items (objects with product_id, quantity, returned_quantity)
        detail: operator return breakdown, required when the effect says so

    Returns:
        TransitionPlan with per-item stock deltas and new returned quantities

    Raises:
        ValidationError: unknown status or invalid return detail
        ReturnDetailRequired: detail needed but not supplied
    """
    from_status = normalize_status(from_status)
    to_status = normalize_status(to_status)
    items = list(items)

    if from_status == to_status:
        return TransitionPlan(from_status=from_status, to_status=to_status, effect=RELABEL)

    effect = effect_for(from_status, to_status)

    if effect.requires_return_detail:
        if detail is None:
            raise ReturnDetailRequired(from_status, to_status, default_return_detail(items, to_status))
        validate_return_detail(items, detail)

    stock_rule = STOCK_RULES[effect.stock]
    item_plans = []
    for item in items:
        qty = int(item.quantity)
        current = int(item.returned_quantity or 0)

        if effect.bookkeeping == BOOK_CLEAR:
            new_returned = None
        elif effect.bookkeeping == BOOK_PARTIAL:
            new_returned = int(detail.returned_quantities.get(item.product_id, 0))
        elif effect.bookkeeping == BOOK_FULL_RETURN:
            new_returned = qty
        else:
            new_returned = item.returned_quantity

        item_plans.append(ItemPlan(
            product_id=item.product_id,
            quantity=qty,
            returned_quantity=new_returned,
            stock_delta=stock_rule(qty, current, int(new_returned or 0)),
        ))

    total_qty = sum(p.quantity for p in item_plans)
    if effect.bookkeeping == BOOK_CLEAR:
        order_updates = {"return_cost_cents": None, "delivered_quantity": None, "returned_quantity": None}
    elif effect.bookkeeping == BOOK_PARTIAL:
        returned = sum(p.returned_quantity or 0 for p in item_plans)
        order_updates = {
            "return_cost_cents": detail.return_cost_cents,
            "returned_quantity": returned,
            "delivered_quantity": total_qty - returned,
        }
    elif effect.bookkeeping == BOOK_FULL_RETURN:
        order_updates = {
            "return_cost_cents": detail.return_cost_cents,
            "returned_quantity": total_qty,
            "delivered_quantity": 0,
        }
    else:
        order_updates = {}

    return TransitionPlan(
        from_status=from_status,
        to_status=to_status,
        effect=effect,
        items=tuple(item_plans),
        order_updates=order_updates,
    )
