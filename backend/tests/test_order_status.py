# Overview: Pytest coverage for the pure order-status transition table and planner.

"""
Order Status State Machine Tests

Covers:
- Every (from, to) status pair has an entry in the transition table
- Stock conservation: each planned delta equals held_before - held_after
- Return-bearing transitions refuse to plan without return detail
- Return detail validation
- Status normalization (codes, case, legacy labels)
"""

from types import SimpleNamespace

import pytest

from app.services.order_status import (
    CANCELED,
    CLASS_FULL,
    CLASS_OPEN,
    CLASS_PARTIAL,
    CLASS_VOID,
    DELIVERED,
    ORDER_STATUSES,
    PARTIALLY_DELIVERED,
    REJECTED,
    SHIPPED,
    STATUS_LABELS_AR,
    TRANSITION_TABLE,
    UNDER_REVIEW,
    ReturnDetail,
    ReturnDetailRequired,
    default_return_detail,
    effect_for,
    held_quantity,
    normalize_status,
    plan_transition,
)
from app.validation import ValidationError


def _items_for(status):
    """Two lines whose return bookkeeping is consistent with `status`."""
    returned = 1 if status == PARTIALLY_DELIVERED else None
    return [
        SimpleNamespace(product_id=1, quantity=3, returned_quantity=returned),
        SimpleNamespace(product_id=2, quantity=2, returned_quantity=0 if returned is not None else None),
    ]


DETAIL = ReturnDetail(return_cost_cents=1500, returned_quantities={1: 2, 2: 0})

ALL_PAIRS = [(a, b) for a in ORDER_STATUSES for b in ORDER_STATUSES]


class TestTransitionTable:
    def test_table_covers_every_class_pair(self):
        classes = [CLASS_OPEN, CLASS_VOID, CLASS_FULL, CLASS_PARTIAL]
        assert set(TRANSITION_TABLE) == {(a, b) for a in classes for b in classes}

    def test_same_class_moves_touch_nothing(self):
        for a, b in [(SHIPPED, DELIVERED), (CANCELED, REJECTED), (DELIVERED, SHIPPED)]:
            plan = plan_transition(_items_for(a), a, b)
            assert plan.stock_deltas == {}
            assert plan.order_updates == {}

    @pytest.mark.parametrize("from_status,to_status", [
        (SHIPPED, CANCELED),
        (SHIPPED, REJECTED),
        (DELIVERED, CANCELED),
        (SHIPPED, PARTIALLY_DELIVERED),
        (UNDER_REVIEW, PARTIALLY_DELIVERED),
        (CANCELED, PARTIALLY_DELIVERED),
        (PARTIALLY_DELIVERED, REJECTED),
    ])
    def test_return_bearing_transitions_require_detail(self, from_status, to_status):
        assert effect_for(from_status, to_status).requires_return_detail
        with pytest.raises(ReturnDetailRequired) as exc:
            plan_transition(_items_for(from_status), from_status, to_status)
        assert exc.value.from_status == from_status
        assert exc.value.to_status == to_status

    @pytest.mark.parametrize("from_status,to_status", [
        (UNDER_REVIEW, SHIPPED),
        (UNDER_REVIEW, CANCELED),
        (SHIPPED, UNDER_REVIEW),
        (PARTIALLY_DELIVERED, DELIVERED),
        (PARTIALLY_DELIVERED, UNDER_REVIEW),
        (CANCELED, SHIPPED),
    ])
    def test_other_transitions_plan_without_detail(self, from_status, to_status):
        assert not effect_for(from_status, to_status).requires_return_detail
        plan_transition(_items_for(from_status), from_status, to_status)


class TestStockConservation:
    @pytest.mark.parametrize("from_status,to_status", ALL_PAIRS)
    def test_delta_equals_change_in_held_quantity(self, from_status, to_status):
        items = _items_for(from_status)
        detail = DETAIL if effect_for(from_status, to_status).requires_return_detail else None
        plan = plan_transition(items, from_status, to_status, detail)

        by_product = {p.product_id: p for p in plan.items}
        for item in items:
            if from_status == to_status:
                assert plan.stock_deltas.get(item.product_id, 0) == 0
                continue
            after = by_product[item.product_id]
            expected = held_quantity(item, from_status) - held_quantity(after, to_status)
            assert after.stock_delta == expected

    def test_ship_deducts_full_quantities(self):
        plan = plan_transition(_items_for(UNDER_REVIEW), UNDER_REVIEW, SHIPPED)
        assert plan.stock_deltas == {1: -3, 2: -2}
        assert plan.effect.stamps_ship_date

    def test_deliver_from_review_deducts_like_ship(self):
        plan = plan_transition(_items_for(UNDER_REVIEW), UNDER_REVIEW, DELIVERED)
        assert plan.stock_deltas == {1: -3, 2: -2}

    def test_cancel_after_ship_refunds_everything_and_books_full_return(self):
        plan = plan_transition(_items_for(SHIPPED), SHIPPED, CANCELED, DETAIL)
        assert plan.stock_deltas == {1: 3, 2: 2}
        assert plan.order_updates == {
            "return_cost_cents": 1500,
            "returned_quantity": 5,
            "delivered_quantity": 0,
        }
        assert [p.returned_quantity for p in plan.items] == [3, 2]

    def test_partial_after_ship_refunds_returned_units(self):
        plan = plan_transition(_items_for(SHIPPED), SHIPPED, PARTIALLY_DELIVERED, DETAIL)
        assert plan.stock_deltas == {1: 2}
        assert plan.order_updates == {
            "return_cost_cents": 1500,
            "returned_quantity": 2,
            "delivered_quantity": 3,
        }

    def test_reship_after_partial_rededucts_returned_units_and_clears(self):
        plan = plan_transition(_items_for(PARTIALLY_DELIVERED), PARTIALLY_DELIVERED, SHIPPED)
        assert plan.stock_deltas == {1: -1}
        assert plan.order_updates["return_cost_cents"] is None
        assert all(p.returned_quantity is None for p in plan.items)
        assert not plan.effect.stamps_ship_date

    def test_partial_to_review_refunds_outstanding(self):
        plan = plan_transition(_items_for(PARTIALLY_DELIVERED), PARTIALLY_DELIVERED, UNDER_REVIEW)
        assert plan.stock_deltas == {1: 2, 2: 2}

    def test_review_to_cancel_moves_nothing(self):
        plan = plan_transition(_items_for(UNDER_REVIEW), UNDER_REVIEW, CANCELED)
        assert plan.stock_deltas == {}

    def test_same_status_is_noop(self):
        plan = plan_transition(_items_for(SHIPPED), SHIPPED, SHIPPED)
        assert plan.is_noop
        assert plan.stock_deltas == {}


class TestReturnDetail:
    def test_rejects_quantity_above_ordered(self):
        detail = ReturnDetail(return_cost_cents=0, returned_quantities={1: 4})
        with pytest.raises(ValidationError):
            plan_transition(_items_for(SHIPPED), SHIPPED, PARTIALLY_DELIVERED, detail)

    def test_rejects_product_not_in_order(self):
        detail = ReturnDetail(return_cost_cents=0, returned_quantities={99: 1})
        with pytest.raises(ValidationError):
            plan_transition(_items_for(SHIPPED), SHIPPED, CANCELED, detail)

    def test_rejects_negative_cost(self):
        detail = ReturnDetail(return_cost_cents=-1, returned_quantities={})
        with pytest.raises(ValidationError):
            plan_transition(_items_for(SHIPPED), SHIPPED, CANCELED, detail)

    def test_default_prefill_for_cancel_returns_everything(self):
        prefill = default_return_detail(_items_for(SHIPPED), CANCELED, return_cost_cents=1500)
        assert prefill.return_cost_cents == 1500
        assert dict(prefill.returned_quantities) == {1: 3, 2: 2}

    def test_default_prefill_for_partial_returns_nothing(self):
        prefill = default_return_detail(_items_for(SHIPPED), PARTIALLY_DELIVERED)
        assert dict(prefill.returned_quantities) == {1: 0, 2: 0}

    def test_from_payload(self):
        detail = ReturnDetail.from_payload({
            "return_cost_cents": 1500,
            "items": [{"product_id": 1, "returned_quantity": 2}],
        })
        assert detail.return_cost_cents == 1500
        assert dict(detail.returned_quantities) == {1: 2}

    def test_from_payload_rejects_non_integer_cost(self):
        with pytest.raises(ValidationError):
            ReturnDetail.from_payload({"return_cost_cents": 15.5})


class TestNormalizeStatus:
    def test_accepts_codes_in_any_case(self):
        assert normalize_status("shipped") == SHIPPED
        assert normalize_status(" Delivered ") == DELIVERED

    def test_accepts_legacy_labels(self):
        for code, label in STATUS_LABELS_AR.items():
            assert normalize_status(label) == code

    @pytest.mark.parametrize("value", ["LOST", "", None, 3])
    def test_rejects_unknown(self, value):
        with pytest.raises(ValidationError):
            normalize_status(value)
