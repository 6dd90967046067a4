# Overview: Pytest coverage for order total computation.

from types import SimpleNamespace

from app.services.order_service import preview_totals
from app.services.pricing_service import compute_totals, find_rate


def _shipper():
    return SimpleNamespace(
        id=7,
        rates=[
            SimpleNamespace(governorate="Cairo", price_cents=5000, discount_cents=1000),
            SimpleNamespace(governorate="Giza", price_cents=6000, discount_cents=None),
        ],
    )


def _order(items, governorate="Cairo", shipper_id=7, discount_cents=0):
    return SimpleNamespace(
        items=[SimpleNamespace(product_id=pid, quantity=qty) for pid, qty in items],
        governorate=governorate,
        shipper_id=shipper_id,
        discount_cents=discount_cents,
    )


PRODUCTS = {
    1: SimpleNamespace(sell_price_cents=10000),
    2: SimpleNamespace(sell_price_cents=2550),
}


class TestComputeTotals:
    def test_products_plus_net_shipping_minus_discount(self):
        totals = compute_totals(_order([(1, 2), (2, 1)], discount_cents=500), PRODUCTS, {7: _shipper()})

        assert totals.product_total_cents == 22550
        assert totals.shipping_cost_cents == 5000
        assert totals.shipping_discount_cents == 1000
        assert totals.total_price_cents == 22550 + 4000 - 500

    def test_missing_discount_treated_as_zero(self):
        totals = compute_totals(_order([(1, 1)], governorate="Giza"), PRODUCTS, {7: _shipper()})
        assert totals.total_price_cents == 16000

    def test_unknown_product_contributes_zero(self):
        totals = compute_totals(_order([(1, 1), (404, 5)]), PRODUCTS, {7: _shipper()})
        assert totals.product_total_cents == 10000

    def test_no_shipper_means_no_shipping(self):
        totals = compute_totals(_order([(1, 1)], shipper_id=None), PRODUCTS, {})
        assert totals.shipping_cost_cents == 0
        assert totals.total_price_cents == 10000

    def test_governorate_match_is_exact(self):
        assert find_rate(_shipper(), "cairo") is None
        assert find_rate(_shipper(), "Cairo ") is None
        assert find_rate(_shipper(), "Cairo").price_cents == 5000

    def test_recomputation_is_deterministic(self):
        order = _order([(1, 2), (2, 3)], governorate="Giza", discount_cents=250)

        first = compute_totals(order, PRODUCTS, {7: _shipper()})
        second = compute_totals(order, PRODUCTS, {7: _shipper()})

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_unknown_governorate_means_no_shipping(self):
        totals = compute_totals(_order([(1, 1)], governorate="Aswan"), PRODUCTS, {7: _shipper()})
        assert totals.shipping_cost_cents == 0


class TestPreviewTotals:
    def test_preview_uses_catalog_rows(self, db_session, product, shipper):
        totals = preview_totals(
            fields={"shipper_id": shipper.id, "governorate": "Cairo", "discount_cents": 0},
            items=[{"product_id": product.id, "quantity": 2}],
        )

        assert totals.to_dict() == {
            "product_total_cents": 20000,
            "shipping_cost_cents": 5000,
            "shipping_discount_cents": 1000,
            "total_price_cents": 24000,
        }
