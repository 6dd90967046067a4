# Overview: Pytest coverage for the profit/loss aggregator.

from datetime import date, datetime
from types import SimpleNamespace

from app.models import Expense
from app.services import financial_service, order_service
from app.services.financial_service import summarize_financials
from app.services.order_status import (
    CANCELED,
    DELIVERED,
    PARTIALLY_DELIVERED,
    ReturnDetail,
    SHIPPED,
    UNDER_REVIEW,
)


TODAY = date(2026, 3, 10)


def _order(status, total, shipping, items, return_cost=None, day=TODAY, deleted=False):
    return SimpleNamespace(
        status=status,
        total_price_cents=total,
        shipping_cost_cents=shipping,
        return_cost_cents=return_cost,
        date=datetime(day.year, day.month, day.day, 12, 0),
        is_deleted=deleted,
        items=[SimpleNamespace(product_id=pid, quantity=q, returned_quantity=r) for pid, q, r in items],
    )


def _expense(category, amount, deleted=False):
    return SimpleNamespace(category=category, amount_cents=amount, is_deleted=deleted)


PRODUCTS = {
    1: SimpleNamespace(purchase_price_cents=6000, sell_price_cents=10000),
}


class TestSummarizeFinancials:
    def test_profit_formula(self):
        orders = [
            _order(DELIVERED, 34000, 5000, [(1, 3, None)]),
            _order(PARTIALLY_DELIVERED, 14000, 5000, [(1, 3, 2)], return_cost=1500),
            _order(CANCELED, 0, 5000, [(1, 2, 2)], return_cost=1500, day=date(2026, 3, 1)),
            _order(SHIPPED, 24000, 5000, [(1, 2, None)]),
        ]
        expenses = [_expense("Ads", 2000), _expense("Packaging", 500)]

        s = summarize_financials(orders, PRODUCTS, expenses, today=TODAY)

        assert s.revenue_cents == 48000
        # 3 delivered units + (3 - 2) partially delivered unit
        assert s.cogs_cents == 4 * 6000
        assert s.return_fees_cents == 3000
        assert s.shipping_paid_cents == 10000
        assert s.general_expenses_cents == 2500
        assert s.gross_profit_cents == 48000 - 24000
        assert s.net_profit_cents == 24000 - 3000 - 10000 - 2500

    def test_product_stats_and_today(self):
        orders = [
            _order(DELIVERED, 34000, 5000, [(1, 3, None)]),
            _order(DELIVERED, 10000, 0, [(1, 1, None)], day=date(2026, 3, 9)),
            _order(UNDER_REVIEW, 10000, 0, [(1, 1, None)]),
        ]

        s = summarize_financials(orders, PRODUCTS, [], today=TODAY)

        assert s.units_sold == 4
        assert s.product_sales_cents == 40000
        assert s.product_profit_cents == 16000
        assert s.orders_today == 2
        assert s.sales_today_cents == 34000
        assert s.status_counts[DELIVERED] == 2
        assert s.status_counts[UNDER_REVIEW] == 1
        assert s.status_counts[CANCELED] == 0

    def test_return_shipping_expenses_not_double_counted(self):
        expenses = [
            _expense("Return shipping", 1500),
            _expense("مرتجع شحن", 1500),
            _expense("Ads", 1000),
            _expense("Ads", 9999, deleted=True),
        ]

        s = summarize_financials([], PRODUCTS, expenses, today=TODAY)

        assert s.general_expenses_cents == 1000

    def test_deleted_orders_and_missing_products_ignored(self):
        orders = [
            _order(DELIVERED, 34000, 5000, [(1, 3, None)], deleted=True),
            _order(DELIVERED, 5000, 0, [(404, 1, None)]),
        ]

        s = summarize_financials(orders, PRODUCTS, [], today=TODAY)

        assert s.revenue_cents == 5000
        assert s.cogs_cents == 0


class TestGetFinancialSummary:
    def test_summary_from_database(self, db_session, product, shipper, make_order):
        delivered = make_order([(product, 2)], shipper=shipper)
        canceled = make_order([(product, 1)], shipper=shipper)
        order_service.transition_order(delivered.id, DELIVERED)
        order_service.transition_order(canceled.id, SHIPPED)
        order_service.transition_order(
            canceled.id, CANCELED,
            return_detail=ReturnDetail(return_cost_cents=1500, returned_quantities={product.id: 1}),
        )
        db_session.add(Expense(category="Ads", amount_cents=1000))
        db_session.commit()

        result = financial_service.get_financial_summary()

        assert result["revenue_cents"] == 20000 + 4000
        assert result["cogs_cents"] == 12000
        assert result["return_fees_cents"] == 1500
        assert result["shipping_paid_cents"] == 5000
        assert result["general_expenses_cents"] == 1000
        assert result["net_profit_cents"] == 24000 - 12000 - 1500 - 5000 - 1000
        assert result["returned_or_canceled"] == 1
