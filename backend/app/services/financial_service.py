# Overview: Read-only profit/loss aggregation over orders, products and expenses.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Iterable, Mapping

from ..extensions import db
from ..models import Expense, Order
from ..validation import parse_datetime_param
from app.time_utils import utcnow
from .catalog_service import load_products
from .order_status import (
    CANCELED,
    DELIVERED,
    ORDER_STATUSES,
    PARTIALLY_DELIVERED,
    REJECTED,
    SHIPPED,
    UNDER_REVIEW,
)


# Orders whose goods (at least partly) reached the customer
REVENUE_STATUSES = (DELIVERED, PARTIALLY_DELIVERED)

# Expense categories carrying these markers are return-shipping postings from
# older data; return fees are counted from Order.return_cost_cents instead.
RETURN_EXPENSE_MARKERS = ("مرتجع شحن", "return shipping")


@dataclass(frozen=True)
class FinancialSummary:
    revenue_cents: int
    cogs_cents: int
    return_fees_cents: int
    shipping_paid_cents: int
    general_expenses_cents: int
    gross_profit_cents: int
    net_profit_cents: int
    units_sold: int
    product_sales_cents: int
    product_profit_cents: int
    orders_today: int
    sales_today_cents: int
    status_counts: Mapping[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "revenue_cents": self.revenue_cents,
            "cogs_cents": self.cogs_cents,
            "return_fees_cents": self.return_fees_cents,
            "shipping_paid_cents": self.shipping_paid_cents,
            "general_expenses_cents": self.general_expenses_cents,
            "gross_profit_cents": self.gross_profit_cents,
            "net_profit_cents": self.net_profit_cents,
            "units_sold": self.units_sold,
            "product_sales_cents": self.product_sales_cents,
            "product_profit_cents": self.product_profit_cents,
            "orders_today": self.orders_today,
            "sales_today_cents": self.sales_today_cents,
            "status_counts": dict(self.status_counts),
        }


def is_return_expense(category: str | None) -> bool:
    text = (category or "").lower()
    return any(marker in text for marker in RETURN_EXPENSE_MARKERS)


def delivered_units(order, item) -> int:
    """Units that stayed with the customer: partial deliveries exclude returned units."""
    if order.status == PARTIALLY_DELIVERED:
        return int(item.quantity) - int(item.returned_quantity or 0)
    return int(item.quantity)


def summarize_financials(
    orders: Iterable,
    products: Mapping,
    expenses: Iterable,
    *,
    today: date_type | None = None,
) -> FinancialSummary:
    """
    revenue        = sum(total_price) over delivered + partially delivered
    cogs           = sum(purchase_price * delivered units) over the same orders
    return fees    = sum(return_cost) over all orders
    shipping paid  = sum(shipping_cost) over delivered + partially delivered
    general exp.   = sum(expense amounts) excluding return-shipping categories
    gross profit   = revenue - cogs
    net profit     = gross profit - return fees - shipping paid - general exp.

    Deleted rows are ignored; products missing from `products` contribute zero.
    """
    today = today or utcnow().date()

    revenue = cogs = return_fees = shipping_paid = 0
    units_sold = product_sales = product_profit = 0
    orders_today = sales_today = 0
    status_counts = {status: 0 for status in ORDER_STATUSES}

    for order in orders:
        if order.is_deleted:
            continue
        status_counts[order.status] = status_counts.get(order.status, 0) + 1
        return_fees += int(order.return_cost_cents or 0)

        is_today = order.date is not None and order.date.date() == today
        if is_today:
            orders_today += 1

        if order.status not in REVENUE_STATUSES:
            continue

        revenue += int(order.total_price_cents or 0)
        shipping_paid += int(order.shipping_cost_cents or 0)
        if is_today and order.status == DELIVERED:
            sales_today += int(order.total_price_cents or 0)

        for item in order.items:
            product = products.get(item.product_id)
            if product is None:
                continue
            qty = delivered_units(order, item)
            purchase = int(product.purchase_price_cents or 0)
            sell = int(product.sell_price_cents or 0)
            cogs += purchase * qty
            units_sold += qty
            product_sales += sell * qty
            product_profit += (sell - purchase) * qty

    general_expenses = sum(
        int(e.amount_cents or 0)
        for e in expenses
        if not e.is_deleted and not is_return_expense(e.category)
    )

    gross_profit = revenue - cogs
    net_profit = gross_profit - return_fees - shipping_paid - general_expenses

    return FinancialSummary(
        revenue_cents=revenue,
        cogs_cents=cogs,
        return_fees_cents=return_fees,
        shipping_paid_cents=shipping_paid,
        general_expenses_cents=general_expenses,
        gross_profit_cents=gross_profit,
        net_profit_cents=net_profit,
        units_sold=units_sold,
        product_sales_cents=product_sales,
        product_profit_cents=product_profit,
        orders_today=orders_today,
        sales_today_cents=sales_today,
        status_counts=status_counts,
    )


def get_financial_summary(*, date_from: str | None = None, date_to: str | None = None) -> dict:
    """Load live orders/expenses (optionally within a date range) and summarize them."""
    start_dt = parse_datetime_param(date_from, "date_from")
    end_dt = parse_datetime_param(date_to, "date_to")

    order_query = db.session.query(Order).filter(Order.is_deleted.is_(False))
    expense_query = db.session.query(Expense).filter(Expense.is_deleted.is_(False))
    if start_dt:
        order_query = order_query.filter(Order.date >= start_dt)
        expense_query = expense_query.filter(Expense.date >= start_dt)
    if end_dt:
        order_query = order_query.filter(Order.date <= end_dt)
        expense_query = expense_query.filter(Expense.date <= end_dt)

    orders = order_query.all()
    expenses = expense_query.all()
    products = load_products(item.product_id for order in orders for item in order.items)

    summary = summarize_financials(orders, products, expenses)
    result = summary.to_dict()
    result["date_from"] = date_from
    result["date_to"] = date_to
    result["open_orders"] = summary.status_counts.get(UNDER_REVIEW, 0) + summary.status_counts.get(SHIPPED, 0)
    result["returned_or_canceled"] = summary.status_counts.get(CANCELED, 0) + summary.status_counts.get(REJECTED, 0)
    return result
