# Overview: Pure order total computation from catalog prices and shipper rate tables.

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class OrderTotals:
    product_total_cents: int
    shipping_cost_cents: int
    shipping_discount_cents: int
    total_price_cents: int

    def to_dict(self) -> dict:
        return {
            "product_total_cents": self.product_total_cents,
            "shipping_cost_cents": self.shipping_cost_cents,
            "shipping_discount_cents": self.shipping_discount_cents,
            "total_price_cents": self.total_price_cents,
        }


def find_rate(shipper, governorate: str | None):
    """
    Exact (case-sensitive) governorate lookup in a shipper's rate table.

    Fuzzy matching belongs to bulk-import tooling, never to pricing.
    """
    if shipper is None or not governorate:
        return None
    for rate in shipper.rates:
        if rate.governorate == governorate:
            return rate
    return None


def compute_totals(order, products: Mapping, shippers: Mapping) -> OrderTotals:
    """
    totalPrice = sum(sell_price * quantity) + (shipping_cost - shipping_discount) - discount

    `order` needs items, shipper_id, governorate and discount_cents; products
    and shippers are live rows keyed by id. A product or shipper missing from
    the mappings (removed from the catalog) contributes zero.
    """
    product_total = 0
    for item in order.items:
        product = products.get(item.product_id)
        if product is None:
            continue
        product_total += int(product.sell_price_cents or 0) * int(item.quantity)

    shipping_cost = 0
    shipping_discount = 0
    rate = find_rate(shippers.get(order.shipper_id), order.governorate)
    if rate is not None:
        shipping_cost = int(rate.price_cents or 0)
        shipping_discount = int(rate.discount_cents or 0)

    total = product_total + (shipping_cost - shipping_discount) - int(order.discount_cents or 0)
    return OrderTotals(
        product_total_cents=product_total,
        shipping_cost_cents=shipping_cost,
        shipping_discount_cents=shipping_discount,
        total_price_cents=total,
    )
