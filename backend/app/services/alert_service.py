# Overview: Periodic scan for delayed shipments, stale orders and low stock.

# backend/app/services/alert_service.py
"""
Alert Scanner

Three alert kinds, all derived from current rows (nothing is stored):

- order_delayed: a SHIPPED order whose delivery window (delivery_days) has
  elapsed since it shipped (ship_date, falling back to the order date).
- order_stale: an order that has sat in one status longer than the
  per-status notification rule {"enabled": bool, "days": int} allows.
  Time in status is measured from the last history entry (else the order date).
- low_stock: a product with stock_threshold > 0 and stock <= threshold.

Elapsed time is counted in whole days (floor), so an order shipped 2.9 days
ago with delivery_days=3 is not yet delayed.

The scan is read-only; it never changes orders or stock.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

from flask import current_app

from ..extensions import db
from ..models import Order, Product
from app.time_utils import utcnow, whole_days_between
from .order_status import SHIPPED
from .settings_service import get_settings


ALERT_ORDER_DELAYED = "order_delayed"
ALERT_ORDER_STALE = "order_stale"
ALERT_LOW_STOCK = "low_stock"


@dataclass(frozen=True)
class Alert:
    kind: str
    message: str
    order_id: int | None = None
    product_id: int | None = None
    days: int | None = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "days": self.days,
        }


def _status_entered_at(order) -> datetime | None:
    history = list(order.status_history or [])
    if history:
        return history[-1].changed_at
    return order.date


def _rules_from(settings) -> Mapping:
    if settings is None:
        return {}
    rules = getattr(settings, "notification_rules", None)
    if rules is None and isinstance(settings, Mapping):
        rules = settings.get("notification_rules")
    return rules or {}


def scan_alerts(orders: Iterable, products: Iterable, settings, now: datetime | None = None) -> list[Alert]:
    """Pure scan over already-loaded rows; deleted rows are ignored."""
    now = now or utcnow()
    rules = _rules_from(settings)
    alerts: list[Alert] = []

    for order in orders:
        if order.is_deleted:
            continue

        if order.status == SHIPPED and (order.delivery_days or 0) > 0:
            shipped_at = order.ship_date or order.date
            if shipped_at is not None:
                elapsed = whole_days_between(shipped_at, now)
                if elapsed >= order.delivery_days:
                    alerts.append(Alert(
                        kind=ALERT_ORDER_DELAYED,
                        message=(
                            f"Order #{order.id} for {order.customer_name} shipped {elapsed} days ago "
                            f"(expected within {order.delivery_days})"
                        ),
                        order_id=order.id,
                        days=elapsed,
                    ))

        rule = rules.get(order.status) or {}
        if rule.get("enabled"):
            limit = int(rule.get("days") or 0)
            entered_at = _status_entered_at(order)
            if entered_at is not None:
                elapsed = whole_days_between(entered_at, now)
                if elapsed >= limit:
                    alerts.append(Alert(
                        kind=ALERT_ORDER_STALE,
                        message=f"Order #{order.id} has been {order.status} for {elapsed} days",
                        order_id=order.id,
                        days=elapsed,
                    ))

    for product in products:
        if product.is_deleted:
            continue
        threshold = int(product.stock_threshold or 0)
        if threshold > 0 and int(product.stock or 0) <= threshold:
            alerts.append(Alert(
                kind=ALERT_LOW_STOCK,
                message=f"{product.name} is low on stock ({product.stock} left, threshold {threshold})",
                product_id=product.id,
            ))

    return alerts


def get_alerts(*, now: datetime | None = None) -> list[Alert]:
    """Load live orders/products plus settings and scan them."""
    orders = db.session.query(Order).filter(Order.is_deleted.is_(False)).all()
    products = db.session.query(Product).filter(Product.is_deleted.is_(False)).all()
    settings = get_settings()

    alerts = scan_alerts(orders, products, settings, now)
    current_app.logger.debug("Alert scan produced %d alert(s)", len(alerts))
    return alerts
