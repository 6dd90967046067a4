# Overview: Pytest coverage for delayed-shipment, stale-order and low-stock alerts.

from datetime import datetime, timedelta
from types import SimpleNamespace

from app.services import alert_service, order_service, settings_service
from app.services.alert_service import (
    ALERT_LOW_STOCK,
    ALERT_ORDER_DELAYED,
    ALERT_ORDER_STALE,
    scan_alerts,
)
from app.services.order_status import SHIPPED, UNDER_REVIEW
from app.time_utils import utcnow


NOW = datetime(2026, 3, 10, 12, 0)


def _order(status=SHIPPED, *, ship_days_ago=None, delivery_days=None, in_status_days_ago=None, deleted=False):
    ship_date = NOW - timedelta(days=ship_days_ago) if ship_days_ago is not None else None
    history = []
    if in_status_days_ago is not None:
        history = [SimpleNamespace(status=status, changed_at=NOW - timedelta(days=in_status_days_ago))]
    return SimpleNamespace(
        id=1,
        customer_name="Mona",
        status=status,
        date=NOW - timedelta(days=30),
        ship_date=ship_date,
        delivery_days=delivery_days,
        status_history=history,
        is_deleted=deleted,
    )


def _product(stock, threshold, deleted=False):
    return SimpleNamespace(id=5, name="Widget", stock=stock, stock_threshold=threshold, is_deleted=deleted)


def _kinds(alerts):
    return [a.kind for a in alerts]


class TestDelayedOrders:
    def test_delayed_when_window_elapsed(self):
        alerts = scan_alerts([_order(ship_days_ago=3, delivery_days=3)], [], None, NOW)
        assert _kinds(alerts) == [ALERT_ORDER_DELAYED]
        assert alerts[0].days == 3

    def test_partial_days_are_floored(self):
        order = _order(delivery_days=3)
        order.ship_date = NOW - timedelta(days=2, hours=23)
        assert scan_alerts([order], [], None, NOW) == []

    def test_only_shipped_orders(self):
        assert scan_alerts([_order(UNDER_REVIEW, ship_days_ago=9, delivery_days=3)], [], None, NOW) == []

    def test_zero_delivery_days_disables(self):
        assert scan_alerts([_order(ship_days_ago=9, delivery_days=0)], [], None, NOW) == []

    def test_falls_back_to_order_date(self):
        alerts = scan_alerts([_order(delivery_days=5)], [], None, NOW)
        assert _kinds(alerts) == [ALERT_ORDER_DELAYED]

    def test_deleted_orders_ignored(self):
        assert scan_alerts([_order(ship_days_ago=9, delivery_days=3, deleted=True)], [], None, NOW) == []


class TestStaleOrders:
    RULES = {"notification_rules": {UNDER_REVIEW: {"enabled": True, "days": 2}}}

    def test_stale_when_in_status_too_long(self):
        alerts = scan_alerts([_order(UNDER_REVIEW, in_status_days_ago=2)], [], self.RULES, NOW)
        assert _kinds(alerts) == [ALERT_ORDER_STALE]

    def test_not_stale_within_limit(self):
        assert scan_alerts([_order(UNDER_REVIEW, in_status_days_ago=1)], [], self.RULES, NOW) == []

    def test_disabled_rule(self):
        settings = {"notification_rules": {UNDER_REVIEW: {"enabled": False, "days": 0}}}
        assert scan_alerts([_order(UNDER_REVIEW, in_status_days_ago=9)], [], settings, NOW) == []


class TestLowStock:
    def test_at_threshold_alerts(self):
        assert _kinds(scan_alerts([], [_product(3, 3)], None, NOW)) == [ALERT_LOW_STOCK]

    def test_above_threshold_quiet(self):
        assert scan_alerts([], [_product(4, 3)], None, NOW) == []

    def test_zero_or_missing_threshold_disables(self):
        assert scan_alerts([], [_product(0, 0), _product(0, None)], None, NOW) == []


class TestGetAlerts:
    def test_scans_database_rows(self, db_session, make_product, make_order):
        low = make_product("Low", stock=4, stock_threshold=2)
        order = make_order([(low, 2)], delivery_days=1)
        order_service.transition_order(order.id, SHIPPED)
        settings_service.update_settings({"notification_rules": {"SHIPPED": {"enabled": True, "days": 0}}})

        alerts = alert_service.get_alerts(now=utcnow() + timedelta(days=2))

        assert sorted(_kinds(alerts)) == sorted([ALERT_ORDER_DELAYED, ALERT_ORDER_STALE, ALERT_LOW_STOCK])
