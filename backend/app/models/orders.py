from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Order(db.Model):
    """
    Customer order (document with a status lifecycle).

    WHY status is never written directly: every status change carries stock
    side effects, so all changes go through order_service.transition_order.

    Derived money fields (recomputed by pricing_service.compute_totals on
    every create/update, never by a status transition):
    - shipping_cost_cents: what the business pays the shipper for this order
    - total_price_cents: products + (shipping - shipping discount) - discount

    Return bookkeeping (populated by return-bearing transitions only):
    - return_cost_cents: fee paid to the carrier for returned goods
    - delivered_quantity / returned_quantity: order-level unit totals
    - OrderItem.returned_quantity: per-item breakdown
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_date", "status", "date"),
        db.Index("ix_orders_deleted_date", "is_deleted", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    customer_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    alt_phone = db.Column(db.String(32), nullable=True)
    governorate = db.Column(db.String(120), nullable=False, default="")
    address = db.Column(db.String(500), nullable=False, default="")

    shipper_id = db.Column(db.Integer, db.ForeignKey("shippers.id"), nullable=True, index=True)

    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(32), nullable=False, default="UNDER_REVIEW", index=True)

    # Business time of the order; ship_date is stamped when stock is first deducted
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    ship_date = db.Column(db.DateTime(timezone=True), nullable=True)
    # Expected delivery window in days (delay alert when exceeded)
    delivery_days = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    print_count = db.Column(db.Integer, nullable=False, default=0)

    return_cost_cents = db.Column(db.Integer, nullable=True)
    delivered_quantity = db.Column(db.Integer, nullable=True)
    returned_quantity = db.Column(db.Integer, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shipper = db.relationship("Shipper", foreign_keys=[shipper_id])
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy=True,
    )
    status_history = db.relationship(
        "OrderStatusHistory",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistory.id",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} customer={self.customer_name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "phone": self.phone,
            "alt_phone": self.alt_phone,
            "governorate": self.governorate,
            "address": self.address,
            "shipper_id": self.shipper_id,
            "items": [i.to_dict() for i in self.items],
            "discount_cents": self.discount_cents,
            "shipping_cost_cents": self.shipping_cost_cents,
            "total_price_cents": self.total_price_cents,
            "status": self.status,
            "date": to_utc_z(self.date),
            "ship_date": to_utc_z(self.ship_date) if self.ship_date else None,
            "delivery_days": self.delivery_days,
            "notes": self.notes,
            "status_history": [h.to_dict() for h in self.status_history],
            "print_count": self.print_count,
            "return_cost_cents": self.return_cost_cents,
            "delivered_quantity": self.delivered_quantity,
            "returned_quantity": self.returned_quantity,
            "is_deleted": self.is_deleted,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """
    Order line (embedded in Order, never addressed on its own).

    returned_quantity is only set once the order enters a return-bearing
    status; 0 <= returned_quantity <= quantity.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "product_id", name="uq_order_items_order_product"),
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    # No FK to products: orders may keep referencing ids of removed products
    product_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    returned_quantity = db.Column(db.Integer, nullable=True)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "returned_quantity": self.returned_quantity,
        }


class OrderStatusHistory(db.Model):
    """Append-only record of every applied status transition."""
    __tablename__ = "order_status_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="status_history")

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "date": to_utc_z(self.changed_at),
        }
