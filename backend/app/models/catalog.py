from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    STOCK DESIGN DECISION:
    Product.stock is the authoritative on-hand count (a mutable integer, not
    ledger-derived). It changes only through:
    - order status transitions (order_service.transition_order)
    - item edits on orders whose stock is already deducted
    - manual edits through the product form

    INVARIANT: stock >= 0 after every committed write unless a caller passed
    an explicit allow_negative_stock override.

    Soft delete: is_deleted=True hides the product from listings and makes it
    "unknown" to price/stock math. Rows are never hard-deleted because orders
    keep referencing them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_deleted_name", "is_deleted", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sell_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    # Low-stock alert fires when stock <= stock_threshold (None/0 disables)
    stock_threshold = db.Column(db.Integer, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "purchase_price_cents": self.purchase_price_cents,
            "sell_price_cents": self.sell_price_cents,
            "stock": self.stock,
            "stock_threshold": self.stock_threshold,
            "is_deleted": self.is_deleted,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Shipper(db.Model):
    """
    Shipping company with a per-governorate rate table.

    return_cost_cents is the carrier's usual fee for sending a parcel back;
    it only prefills the return-detail prompt, the operator confirms the
    real amount per order.
    """
    __tablename__ = "shippers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    return_cost_cents = db.Column(db.Integer, nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    rates = db.relationship(
        "ShipperRate",
        back_populates="shipper",
        cascade="all, delete-orphan",
        order_by="ShipperRate.id",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Shipper id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "return_cost_cents": self.return_cost_cents,
            "rates": [r.to_dict() for r in self.rates],
            "is_deleted": self.is_deleted,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ShipperRate(db.Model):
    """
    One row of a shipper's rate table.

    price_cents: what the business pays the carrier.
    discount_cents: how much of that the customer is NOT charged (promotional
    free/discounted shipping funded by the business).
    """
    __tablename__ = "shipper_rates"
    __table_args__ = (
        db.UniqueConstraint("shipper_id", "governorate", name="uq_shipper_rates_governorate"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shipper_id = db.Column(db.Integer, db.ForeignKey("shippers.id"), nullable=False, index=True)
    governorate = db.Column(db.String(120), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=True)

    shipper = db.relationship("Shipper", back_populates="rates")

    def to_dict(self) -> dict:
        return {
            "governorate": self.governorate,
            "price_cents": self.price_cents,
            "discount_cents": self.discount_cents,
        }
