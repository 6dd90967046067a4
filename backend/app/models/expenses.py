from __future__ import annotations

from ..extensions import db
from app.time_utils import to_utc_z


class Expense(db.Model):
    """
    General business expense (ads, salaries, packaging...).

    Return shipping fees live on Order.return_cost_cents. Rows whose category
    is tagged as return shipping come from older data and are excluded from
    general expenses by financial_service.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_deleted_date", "is_deleted", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(120), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False, default=0)
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    note = db.Column(db.String(500), nullable=True)

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

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "date": to_utc_z(self.date),
            "note": self.note,
            "is_deleted": self.is_deleted,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
