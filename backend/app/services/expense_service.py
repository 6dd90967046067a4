# Overview: Service-layer operations for general business expenses.

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..validation import ModelValidationPolicy, NotFoundError, parse_datetime_param
from app.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .pagination import paginate


EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category", "amount_cents", "date", "note"},
    required_on_create={"category", "amount_cents"},
)


def _get_expense(expense_id: int, *, lock: bool = False) -> Expense | None:
    query = db.session.query(Expense).filter(Expense.id == expense_id, Expense.is_deleted.is_(False))
    if lock:
        query = lock_for_update(query)
    return query.first()


def list_expenses(
    *,
    category: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    start_dt = parse_datetime_param(date_from, "date_from")
    end_dt = parse_datetime_param(date_to, "date_to")

    query = db.session.query(Expense).filter(Expense.is_deleted.is_(False))
    if category:
        query = query.filter(Expense.category == category.strip())
    if start_dt:
        query = query.filter(Expense.date >= start_dt)
    if end_dt:
        query = query.filter(Expense.date <= end_dt)
    query = query.order_by(Expense.date.desc(), Expense.id.desc())

    result = paginate(query, page=page, per_page=per_page)
    result["total_amount_cents"] = sum(item["amount_cents"] for item in result["items"])
    return result


def create_expense(*, patch: dict) -> dict:
    def _op():
        expense = Expense()
        for k, v in patch.items():
            if k in EXPENSE_POLICY.writable_fields:
                setattr(expense, k, v)
        if expense.date is None:
            expense.date = utcnow()
        db.session.add(expense)
        db.session.commit()
        return expense.to_dict()

    return run_in_transaction(_op)


def update_expense(*, expense_id: int, patch: dict) -> dict:
    def _op():
        expense = _get_expense(expense_id, lock=True)
        if expense is None:
            raise NotFoundError(f"Expense {expense_id} not found")
        for k, v in patch.items():
            if k in EXPENSE_POLICY.writable_fields:
                setattr(expense, k, v)
        db.session.commit()
        return expense.to_dict()

    return run_in_transaction(_op)


def delete_expense(*, expense_id: int) -> bool:
    """Soft delete; deleted expenses drop out of listings and financial totals."""
    def _op():
        expense = _get_expense(expense_id, lock=True)
        if expense is None:
            return False
        expense.is_deleted = True
        db.session.commit()
        return True

    return run_in_transaction(_op)
