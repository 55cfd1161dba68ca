"""
Ledger writes shared by the recurring expense jobs.
"""
import logging
from datetime import date

from sqlalchemy.orm import Session

from app.domain.recurring_expense import clamp_amount, month_bounds
from app.infrastructure.db.models import ExpenseModel, RecurringExpenseModel

logger = logging.getLogger(__name__)


def expense_exists_for_month(db: Session, user_id: int, recurring_id: int, day_in_month: date) -> bool:
    """Return True if the definition already produced an expense in day_in_month's calendar month."""
    first, last = month_bounds(day_in_month)
    return (
        db.query(ExpenseModel.id)
        .filter(
            ExpenseModel.user_id == user_id,
            ExpenseModel.recurring_id == recurring_id,
            ExpenseModel.date >= first,
            ExpenseModel.date <= last,
        )
        .first()
        is not None
    )


def materialize_expense(db: Session, recurring: RecurringExpenseModel, expense_date: date) -> ExpenseModel:
    """Create the ledger expense for one occurrence of a recurring definition and commit."""
    amount = clamp_amount(recurring.amount)
    if recurring.amount is not None and recurring.amount < 0:
        logger.warning(
            "Recurring expense %s (%r) has negative amount %s, stored as 0",
            recurring.id, recurring.name, recurring.amount,
        )
    expense = ExpenseModel(
        user_id=recurring.user_id,
        name=recurring.name,
        amount=amount,
        category=recurring.category,
        subcategory=recurring.subcategory,
        date=expense_date,
        payment_method=recurring.payment_method,
        is_recurring=True,
        recurring_id=recurring.id,
    )
    db.add(expense)
    db.commit()
    return expense


def deactivate(db: Session, recurring: RecurringExpenseModel) -> None:
    logger.info(
        "Recurring expense %s (%r) ended on %s, deactivating",
        recurring.id, recurring.name, recurring.end_date,
    )
    recurring.active = False
    db.commit()
