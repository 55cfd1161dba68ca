"""
Recurring expenses job: materializes recurring definitions due today.

Runs daily at 00:01 (service time zone). For every user, active definitions
anchored on today's day of month are checked:

  1. past end_date          -> deactivate, nothing created
  2. not an occurrence month -> skip (quarterly/semiannual/annual)
  3. already has an expense this month (same recurring_id) -> skip
  4. otherwise create an expense dated today, amount clamped to >= 0

Each definition is committed on its own; a broken definition is logged and
counted without affecting the rest.
"""
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session, sessionmaker

from app.application.ledger import deactivate, expense_exists_for_month, materialize_expense
from app.application.tenant_runner import list_user_ids, run_for_each_user
from app.config import get_settings
from app.domain.recurring_expense import (
    is_expired, is_occurrence_month, normalize_frequency, validate_anchor_day,
)
from app.infrastructure.db.models import RecurringExpenseModel
from app.utils.clock import Clock, get_clock

logger = logging.getLogger(__name__)


@dataclass
class RecurringRunResult:
    created: int = 0
    skipped: int = 0
    expired: int = 0
    errors: int = 0
    users: int = 0
    deferred: int = 0

    def merge(self, other: "RecurringRunResult") -> None:
        self.created += other.created
        self.skipped += other.skipped
        self.expired += other.expired
        self.errors += other.errors


def process_user_recurring_expenses(db: Session, user_id: int, today: date) -> RecurringRunResult:
    """Apply today's recurring definitions for one user."""
    result = RecurringRunResult()
    definitions = (
        db.query(RecurringExpenseModel)
        .filter(
            RecurringExpenseModel.user_id == user_id,
            RecurringExpenseModel.active == True,  # noqa: E712
            RecurringExpenseModel.day_of_month == today.day,
        )
        .order_by(RecurringExpenseModel.id)
        .all()
    )

    for recurring in definitions:
        recurring_id = recurring.id
        try:
            _apply_definition(db, recurring, today, result)
        except Exception:
            db.rollback()
            logger.exception(
                "Recurring expense %s failed for user_id=%s", recurring_id, user_id,
            )
            result.errors += 1

    return result


def _apply_definition(db: Session, recurring: RecurringExpenseModel, today: date, result: RecurringRunResult) -> None:
    if is_expired(recurring.end_date, today):
        deactivate(db, recurring)
        result.expired += 1
        return

    frequency = normalize_frequency(recurring.frequency)
    validate_anchor_day(recurring.day_of_month)

    if not is_occurrence_month(frequency, today.month):
        result.skipped += 1
        return

    if expense_exists_for_month(db, recurring.user_id, recurring.id, today):
        logger.debug("Recurring expense %s already materialized this month", recurring.id)
        result.skipped += 1
        return

    materialize_expense(db, recurring, today)
    logger.info(
        "Created expense from recurring %s (%r, %s) for user_id=%s on %s",
        recurring.id, recurring.name, frequency, recurring.user_id, today,
    )
    result.created += 1


def create_recurring_expenses(
    session_factory: sessionmaker,
    clock: Clock | None = None,
    max_workers: int | None = None,
) -> RecurringRunResult:
    """
    Run the daily recurring expenses job over all users.

    Raises only if the user list cannot be read.
    """
    settings = get_settings()
    today = (clock or get_clock()).today()
    logger.info("Recurring expenses run for %s (day %d)", today, today.day)

    user_ids = list_user_ids(session_factory)
    result = run_for_each_user(
        session_factory,
        user_ids,
        lambda db, uid: process_user_recurring_expenses(db, uid, today),
        RecurringRunResult(),
        job_name="recurring_expenses",
        max_workers=max_workers or settings.JOB_MAX_WORKERS,
        timeout_seconds=settings.JOB_TIMEOUT_SECONDS,
    )

    logger.info(
        "Recurring expenses done: created=%d skipped=%d expired=%d errors=%d users=%d deferred=%d",
        result.created, result.skipped, result.expired, result.errors, result.users, result.deferred,
    )
    return result
