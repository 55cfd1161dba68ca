"""
Missed recurring expenses: backup sweep, every few hours.

Catches definitions whose anchor day has already passed this month but that
have no expense yet (the daily run crashed, timed out or never fired).
The missing expense is back-dated to the anchor day of the current month.

Differences from the daily job:
  - day_of_month <= today instead of ==
  - no frequency-month gate: any definition lacking this month's expense is recoverable
The month existence check is the same, so an expense the daily job already
created is never duplicated.
"""
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session, sessionmaker

from app.application.ledger import deactivate, expense_exists_for_month, materialize_expense
from app.application.tenant_runner import list_user_ids, run_for_each_user
from app.config import get_settings
from app.domain.recurring_expense import anchor_date_in_month, is_expired, validate_anchor_day
from app.infrastructure.db.models import RecurringExpenseModel
from app.utils.clock import Clock, get_clock

logger = logging.getLogger(__name__)


@dataclass
class RecoveryRunResult:
    recovered: int = 0
    skipped: int = 0
    expired: int = 0
    errors: int = 0
    users: int = 0
    deferred: int = 0

    def merge(self, other: "RecoveryRunResult") -> None:
        self.recovered += other.recovered
        self.skipped += other.skipped
        self.expired += other.expired
        self.errors += other.errors


def recover_user_recurring_expenses(db: Session, user_id: int, today: date) -> RecoveryRunResult:
    result = RecoveryRunResult()
    definitions = (
        db.query(RecurringExpenseModel)
        .filter(
            RecurringExpenseModel.user_id == user_id,
            RecurringExpenseModel.active == True,  # noqa: E712
            RecurringExpenseModel.day_of_month <= today.day,
        )
        .order_by(RecurringExpenseModel.id)
        .all()
    )

    for recurring in definitions:
        recurring_id = recurring.id
        try:
            if is_expired(recurring.end_date, today):
                deactivate(db, recurring)
                result.expired += 1
                continue

            if expense_exists_for_month(db, user_id, recurring.id, today):
                result.skipped += 1
                continue

            expense_date = anchor_date_in_month(today, validate_anchor_day(recurring.day_of_month))
            materialize_expense(db, recurring, expense_date)
            logger.info(
                "Recovered expense from recurring %s (%r) for user_id=%s dated %s",
                recurring.id, recurring.name, user_id, expense_date,
            )
            result.recovered += 1
        except Exception:
            db.rollback()
            logger.exception("Recovery of recurring %s failed for user_id=%s", recurring_id, user_id)
            result.errors += 1

    return result


def check_missed_recurring_expenses(
    session_factory: sessionmaker,
    clock: Clock | None = None,
    max_workers: int | None = None,
) -> RecoveryRunResult:
    """Run the recovery sweep over all users. Raises only if the user list cannot be read."""
    settings = get_settings()
    today = (clock or get_clock()).today()
    logger.info("Checking missed recurring expenses for %s", today)

    user_ids = list_user_ids(session_factory)
    result = run_for_each_user(
        session_factory,
        user_ids,
        lambda db, uid: recover_user_recurring_expenses(db, uid, today),
        RecoveryRunResult(),
        job_name="recurring_recovery",
        max_workers=max_workers or settings.JOB_MAX_WORKERS,
        timeout_seconds=settings.JOB_TIMEOUT_SECONDS,
    )

    logger.info(
        "Recovery done: recovered=%d skipped=%d expired=%d errors=%d users=%d deferred=%d",
        result.recovered, result.skipped, result.expired, result.errors, result.users, result.deferred,
    )
    return result
