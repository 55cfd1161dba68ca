"""Tests for the missed recurring expenses sweep."""
from datetime import date, datetime
from decimal import Decimal

from app.application.recurring_expenses import create_recurring_expenses
from app.application.recurring_recovery import (
    check_missed_recurring_expenses, recover_user_recurring_expenses,
)
from app.infrastructure.db.models import ExpenseModel, RecurringExpenseModel
from app.utils.clock import FixedClock
from factories import add_recurring, add_user

APR_20_NOON = FixedClock(datetime(2026, 4, 20, 12, 0))


def _expenses(db):
    db.expire_all()
    return db.query(ExpenseModel).order_by(ExpenseModel.id).all()


def _sweep(session_factory, clock=APR_20_NOON):
    return check_missed_recurring_expenses(session_factory, clock=clock, max_workers=1)


def test_missed_run_backdated_to_anchor_day(db_session, session_factory):
    add_user(db_session)
    rec = add_recurring(db_session, day=15, amount=Decimal("-3"))

    result = _sweep(session_factory)

    assert result.recovered == 1
    [exp] = _expenses(db_session)
    assert exp.date == date(2026, 4, 15)
    assert exp.recurring_id == rec.id
    assert exp.is_recurring is True
    assert exp.amount == Decimal("0")


def test_recovered_definition_not_written_again_by_daily_run(db_session, session_factory):
    add_user(db_session)
    add_recurring(db_session, day=20)

    recovery = _sweep(session_factory, FixedClock(datetime(2026, 4, 20, 0, 0)))
    daily = create_recurring_expenses(session_factory, clock=FixedClock(datetime(2026, 4, 20, 0, 1)), max_workers=1)

    assert recovery.recovered == 1
    assert daily.created == 0
    assert daily.skipped == 1
    assert len(_expenses(db_session)) == 1


def test_does_not_duplicate_daily_run(db_session, session_factory):
    add_user(db_session)
    add_recurring(db_session, day=20)

    create_recurring_expenses(session_factory, clock=FixedClock(datetime(2026, 4, 20, 0, 1)), max_workers=1)
    result = _sweep(session_factory)

    assert result.recovered == 0
    assert result.skipped == 1
    assert len(_expenses(db_session)) == 1


def test_sweep_twice_is_idempotent(db_session, session_factory):
    add_user(db_session)
    add_recurring(db_session, day=3)

    assert _sweep(session_factory).recovered == 1
    assert _sweep(session_factory).recovered == 0
    assert len(_expenses(db_session)) == 1


def test_future_anchor_day_not_recovered(db_session, session_factory):
    add_user(db_session)
    add_recurring(db_session, day=25)

    assert _sweep(session_factory).recovered == 0
    assert _expenses(db_session) == []


def test_no_frequency_gate(db_session, session_factory):
    """Any definition without an expense this month is recoverable, whatever its frequency."""
    add_user(db_session)
    add_recurring(db_session, day=10, frequency="annual")

    assert _sweep(session_factory).recovered == 1


def test_expired_definition_deactivated(db_session, session_factory):
    add_user(db_session)
    rec = add_recurring(db_session, day=10, end_date=date(2026, 4, 12))

    result = _sweep(session_factory)

    assert result.expired == 1
    assert result.recovered == 0
    db_session.expire_all()
    assert db_session.get(RecurringExpenseModel, rec.id).active is False


def test_multiple_users(db_session, session_factory):
    add_user(db_session, 1)
    add_user(db_session, 2)
    add_user(db_session, 3)
    add_recurring(db_session, user_id=1, day=1)
    add_recurring(db_session, user_id=2, day=19)

    result = _sweep(session_factory)

    assert result.users == 3
    assert result.recovered == 2
    assert sorted(e.user_id for e in _expenses(db_session)) == [1, 2]


def test_recover_user_directly(db_session):
    add_user(db_session)
    add_recurring(db_session, day=5)

    result = recover_user_recurring_expenses(db_session, 1, date(2026, 4, 6))

    assert result.recovered == 1
    assert _expenses(db_session)[0].date == date(2026, 4, 5)
