"""
Reminder jobs: daily, weekly and monthly-income push reminders.

Jobs (service time zone):
  - daily:   once a day at DAILY_REMINDER_HOUR; fires for every user with daily_enabled
  - weekly:  every few minutes during active hours; fires when weekday + hour match
             and the minute is within +/- WEEKLY_MINUTE_TOLERANCE of the configured one.
             Marker (date, hour, minute) prevents a second send in the same window.
  - income:  once a day at INCOME_REMINDER_HOUR; fires on the configured day of month
             for users without an income, once per "YYYY-MM".

Markers are written only after a delivery with at least one successful send.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from app.application.push_service import build_payload, deliver, list_endpoints
from app.application.tenant_runner import list_user_ids, run_for_each_user
from app.config import get_settings
from app.domain.notification_schedule import (
    DEFAULT_MINUTE_TOLERANCE, income_is_missing, weekly_already_sent, weekly_matches,
)
from app.domain.recurring_expense import period_key
from app.infrastructure.db.models import User, UserNotificationSettings
from app.infrastructure.push.webpush import PushGateway
from app.utils.clock import Clock, get_clock

logger = logging.getLogger(__name__)


@dataclass
class ReminderRunResult:
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    users: int = 0
    deferred: int = 0

    def merge(self, other: "ReminderRunResult") -> None:
        self.sent += other.sent
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors += other.errors


def _send(db: Session, user_id: int, payload: dict, gateway: PushGateway | None, result: ReminderRunResult) -> bool:
    """Deliver payload; returns True when at least one device got it."""
    if not list_endpoints(db, user_id):
        logger.info("User %s has no push endpoints, skipping %s", user_id, payload["type"])
        result.skipped += 1
        return False
    delivery = deliver(db, user_id, payload, gateway=gateway)
    result.sent += delivery.sent
    result.failed += delivery.failed
    return delivery.success


# ---------------------------------------------------------------------------
# Daily
# ---------------------------------------------------------------------------

def daily_reminder_for_user(db: Session, user_id: int, now: datetime, gateway: PushGateway | None = None) -> ReminderRunResult:
    result = ReminderRunResult()
    prefs = db.get(UserNotificationSettings, user_id)
    if prefs is None or not prefs.daily_enabled:
        result.skipped += 1
        return result

    _send(db, user_id, build_payload("daily-reminder", user_id, prefs.daily_message), gateway, result)
    return result


# ---------------------------------------------------------------------------
# Weekly
# ---------------------------------------------------------------------------

def weekly_reminder_for_user(
    db: Session,
    user_id: int,
    now: datetime,
    gateway: PushGateway | None = None,
    tolerance: int = DEFAULT_MINUTE_TOLERANCE,
) -> ReminderRunResult:
    result = ReminderRunResult()
    prefs = db.get(UserNotificationSettings, user_id)
    if prefs is None or not prefs.weekly_enabled:
        result.skipped += 1
        return result

    day, hour, minute = prefs.weekly_day_of_week, prefs.weekly_hour, prefs.weekly_minute
    if not weekly_matches(now, day, hour, minute, tolerance):
        return result

    today = now.date()
    if weekly_already_sent(
        prefs.weekly_last_sent_date, prefs.weekly_last_sent_hour, prefs.weekly_last_sent_minute,
        today, hour, minute,
    ):
        logger.info("Weekly reminder already sent today to user %s", user_id)
        result.skipped += 1
        return result

    payload = build_payload("weekly-reminder", user_id, prefs.weekly_message)
    if not _send(db, user_id, payload, gateway, result):
        return result

    try:
        prefs.weekly_last_sent_date = today
        prefs.weekly_last_sent_hour = hour
        prefs.weekly_last_sent_minute = minute
        db.commit()
        logger.info("Weekly reminder marked for user %s: %s %02d:%02d", user_id, today, hour, minute)
    except Exception:
        db.rollback()
        logger.exception("Failed to store weekly reminder marker for user %s", user_id)
        result.errors += 1
    return result


# ---------------------------------------------------------------------------
# Monthly income
# ---------------------------------------------------------------------------

def income_reminder_for_user(db: Session, user_id: int, now: datetime, gateway: PushGateway | None = None) -> ReminderRunResult:
    result = ReminderRunResult()
    prefs = db.get(UserNotificationSettings, user_id)
    if prefs is None or not prefs.push_enabled or not prefs.income_enabled:
        result.skipped += 1
        return result

    today = now.date()
    if today.day != prefs.income_day_of_month:
        result.skipped += 1
        return result

    user = db.get(User, user_id)
    if user is None or not income_is_missing(user.income):
        result.skipped += 1
        return result

    month_key = period_key(today)
    if prefs.income_last_sent_month == month_key:
        logger.info("Income reminder already sent to user %s for %s", user_id, month_key)
        result.skipped += 1
        return result

    payload = build_payload("income-reminder", user_id, period_key=month_key)
    if not _send(db, user_id, payload, gateway, result):
        return result

    try:
        prefs.income_last_sent_month = month_key
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Failed to store income reminder marker for user %s", user_id)
        result.errors += 1
    return result


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

def _run(job_name: str, per_user, session_factory: sessionmaker, clock: Clock | None, max_workers: int | None) -> ReminderRunResult:
    settings = get_settings()
    now = (clock or get_clock()).now()
    user_ids = list_user_ids(session_factory)
    result = run_for_each_user(
        session_factory,
        user_ids,
        lambda db, uid: per_user(db, uid, now),
        ReminderRunResult(),
        job_name=job_name,
        max_workers=max_workers or settings.JOB_MAX_WORKERS,
        timeout_seconds=settings.JOB_TIMEOUT_SECONDS,
    )
    logger.info(
        "%s done at %s: sent=%d failed=%d skipped=%d errors=%d users=%d deferred=%d",
        job_name, now.strftime("%Y-%m-%d %H:%M"),
        result.sent, result.failed, result.skipped, result.errors, result.users, result.deferred,
    )
    return result


def send_daily_reminders(
    session_factory: sessionmaker,
    clock: Clock | None = None,
    gateway: PushGateway | None = None,
    max_workers: int | None = None,
) -> ReminderRunResult:
    return _run(
        "daily_reminders",
        lambda db, uid, now: daily_reminder_for_user(db, uid, now, gateway),
        session_factory, clock, max_workers,
    )


def send_weekly_reminders(
    session_factory: sessionmaker,
    clock: Clock | None = None,
    gateway: PushGateway | None = None,
    max_workers: int | None = None,
) -> ReminderRunResult:
    tolerance = get_settings().WEEKLY_MINUTE_TOLERANCE
    return _run(
        "weekly_reminders",
        lambda db, uid, now: weekly_reminder_for_user(db, uid, now, gateway, tolerance),
        session_factory, clock, max_workers,
    )


def send_monthly_income_reminders(
    session_factory: sessionmaker,
    clock: Clock | None = None,
    gateway: PushGateway | None = None,
    max_workers: int | None = None,
) -> ReminderRunResult:
    return _run(
        "income_reminders",
        lambda db, uid, now: income_reminder_for_user(db, uid, now, gateway),
        session_factory, clock, max_workers,
    )
