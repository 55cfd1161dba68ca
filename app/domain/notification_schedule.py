"""
Reminder matching rules.

Day of week is Sunday-based (0 = Sunday .. 6 = Saturday), the convention the
client apps store in user_notification_settings.weekly_day_of_week.
"""
from datetime import date, datetime
from decimal import Decimal


DEFAULT_WEEKLY_DAY = 0
DEFAULT_WEEKLY_HOUR = 21
DEFAULT_WEEKLY_MINUTE = 0
DEFAULT_INCOME_DAY = 28
DEFAULT_MINUTE_TOLERANCE = 2


def sunday_based_weekday(d: date) -> int:
    # date.weekday(): Monday=0 .. Sunday=6
    return (d.weekday() + 1) % 7


def weekly_matches(
    now: datetime,
    day_of_week: int,
    hour: int,
    minute: int,
    tolerance: int = DEFAULT_MINUTE_TOLERANCE,
) -> bool:
    """True when now falls on the configured weekday and hour, within +/- tolerance minutes."""
    if sunday_based_weekday(now.date()) != int(day_of_week):
        return False
    if now.hour != int(hour):
        return False
    return abs(now.minute - int(minute)) <= tolerance


def weekly_already_sent(
    last_date: date | None,
    last_hour: int | None,
    last_minute: int | None,
    today: date,
    hour: int,
    minute: int,
) -> bool:
    """
    The weekly marker blocks a resend for the same day and the same configured time.
    A user who moves the reminder to another time on the same day gets it again.
    """
    if last_date is None or last_hour is None or last_minute is None:
        return False
    return last_date == today and int(last_hour) == int(hour) and int(last_minute) == int(minute)


def income_is_missing(income) -> bool:
    return income is None or Decimal(str(income)) == 0
