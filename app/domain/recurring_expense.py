"""
Recurring expense rules (pure, date only).

A recurring expense is anchored to a day of month and repeats with one of:
- monthly: every month
- quarterly: January, April, July, October
- semiannual: January, July
- annual: January

Dedup is done per calendar month: a definition produces at most one expense
per month, looked up by recurring_id inside [first day, last day] of the month.
"""
import calendar
from datetime import date
from decimal import Decimal


DEFAULT_FREQUENCY = "monthly"

# None = every month
OCCURRENCE_MONTHS: dict[str, frozenset[int] | None] = {
    "monthly": None,
    "quarterly": frozenset({1, 4, 7, 10}),
    "semiannual": frozenset({1, 7}),
    "annual": frozenset({1}),
}
VALID_FREQUENCIES = frozenset(OCCURRENCE_MONTHS)


def normalize_frequency(value: str | None) -> str:
    """Return the frequency, defaulting empty values to monthly. Raises ValueError if unknown."""
    if not value:
        return DEFAULT_FREQUENCY
    freq = value.strip().lower()
    if freq not in VALID_FREQUENCIES:
        raise ValueError(f"invalid frequency: {value}")
    return freq


def validate_anchor_day(day: int | None) -> int:
    if day is None or not 1 <= int(day) <= 31:
        raise ValueError(f"day_of_month must be within 1..31, got {day}")
    return int(day)


def is_occurrence_month(frequency: str, month: int) -> bool:
    months = OCCURRENCE_MONTHS[normalize_frequency(frequency)]
    return months is None or month in months


def is_expired(end_date: date | None, today: date) -> bool:
    """End date is inclusive: a definition ending today still produces today's expense."""
    return end_date is not None and today > end_date


def clamp_amount(amount) -> Decimal:
    if amount is None:
        return Decimal("0")
    value = Decimal(str(amount))
    return value if value > 0 else Decimal("0")


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(d: date) -> tuple[date, date]:
    return d.replace(day=1), d.replace(day=last_day_of_month(d.year, d.month))


def period_key(d: date) -> str:
    """Billing period key, e.g. "2026-04"."""
    return f"{d.year:04d}-{d.month:02d}"


def anchor_date_in_month(d: date, anchor_day: int) -> date:
    """Date of the anchor day in d's month, clipped to the month's last day."""
    return d.replace(day=min(anchor_day, last_day_of_month(d.year, d.month)))
